"""Source validation and probing."""

import json
import logging
import subprocess
from pathlib import Path

from vid2live import ffutil
from vid2live.errors import (
    FileTooSmallError,
    InvalidInputError,
    NoVideoTrackError,
    SourceNotFoundError,
)
from vid2live.models import ProbeResult

logger = logging.getLogger(__name__)

SHORT_VIDEO_SECONDS = 1.0


def probe_source(input_path: Path) -> ProbeResult:
    """Validate *input_path* and return its probe result.

    Short sources are accepted; callers check ``is_too_short`` to flag them.
    """
    if not input_path.is_file():
        raise SourceNotFoundError(f"Video file not found: {input_path}")
    if input_path.stat().st_size == 0:
        raise FileTooSmallError(f"Video file is empty: {input_path}")

    try:
        result = ffutil.probe(input_path)
    except subprocess.CalledProcessError as e:
        raise InvalidInputError(f"Cannot open container {input_path} (rc={e.returncode})") from e
    except (json.JSONDecodeError, KeyError) as e:
        raise InvalidInputError(f"Unreadable probe output for {input_path}: {e}") from e
    except ValueError as e:
        raise NoVideoTrackError(str(e)) from e

    logger.info(
        "Probed %s: %.2fs %dx%d @ %.2f fps, audio=%s, streams=%d",
        input_path.name, result.duration, result.width, result.height,
        result.fps, result.has_audio, result.track_format_count,
    )
    if is_too_short(result):
        logger.warning(
            "%s is shorter than %.1fs (%.2fs); the clip will use the whole source",
            input_path.name, SHORT_VIDEO_SECONDS, result.duration,
        )
    return result


def is_too_short(probe: ProbeResult) -> bool:
    return probe.duration < SHORT_VIDEO_SECONDS
