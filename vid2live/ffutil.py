"""FFmpeg/ffprobe subprocess helpers."""

import io
import json
import logging
import shutil
import subprocess
from pathlib import Path

import numpy as np
from PIL import Image

from vid2live.models import ProbeResult, TimeRange

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(RuntimeError):
    pass


class FrameReadError(RuntimeError):
    """Raised when ffmpeg produces no decodable frame at a timestamp."""
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def _parse_rate(rate: str | None) -> float:
    if not rate or "/" not in rate:
        return float(rate or 0.0)
    num, den = rate.split("/")
    if int(den) == 0:
        return 0.0
    return int(num) / int(den)


def _parse_rotation(stream: dict) -> int:
    """Display rotation in degrees, clockwise, normalised to [0, 360)."""
    for side_data in stream.get("side_data_list", []):
        if "rotation" in side_data:
            # Display matrix rotation is counter-clockwise
            return int(-float(side_data["rotation"])) % 360
    rotate = stream.get("tags", {}).get("rotate")
    if rotate is not None:
        return int(float(rotate)) % 360
    return 0


def probe(input_path: Path) -> ProbeResult:
    """Extract media metadata via ffprobe.

    Raises ValueError when the container has no video stream and
    subprocess.CalledProcessError when ffprobe cannot open it.
    """
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)
    streams = data.get("streams", [])

    video_stream = next(
        (s for s in streams if s.get("codec_type") == "video"), None
    )
    audio_stream = next(
        (s for s in streams if s.get("codec_type") == "audio"), None
    )

    if video_stream is None:
        raise ValueError(f"No video stream found in {input_path}")

    # Prefer the container duration; some muxers only set it per stream
    duration = data.get("format", {}).get("duration") or video_stream.get("duration") or 0.0

    fps = _parse_rate(video_stream.get("avg_frame_rate"))
    if fps <= 0:
        fps = _parse_rate(video_stream.get("r_frame_rate"))

    return ProbeResult(
        duration=float(duration),
        width=int(video_stream["width"]),
        height=int(video_stream["height"]),
        fps=fps,
        has_audio=audio_stream is not None,
        track_format_count=len(streams),
        codec_video=video_stream.get("codec_name", "unknown"),
        codec_audio=audio_stream.get("codec_name") if audio_stream else None,
        rotation=_parse_rotation(video_stream),
        size_bytes=int(data.get("format", {}).get("size", 0)),
    )


def keyframe_times(input_path: Path) -> list[float]:
    """Presentation times of the keyframes of the first video stream."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-select_streams", "v:0",
        "-show_entries", "packet=pts_time,flags",
        "-print_format", "json",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)

    times: list[float] = []
    for packet in data.get("packets", []):
        if packet.get("flags", "").startswith("K") and packet.get("pts_time") not in (None, "N/A"):
            times.append(float(packet["pts_time"]))
    return sorted(times)


def read_gray_frame(input_path: Path, timestamp: float, size: tuple[int, int]) -> np.ndarray:
    """Decode one frame at *timestamp* as a (height, width) uint8 array."""
    width, height = size
    cmd = [
        "ffmpeg",
        "-v", "error",
        "-ss", f"{timestamp:.3f}",
        "-i", str(input_path),
        "-frames:v", "1",
        "-vf", f"scale={width}:{height}",
        "-pix_fmt", "gray",
        "-f", "rawvideo",
        "-",
    ]
    result = subprocess.run(cmd, capture_output=True)
    expected = width * height
    if result.returncode != 0 or len(result.stdout) < expected:
        raise FrameReadError(
            f"No frame at {timestamp:.3f}s in {input_path} (rc={result.returncode})"
        )
    return np.frombuffer(result.stdout[:expected], dtype=np.uint8).reshape(height, width)


def render_still(input_path: Path, timestamp: float) -> Image.Image:
    """Render a full-resolution frame at *timestamp*.

    ffmpeg applies the stream's display rotation, so the returned image is
    upright.
    """
    cmd = [
        "ffmpeg",
        "-v", "error",
        "-ss", f"{timestamp:.3f}",
        "-i", str(input_path),
        "-frames:v", "1",
        "-f", "image2pipe",
        "-c:v", "png",
        "-",
    ]
    result = subprocess.run(cmd, capture_output=True)
    if result.returncode != 0 or not result.stdout:
        stderr = (result.stderr or b"").decode(errors="replace").strip()
        raise FrameReadError(stderr or f"No frame at {timestamp:.3f}s in {input_path}")

    image = Image.open(io.BytesIO(result.stdout))
    image.load()
    return image


def _metadata_args(metadata: dict[str, str]) -> list[str]:
    args: list[str] = []
    for key, value in metadata.items():
        args += ["-metadata", f"{key}={value}"]
    return args


def cut_passthrough(
    input_path: Path,
    time_range: TimeRange,
    output_path: Path,
    metadata: dict[str, str],
    include_audio: bool = True,
) -> None:
    """Stream-copy *time_range* into a QuickTime container.

    The bitstream and the display matrix are copied unchanged, so the range
    should start on a keyframe.
    """
    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-ss", f"{time_range.start:.3f}",
        "-i", str(input_path),
        "-t", f"{time_range.duration:.3f}",
        "-map", "0:v:0",
    ]
    if include_audio:
        cmd += ["-map", "0:a:0?"]
    cmd += [
        "-c", "copy",
        "-map_metadata", "-1",
        "-movflags", "use_metadata_tags",
        *_metadata_args(metadata),
        "-f", "mov",
        str(output_path),
    ]
    logger.debug("passthrough cut: %s", " ".join(cmd))
    subprocess.run(cmd, capture_output=True, check=True)


def encode_clip(
    input_path: Path,
    time_range: TimeRange,
    output_path: Path,
    metadata: dict[str, str],
    size: tuple[int, int],
    video_codec: str = "libx264",
    crf: int = 23,
    speed: str = "medium",
    audio_bitrate: str | None = "128k",
) -> None:
    """Re-encode *time_range* at *size* into a QuickTime container.

    ``audio_bitrate=None`` drops audio.
    """
    width, height = size
    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-ss", f"{time_range.start:.3f}",
        "-i", str(input_path),
        "-t", f"{time_range.duration:.3f}",
        "-map", "0:v:0",
    ]
    if audio_bitrate:
        cmd += ["-map", "0:a:0?", "-c:a", "aac", "-b:a", audio_bitrate]
    cmd += [
        "-vf", f"scale={width}:{height}",
        "-c:v", video_codec,
        "-preset", speed,
        "-crf", str(crf),
        "-pix_fmt", "yuv420p",
        "-map_metadata", "-1",
        "-movflags", "use_metadata_tags+faststart",
        *_metadata_args(metadata),
        "-f", "mov",
        str(output_path),
    ]
    logger.debug("re-encode: %s", " ".join(cmd))
    subprocess.run(cmd, capture_output=True, check=True)


def remux_with_metadata(
    input_path: Path, output_path: Path, metadata: dict[str, str]
) -> None:
    """Copy all streams into a new QuickTime file with only *metadata* set."""
    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-i", str(input_path),
        "-map", "0",
        "-c", "copy",
        "-map_metadata", "-1",
        "-movflags", "use_metadata_tags",
        *_metadata_args(metadata),
        "-f", "mov",
        str(output_path),
    ]
    subprocess.run(cmd, capture_output=True, check=True)


def read_clip_metadata(input_path: Path) -> dict[str, str]:
    """Container-level metadata tags of a clip."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)
    return dict(data.get("format", {}).get("tags", {}))
