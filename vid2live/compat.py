"""Quick compatibility check — reports issues without converting."""

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from vid2live import ffutil
from vid2live.classifier import Severity
from vid2live.errors import ErrorKind
from vid2live.models import ProbeResult
from vid2live.profiles import frame_rate_in_range
from vid2live.prober import SHORT_VIDEO_SECONDS

MIN_FILE_BYTES = 100 * 1024
LARGE_FILE_BYTES = 500 * 1024 * 1024
SCANNED_SECONDS = 10.0
MAX_DIMENSION = 1920


@dataclass(frozen=True)
class Issue:
    kind: ErrorKind | None
    severity: Severity
    message: str


@dataclass
class CompatibilityReport:
    issues: list[Issue] = field(default_factory=list)
    probe: ProbeResult | None = None

    @property
    def compatible(self) -> bool:
        return not any(
            i.severity in (Severity.ERROR, Severity.CRITICAL) for i in self.issues
        )

    def kinds(self) -> list[ErrorKind]:
        return [i.kind for i in self.issues if i.kind is not None]


def check_compatibility(input_path: Path) -> CompatibilityReport:
    """Inspect *input_path* and list everything that may affect conversion."""
    report = CompatibilityReport()

    if not input_path.is_file():
        report.issues.append(Issue(ErrorKind.FILE_NOT_FOUND, Severity.ERROR, "File does not exist"))
        return report

    size = input_path.stat().st_size
    if size < MIN_FILE_BYTES:
        report.issues.append(Issue(ErrorKind.FILE_TOO_SMALL, Severity.WARNING, "File is very small"))
    elif size > LARGE_FILE_BYTES:
        report.issues.append(Issue(None, Severity.INFO, "Large file; processing may take a while"))

    try:
        probe = ffutil.probe(input_path)
    except (json.JSONDecodeError, KeyError):
        report.issues.append(Issue(ErrorKind.INVALID_INPUT, Severity.ERROR, "Unreadable probe output"))
        return report
    except ValueError:
        report.issues.append(Issue(ErrorKind.NO_VIDEO_TRACK, Severity.ERROR, "No video track"))
        return report
    except subprocess.CalledProcessError:
        report.issues.append(Issue(ErrorKind.INVALID_INPUT, Severity.ERROR, "Container could not be opened"))
        return report

    report.probe = probe
    if probe.duration < SHORT_VIDEO_SECONDS:
        report.issues.append(Issue(
            ErrorKind.VIDEO_TOO_SHORT, Severity.WARNING,
            f"Video is only {probe.duration:.2f}s long",
        ))
    elif probe.duration > SCANNED_SECONDS:
        report.issues.append(Issue(
            None, Severity.INFO,
            f"Only the first {SCANNED_SECONDS:.0f}s are scanned for a clip",
        ))

    if max(probe.width, probe.height) > MAX_DIMENSION:
        report.issues.append(Issue(None, Severity.INFO, "Resolution is high and will be reduced"))
    if not frame_rate_in_range(probe.fps):
        report.issues.append(Issue(
            None, Severity.WARNING, f"Frame rate {probe.fps:.2f} is outside 24-60 fps",
        ))
    return report
