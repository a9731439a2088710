"""Error classifier — maps pipeline failures to user-facing guidance."""

from dataclasses import dataclass, field
from enum import Enum

from vid2live.errors import ErrorKind, LivePhotoError


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorInfo:
    kind: ErrorKind
    title: str
    message: str
    suggestions: tuple[str, ...]
    severity: Severity
    retryable: bool = False


@dataclass
class ClassifiedError:
    """A classified failure with the raw error kept for diagnostics."""

    info: ErrorInfo
    raw: BaseException | None = field(default=None, repr=False)

    @property
    def kind(self) -> ErrorKind:
        return self.info.kind


_TABLE: dict[ErrorKind, tuple[str, str, tuple[str, ...], Severity, bool]] = {
    ErrorKind.PERMISSION_DENIED: (
        "Library access denied",
        "Live photos cannot be saved without write access to the photo library.",
        (
            "Grant this application write access to the photo library",
            "Check that the library directory exists and is writable",
            "Restart the application after changing permissions",
        ),
        Severity.CRITICAL,
        False,
    ),
    ErrorKind.FILE_NOT_FOUND: (
        "Video file not found",
        "The selected video could not be found; it may have been moved or deleted.",
        (
            "Select the video again",
            "Make sure no other application has the file locked",
        ),
        Severity.ERROR,
        False,
    ),
    ErrorKind.FILE_TOO_SMALL: (
        "Video file too small",
        "The file is too small to be a usable video.",
        (
            "Choose a larger video file",
            "Check that the file is a complete, valid video",
        ),
        Severity.WARNING,
        False,
    ),
    ErrorKind.VIDEO_TOO_SHORT: (
        "Video too short",
        "Videos shorter than one second make poor live photos.",
        (
            "Choose a video at least 1 second long",
            "Videos of 1-5 seconds give the best results",
        ),
        Severity.WARNING,
        False,
    ),
    ErrorKind.NO_VIDEO_TRACK: (
        "No video track",
        "The file does not contain a video track; it may be audio-only or damaged.",
        (
            "Make sure the selected file is a video",
            "Use a standard .mov or .mp4 file",
            "Check that the file plays in a video player",
        ),
        Severity.ERROR,
        False,
    ),
    ErrorKind.INVALID_INPUT: (
        "Unsupported video format",
        "The video container could not be opened.",
        (
            "Convert the video to MP4 or MOV and try again",
            "Check that the file is not damaged or DRM protected",
        ),
        Severity.WARNING,
        False,
    ),
    ErrorKind.EXPORT_FAILED: (
        "Clip export failed",
        "The clip could not be exported, often because of low disk space or an unsupported codec.",
        (
            "Free up disk space",
            "Switch the quality setting to balanced or fast",
            "Try a different video to rule out a damaged source",
        ),
        Severity.ERROR,
        True,
    ),
    ErrorKind.IMAGE_PROCESSING_FAILED: (
        "Still image failed",
        "No still image could be rendered from the video.",
        (
            "Check that the video plays correctly",
            "Try a different video",
        ),
        Severity.ERROR,
        False,
    ),
    ErrorKind.SAVE_FAILED: (
        "Save failed",
        "The live photo could not be saved to the library.",
        (
            "Check the library permissions",
            "Make sure there is enough free storage",
            "Try the conversion again",
        ),
        Severity.ERROR,
        True,
    ),
    ErrorKind.CREATION_FAILED: (
        "Live photo creation failed",
        "The library accepted the files but did not create an asset.",
        (
            "Try the conversion again",
            "Switch the quality setting to balanced or fast",
        ),
        Severity.ERROR,
        True,
    ),
    ErrorKind.UNKNOWN: (
        "Something went wrong",
        "An unexpected error occurred.",
        (
            "Restart the application and try again",
            "Report the problem with the diagnostics log attached",
        ),
        Severity.ERROR,
        False,
    ),
}


def classify(error: BaseException) -> ErrorInfo:
    """Classify *error*. Pure: no I/O and no side effects."""
    kind = error.kind if isinstance(error, LivePhotoError) else ErrorKind.UNKNOWN
    title, message, suggestions, severity, retryable = _TABLE[kind]
    detail = str(error)
    if detail and detail != kind.value:
        message = f"{message} ({detail})"
    return ErrorInfo(
        kind=kind,
        title=title,
        message=message,
        suggestions=suggestions,
        severity=severity,
        retryable=retryable,
    )


def classify_error(error: BaseException) -> ClassifiedError:
    return ClassifiedError(info=classify(error), raw=error)


def format_for_display(info: ErrorInfo) -> str:
    lines = [info.title, "", info.message]
    if info.suggestions:
        lines += ["", "Suggestions:"]
        lines += [f"{i}. {s}" for i, s in enumerate(info.suggestions, 1)]
    return "\n".join(lines)
