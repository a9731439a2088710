"""Error taxonomy for the conversion pipeline.

Every failure the pipeline reports is a ``LivePhotoError`` subclass whose
``kind`` names one member of :class:`ErrorKind`. The classifier matches on
that kind only.
"""

from enum import Enum


class ErrorKind(Enum):
    PERMISSION_DENIED = "permission_denied"
    FILE_NOT_FOUND = "file_not_found"
    FILE_TOO_SMALL = "file_too_small"
    VIDEO_TOO_SHORT = "video_too_short"
    NO_VIDEO_TRACK = "no_video_track"
    INVALID_INPUT = "invalid_input"
    EXPORT_FAILED = "export_failed"
    IMAGE_PROCESSING_FAILED = "image_processing_failed"
    SAVE_FAILED = "save_failed"
    CREATION_FAILED = "creation_failed"
    UNKNOWN = "unknown"


class LivePhotoError(Exception):
    """Base class for classified pipeline failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.kind.value)
        self.detail = detail


class PermissionDeniedError(LivePhotoError):
    kind = ErrorKind.PERMISSION_DENIED


class SourceNotFoundError(LivePhotoError):
    kind = ErrorKind.FILE_NOT_FOUND


class FileTooSmallError(LivePhotoError):
    kind = ErrorKind.FILE_TOO_SMALL


class VideoTooShortError(LivePhotoError):
    kind = ErrorKind.VIDEO_TOO_SHORT


class NoVideoTrackError(LivePhotoError):
    kind = ErrorKind.NO_VIDEO_TRACK


class InvalidInputError(LivePhotoError):
    kind = ErrorKind.INVALID_INPUT


class ExportFailedError(LivePhotoError):
    kind = ErrorKind.EXPORT_FAILED


class ImageProcessingFailedError(LivePhotoError):
    kind = ErrorKind.IMAGE_PROCESSING_FAILED


class SaveFailedError(LivePhotoError):
    kind = ErrorKind.SAVE_FAILED


class CreationFailedError(LivePhotoError):
    kind = ErrorKind.CREATION_FAILED
