"""Shared data types used across vid2live."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class TimeRange:
    """A start/duration pair in seconds."""

    start: float
    duration: float

    @property
    def end(self) -> float:
        return self.start + self.duration

    @property
    def midpoint(self) -> float:
        return self.start + self.duration / 2


@dataclass(frozen=True)
class ProbeResult:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    width: int
    height: int
    fps: float
    has_audio: bool
    track_format_count: int
    codec_video: str
    codec_audio: str | None = None
    rotation: int = 0
    size_bytes: int = 0

    @property
    def native_size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def display_size(self) -> tuple[int, int]:
        """Frame size after the display rotation is applied."""
        if self.rotation % 180:
            return (self.height, self.width)
        return (self.width, self.height)


@dataclass
class MediaPair:
    """A still image and clip that share a content identifier.

    Both files live in a job-scoped temporary directory.
    """

    image_path: Path
    clip_path: Path
    content_id: str
    still_image_time: int = 0

    def image_bytes(self) -> bytes:
        return self.image_path.read_bytes()

    def clip_bytes(self) -> bytes:
        return self.clip_path.read_bytes()


@dataclass(frozen=True)
class AssetRecord:
    """An asset persisted by an asset store."""

    id: str
    resources: tuple[str, ...] = field(default_factory=tuple)
