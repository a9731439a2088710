"""Quality tiers: export preset, maximum clip duration and target resolution."""

from dataclasses import dataclass

from vid2live.models import ProbeResult

# Source codecs the libx264 re-encode presets accept as input.
ENCODABLE_SOURCE_CODECS = frozenset({
    "h264", "hevc", "mpeg4", "mpeg2video", "vp8", "vp9", "av1",
    "prores", "mjpeg", "dnxhd",
})

# Codecs a live photo clip may carry without re-encoding.
PASSTHROUGH_CODECS = frozenset({"h264", "hevc"})

MIN_FRAME_RATE = 24.0
MAX_FRAME_RATE = 60.0


@dataclass(frozen=True)
class ExportPreset:
    """How a clip is encoded."""

    name: str
    passthrough: bool = False
    always_encode: bool = False
    video_codec: str = "libx264"
    crf: int = 23
    speed: str = "medium"
    audio_bitrate: str = "128k"
    source_codecs: frozenset[str] = ENCODABLE_SOURCE_CODECS


@dataclass(frozen=True)
class QualityProfile:
    name: str
    preset: ExportPreset
    max_duration: float
    target_resolution: tuple[int, int] | None = None


PROFILES: dict[str, QualityProfile] = {
    "high": QualityProfile(
        name="high",
        preset=ExportPreset(name="highest", always_encode=True, crf=18, speed="slow"),
        max_duration=5.0,
        target_resolution=(1920, 1080),
    ),
    "balanced": QualityProfile(
        name="balanced",
        preset=ExportPreset(name="1280x720", crf=23, speed="medium"),
        max_duration=3.0,
        target_resolution=(1280, 720),
    ),
    "fast": QualityProfile(
        name="fast",
        preset=ExportPreset(name="960x540", crf=28, speed="veryfast", audio_bitrate="96k"),
        max_duration=2.0,
        target_resolution=(960, 540),
    ),
    "custom": QualityProfile(
        name="custom",
        preset=ExportPreset(name="passthrough", passthrough=True),
        max_duration=5.0,
        target_resolution=None,
    ),
}

DEFAULT_PROFILE = "balanced"


def get_profile(name: str) -> QualityProfile:
    try:
        return PROFILES[name]
    except KeyError:
        choices = ", ".join(PROFILES)
        raise ValueError(f"Unknown quality profile {name!r}; choose one of {choices}") from None


def _even(value: float) -> int:
    return max(2, int(value) // 2 * 2)


def fit_resolution(probe: ProbeResult, target: tuple[int, int] | None) -> tuple[int, int]:
    """Size of the encoded frame for *probe* under a *target* bounding box.

    The box is oriented like the displayed frame (a portrait source fits a
    portrait box), the aspect ratio is kept, sources are never upscaled and
    both sides are rounded down to even numbers.
    """
    width, height = probe.display_size
    if target is None:
        return (_even(width), _even(height))

    box_w, box_h = target
    if (height > width) != (box_h > box_w):
        box_w, box_h = box_h, box_w

    scale = min(box_w / width, box_h / height, 1.0)
    return (_even(round(width * scale)), _even(round(height * scale)))


def exceeds_target(probe: ProbeResult, profile: QualityProfile) -> bool:
    if profile.target_resolution is None:
        return False
    return fit_resolution(probe, profile.target_resolution) != fit_resolution(probe, None)


def frame_rate_in_range(fps: float) -> bool:
    return fps <= 0 or MIN_FRAME_RATE <= fps <= MAX_FRAME_RATE
