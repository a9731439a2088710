"""Clip exporter — passthrough cut or re-encode, tagged for pairing."""

import logging
import subprocess
from enum import Enum
from pathlib import Path

from vid2live import ffutil
from vid2live.editors.pairing import ContentPairing
from vid2live.errors import ExportFailedError
from vid2live.models import ProbeResult, TimeRange
from vid2live.profiles import (
    PASSTHROUGH_CODECS,
    QualityProfile,
    exceeds_target,
    fit_resolution,
    frame_rate_in_range,
)


class ExportMode(Enum):
    PASSTHROUGH = "passthrough"
    REENCODE = "reencode"


def keyframe_aligned(start: float, keyframes: list[float], fps: float) -> bool:
    """True when *start* lies within half a frame of a keyframe."""
    if start <= 0:
        return True
    tolerance = 0.5 / fps if fps > 0 else 0.02
    return any(abs(start - k) <= tolerance for k in keyframes)


def reencode_reasons(
    probe: ProbeResult, profile: QualityProfile, aligned: bool
) -> list[str]:
    """Why *profile* needs a re-encode of this source; empty means it does not."""
    preset = profile.preset
    if preset.passthrough:
        return []
    reasons: list[str] = []
    if preset.always_encode:
        reasons.append(f"preset {preset.name} always re-encodes")
    if exceeds_target(probe, profile):
        reasons.append(f"{probe.width}x{probe.height} exceeds {profile.target_resolution}")
    if not frame_rate_in_range(probe.fps):
        reasons.append(f"frame rate {probe.fps:.2f} outside 24-60")
    if probe.codec_video not in PASSTHROUGH_CODECS:
        reasons.append(f"codec {probe.codec_video} cannot be copied")
    if not aligned:
        reasons.append("range start is not on a keyframe")
    return reasons


class ClipExporter:
    """Produces the clip half of a pair from a source video."""

    def __init__(self, include_audio: bool = True, logger: logging.Logger | None = None) -> None:
        self.include_audio = include_audio
        self.log = logger or logging.getLogger(__name__)

    def _aligned(self, source: Path, probe: ProbeResult, time_range: TimeRange) -> bool:
        if time_range.start <= 0:
            return True
        try:
            keyframes = ffutil.keyframe_times(source)
        except subprocess.CalledProcessError as e:
            raise ExportFailedError(f"Could not read keyframes of {source}") from e
        return keyframe_aligned(time_range.start, keyframes, probe.fps)

    def plan(self, source: Path, probe: ProbeResult, time_range: TimeRange,
             profile: QualityProfile) -> ExportMode:
        if profile.preset.passthrough:
            if not self._aligned(source, probe, time_range):
                raise ExportFailedError(
                    f"Passthrough cannot start at {time_range.start:.3f}s: no keyframe there"
                )
            return ExportMode.PASSTHROUGH

        # Keyframes are only probed when nothing else already forces a re-encode
        reasons = reencode_reasons(probe, profile, aligned=True)
        if not reasons:
            reasons = reencode_reasons(probe, profile, self._aligned(source, probe, time_range))
        if reasons:
            self.log.info("Re-encoding with preset %s: %s", profile.preset.name, "; ".join(reasons))
            return ExportMode.REENCODE
        return ExportMode.PASSTHROUGH

    def export(
        self,
        source: Path,
        probe: ProbeResult,
        time_range: TimeRange,
        pairing: ContentPairing,
        profile: QualityProfile,
        output_path: Path,
    ) -> Path:
        """Write the clip for *time_range* to *output_path*."""
        mode = self.plan(source, probe, time_range, profile)
        metadata = pairing.clip_metadata()
        audio = self.include_audio and probe.has_audio

        try:
            if mode is ExportMode.PASSTHROUGH:
                ffutil.cut_passthrough(source, time_range, output_path, metadata, include_audio=audio)
            else:
                preset = profile.preset
                if probe.codec_video not in preset.source_codecs:
                    raise ExportFailedError(
                        f"Preset {preset.name} does not support {probe.codec_video} sources"
                    )
                size = fit_resolution(probe, profile.target_resolution)
                ffutil.encode_clip(
                    source,
                    time_range,
                    output_path,
                    metadata,
                    size=size,
                    video_codec=preset.video_codec,
                    crf=preset.crf,
                    speed=preset.speed,
                    audio_bitrate=preset.audio_bitrate if audio else None,
                )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr if isinstance(e.stderr, str) else (e.stderr or b"").decode(errors="replace")
            raise ExportFailedError(
                f"ffmpeg {mode.value} failed: {stderr[-500:]}" if stderr else f"ffmpeg {mode.value} failed"
            ) from e

        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise ExportFailedError(f"Export produced no output at {output_path}")

        self.log.info(
            "Exported %.2fs clip (%s) to %s", time_range.duration, mode.value, output_path.name
        )
        return output_path
