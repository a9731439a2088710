"""Stable-segment selection by sampled motion scoring."""

import logging
from typing import Callable

import numpy as np

from vid2live.ffutil import FrameReadError
from vid2live.models import ProbeResult, TimeRange
from vid2live.profiles import QualityProfile

logger = logging.getLogger(__name__)

SCAN_LIMIT = 10.0
SCAN_STEP = 0.5
FRAMES_PER_WINDOW = 5
MAX_SAMPLES = 10_000
ANALYSIS_WIDTH = 160
DEFAULT_FPS = 25.0

FrameSampler = Callable[[float], np.ndarray]


def analysis_size(probe: ProbeResult) -> tuple[int, int]:
    """Downscaled (width, height) used when sampling frames for motion."""
    width, height = probe.display_size
    scaled_h = max(2, round(ANALYSIS_WIDTH * height / max(width, 1) / 2) * 2)
    return (ANALYSIS_WIDTH, scaled_h)


def frame_difference(a: np.ndarray, b: np.ndarray) -> float:
    """Mean absolute difference of two frames in [0, 1].

    At most MAX_SAMPLES evenly strided values are compared. Frames of
    different shape count as completely different.
    """
    if a.shape != b.shape:
        return 1.0
    flat_a = a.reshape(-1)
    flat_b = b.reshape(-1)
    step = max(1, flat_a.size // MAX_SAMPLES)
    diff = np.abs(flat_a[::step].astype(np.int16) - flat_b[::step].astype(np.int16))
    if diff.size == 0:
        return 0.0
    return min(float(diff.mean()) / 255.0, 1.0)


def window_starts(duration: float, max_duration: float) -> list[float]:
    """Candidate window starts within the scanned prefix of the source."""
    limit = min(duration, SCAN_LIMIT)
    starts: list[float] = []
    i = 0
    while i * SCAN_STEP + max_duration <= limit + 1e-9:
        starts.append(i * SCAN_STEP)
        i += 1
    return starts or [0.0]


def motion_score(sample: FrameSampler, start: float, length: float) -> float:
    """Average consecutive-frame difference over a window."""
    step = length / (FRAMES_PER_WINDOW - 1)
    frames = [sample(start + i * step) for i in range(FRAMES_PER_WINDOW)]
    diffs = [frame_difference(frames[i], frames[i + 1]) for i in range(len(frames) - 1)]
    return sum(diffs) / len(diffs)


def select_segment(
    probe: ProbeResult,
    profile: QualityProfile,
    sample_frame: FrameSampler,
) -> TimeRange:
    """Pick the most visually stable window of ``profile.max_duration``.

    Sources no longer than the window are used whole. Otherwise windows
    starting every SCAN_STEP seconds within the first SCAN_LIMIT seconds are
    scored and the lowest motion score wins, earliest start on ties. Windows
    whose frames cannot be sampled are skipped.
    """
    max_duration = profile.max_duration
    if probe.duration <= max_duration:
        return TimeRange(start=0.0, duration=probe.duration)

    # No frame decodes at t == duration; stop one frame short
    last_frame = max(0.0, probe.duration - 1.0 / (probe.fps if probe.fps > 0 else DEFAULT_FPS))

    # Windows overlap, so frames are shared between neighbouring starts
    cache: dict[float, np.ndarray] = {}

    def cached(t: float) -> np.ndarray:
        key = round(min(t, last_frame), 3)
        if key not in cache:
            cache[key] = sample_frame(key)
        return cache[key]

    best_start = 0.0
    best_score = float("inf")
    for start in window_starts(probe.duration, max_duration):
        try:
            score = motion_score(cached, start, max_duration)
        except FrameReadError as e:
            logger.debug("window %.2f-%.2f skipped: %s", start, start + max_duration, e)
            continue
        logger.debug("window %.2f-%.2f motion score %.4f", start, start + max_duration, score)
        if score < best_score:
            best_score = score
            best_start = start

    if best_score == float("inf"):
        logger.warning("Motion sampling failed, using the first %.1fs", max_duration)
        best_start = 0.0

    logger.info("Selected segment %.2f-%.2fs", best_start, best_start + max_duration)
    return TimeRange(start=best_start, duration=max_duration)
