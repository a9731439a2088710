"""Key-frame extraction and frame quality scoring."""

import logging
from typing import Callable

import numpy as np
from PIL import Image

from vid2live.errors import ImageProcessingFailedError
from vid2live.ffutil import FrameReadError
from vid2live.models import TimeRange

logger = logging.getLogger(__name__)

CENTERING_WEIGHT = 0.3
SHARPNESS_WEIGHT = 0.4
BRIGHTNESS_WEIGHT = 0.3

SCORE_SAMPLES = 1000
SHARPNESS_NORM = 50.0
TARGET_BRIGHTNESS = 0.5

FrameRenderer = Callable[[float], Image.Image]


def _gray(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("L"), dtype=np.int16)


def centering_score(timestamp: float, time_range: TimeRange) -> float:
    half = time_range.duration / 2
    if half <= 0:
        return 1.0
    return max(0.0, 1.0 - abs(timestamp - time_range.midpoint) / half)


def sharpness_score(image: Image.Image) -> float:
    """High-frequency content from sampled horizontal neighbour deltas."""
    gray = _gray(image)
    if gray.shape[1] < 2:
        return 0.0
    deltas = np.abs(gray[:, 1:] - gray[:, :-1]).reshape(-1)
    step = max(1, deltas.size // SCORE_SAMPLES)
    return min(float(deltas[::step].mean()) / SHARPNESS_NORM, 1.0)


def brightness_score(image: Image.Image) -> float:
    """1.0 at mid-gray, falling to 0.0 at pure black or white."""
    values = _gray(image).reshape(-1)
    step = max(1, values.size // SCORE_SAMPLES)
    mean = float(values[::step].mean()) / 255.0
    return max(0.0, 1.0 - abs(mean - TARGET_BRIGHTNESS) * 2.0)


def frame_quality(image: Image.Image, timestamp: float, time_range: TimeRange) -> float:
    return (
        CENTERING_WEIGHT * centering_score(timestamp, time_range)
        + SHARPNESS_WEIGHT * sharpness_score(image)
        + BRIGHTNESS_WEIGHT * brightness_score(image)
    )


def candidate_times(time_range: TimeRange, candidates: int) -> list[float]:
    if candidates <= 1 or time_range.duration <= 0:
        return [time_range.start]
    step = time_range.duration / (candidates - 1)
    return [time_range.start + i * step for i in range(candidates)]


def extract_key_frame(
    render: FrameRenderer,
    time_range: TimeRange,
    candidates: int = 1,
) -> Image.Image:
    """Render the still for *time_range*.

    With one candidate the frame at the range start is returned. With more,
    evenly spaced frames are scored and the best one is kept.
    """
    best: tuple[float, float, Image.Image] | None = None
    for t in candidate_times(time_range, candidates):
        try:
            image = render(t)
        except FrameReadError as e:
            logger.warning("Could not render frame at %.2fs: %s", t, e)
            continue
        if candidates <= 1:
            return image

        score = frame_quality(image, t, time_range)
        logger.debug("candidate %.2fs quality %.3f", t, score)
        if best is None or score > best[0]:
            best = (score, t, image)

    if best is None:
        raise ImageProcessingFailedError(
            f"No frame could be rendered in {time_range.start:.2f}-{time_range.end:.2f}s"
        )
    logger.info("Key frame at %.2fs (quality %.3f)", best[1], best[0])
    return best[2]
