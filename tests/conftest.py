"""Shared test fixtures."""

from pathlib import Path

import pytest

from vid2live.models import ProbeResult

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Smallest byte prefixes the asset store accepts for each resource type
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
MOV_BYTES = b"\x00\x00\x00\x14ftypqt  " + b"\x00" * 64


def make_probe(**overrides) -> ProbeResult:
    """A 10s 1920x1080 30fps H.264 source with audio, unless overridden."""
    fields = dict(
        duration=10.0,
        width=1920,
        height=1080,
        fps=30.0,
        has_audio=True,
        track_format_count=2,
        codec_video="h264",
        codec_audio="aac",
    )
    fields.update(overrides)
    return ProbeResult(**fields)


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def source_video(tmp_path: Path) -> Path:
    """A non-empty file standing in for a source video."""
    path = tmp_path / "source.mov"
    path.write_bytes(MOV_BYTES)
    return path


@pytest.fixture
def media_files(tmp_path: Path) -> tuple[Path, Path]:
    photo = tmp_path / "still.jpg"
    video = tmp_path / "clip.mov"
    photo.write_bytes(JPEG_BYTES)
    video.write_bytes(MOV_BYTES)
    return photo, video
