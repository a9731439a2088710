"""Tests for content pairing of the still and the clip."""

import uuid
from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from vid2live.editors.pairing import (
    CONTENT_ID_KEY,
    LIVE_PHOTO_KEY,
    STILL_IMAGE_TIME_KEY,
    ContentPairing,
    mint_content_identifier,
    read_still_metadata,
    verify_pair,
)
from vid2live.errors import ImageProcessingFailedError


def test_minted_identifier_is_uppercase_uuid():
    content_id = mint_content_identifier()
    assert content_id == content_id.upper()
    assert uuid.UUID(content_id)


def test_identifiers_are_unique():
    assert ContentPairing().content_id != ContentPairing().content_id


class TestMetadata:
    def test_still_and_clip_share_identifier(self):
        pairing = ContentPairing()
        assert pairing.image_metadata()["17"] == pairing.clip_metadata()[CONTENT_ID_KEY]

    def test_clip_keys(self):
        meta = ContentPairing("ABC").clip_metadata()
        assert meta == {
            LIVE_PHOTO_KEY: "1",
            CONTENT_ID_KEY: "ABC",
            STILL_IMAGE_TIME_KEY: "0",
        }

    def test_still_image_time_defaults_to_zero(self):
        assert ContentPairing().image_metadata()["21"] == 0


class TestWriteStill:
    def test_maker_note_readable(self, tmp_path: Path):
        pairing = ContentPairing()
        out = pairing.write_still(Image.new("RGB", (32, 24), (200, 100, 50)), tmp_path / "still.jpg")
        assert out.read_bytes()[:3] == b"\xff\xd8\xff"
        assert read_still_metadata(out) == {"17": pairing.content_id, "21": 0}

    def test_converts_rgba(self, tmp_path: Path):
        out = ContentPairing().write_still(Image.new("RGBA", (8, 8)), tmp_path / "still.jpg")
        with Image.open(out) as image:
            assert image.mode == "RGB"

    def test_unwritable_path(self, tmp_path: Path):
        with pytest.raises(ImageProcessingFailedError):
            ContentPairing().write_still(Image.new("RGB", (8, 8)), tmp_path / "missing" / "still.jpg")


class TestRewriteStill:
    def test_reapplies_metadata(self, tmp_path: Path):
        plain = tmp_path / "plain.jpg"
        Image.new("RGB", (16, 16), (0, 128, 255)).save(plain, "JPEG")
        assert read_still_metadata(plain) == {}

        pairing = ContentPairing("SAME-ID")
        out = pairing.rewrite_still(plain, tmp_path / "again.jpg")
        assert read_still_metadata(out)["17"] == "SAME-ID"

    def test_not_an_image(self, tmp_path: Path):
        junk = tmp_path / "junk.jpg"
        junk.write_bytes(b"not a jpeg")
        with pytest.raises(ImageProcessingFailedError):
            ContentPairing().rewrite_still(junk, tmp_path / "out.jpg")


class TestVerifyPair:
    @pytest.fixture
    def still(self, tmp_path: Path) -> tuple[Path, ContentPairing]:
        pairing = ContentPairing()
        return pairing.write_still(Image.new("RGB", (16, 16)), tmp_path / "still.jpg"), pairing

    @patch("vid2live.editors.pairing.ffutil.read_clip_metadata")
    def test_matching_pair(self, mock_read, still, tmp_path: Path):
        path, pairing = still
        mock_read.return_value = pairing.clip_metadata()
        assert verify_pair(path, tmp_path / "clip.mov") == []
        mock_read.assert_called_once_with(tmp_path / "clip.mov")

    @patch("vid2live.editors.pairing.ffutil.read_clip_metadata")
    def test_identifier_mismatch(self, mock_read, still, tmp_path: Path):
        path, pairing = still
        mock_read.return_value = {**pairing.clip_metadata(), CONTENT_ID_KEY: "OTHER"}
        (problem,) = verify_pair(path, tmp_path / "clip.mov")
        assert "'OTHER'" in problem

    @patch("vid2live.editors.pairing.ffutil.read_clip_metadata")
    def test_clip_without_tags(self, mock_read, still, tmp_path: Path):
        path, _ = still
        mock_read.return_value = {}
        assert len(verify_pair(path, tmp_path / "clip.mov")) == 2

    @patch("vid2live.editors.pairing.ffutil.read_clip_metadata")
    def test_untagged_still(self, mock_read, tmp_path: Path):
        plain = tmp_path / "plain.jpg"
        Image.new("RGB", (16, 16)).save(plain, "JPEG")
        mock_read.return_value = ContentPairing().clip_metadata()
        problems = verify_pair(plain, tmp_path / "clip.mov")
        assert problems[0] == "still has no content identifier"
