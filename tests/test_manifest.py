"""Tests for manifest loading and validation."""

import json
from pathlib import Path

import pytest

from vid2live.manifest import Manifest, load_manifest


class TestManifest:
    def test_minimal(self):
        m = Manifest(inputs=[Path("in.mov")], library=Path("lib"))
        assert m.version == "1"
        assert m.quality == "balanced"
        assert m.candidate_frames == 1
        assert m.include_audio is True
        assert m.max_concurrency == 2


class TestLoadManifest:
    def test_load_sample(self, sample_manifest_path: Path):
        m = load_manifest(sample_manifest_path)
        base = sample_manifest_path.parent
        assert m.version == "1"
        assert m.inputs == [base / "beach.mov", base / "clips" / "dog.mp4"]
        assert m.library == base / "library"
        assert m.quality == "fast"
        assert m.candidate_frames == 5
        assert m.include_audio is False
        assert m.max_concurrency == 3

    def test_absolute_paths_kept(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({"inputs": ["/videos/a.mov"], "library": "/photos"}))
        m = load_manifest(path)
        assert m.inputs == [Path("/videos/a.mov")]
        assert m.library == Path("/photos")

    def test_load_invalid_json(self, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("not json")
        with pytest.raises(json.JSONDecodeError):
            load_manifest(bad)

    def test_load_missing_fields(self, tmp_path: Path):
        incomplete = tmp_path / "incomplete.json"
        incomplete.write_text('{"version": "1"}')
        with pytest.raises(ValueError, match="must contain"):
            load_manifest(incomplete)

    def test_empty_inputs(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({"inputs": [], "library": "lib"}))
        with pytest.raises(ValueError, match="non-empty"):
            load_manifest(path)

    def test_unknown_quality(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({"inputs": ["a.mov"], "library": "lib", "quality": "ultra"}))
        with pytest.raises(ValueError, match="Unknown quality"):
            load_manifest(path)

    def test_zero_concurrency(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({"inputs": ["a.mov"], "library": "lib", "max_concurrency": 0}))
        with pytest.raises(ValueError, match="at least 1"):
            load_manifest(path)
