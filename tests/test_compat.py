"""Tests for the quick compatibility check."""

import subprocess
from pathlib import Path
from unittest.mock import patch

from conftest import make_probe
from vid2live.classifier import Severity
from vid2live.compat import check_compatibility
from vid2live.errors import ErrorKind


def _video(tmp_path: Path, size: int = 200 * 1024) -> Path:
    path = tmp_path / "video.mov"
    path.write_bytes(b"\x00" * size)
    return path


class TestCheckCompatibility:
    def test_missing_file(self, tmp_path: Path):
        report = check_compatibility(tmp_path / "nope.mov")
        assert not report.compatible
        assert report.kinds() == [ErrorKind.FILE_NOT_FOUND]

    @patch("vid2live.compat.ffutil.probe")
    def test_clean_source(self, mock_probe, tmp_path: Path):
        mock_probe.return_value = make_probe(duration=4.0, width=1280, height=720)
        report = check_compatibility(_video(tmp_path))
        assert report.compatible
        assert report.issues == []
        assert report.probe.duration == 4.0

    @patch("vid2live.compat.ffutil.probe")
    def test_short_video_warning(self, mock_probe, tmp_path: Path):
        mock_probe.return_value = make_probe(duration=0.5, width=1280, height=720)
        report = check_compatibility(_video(tmp_path))
        assert report.compatible
        assert ErrorKind.VIDEO_TOO_SHORT in report.kinds()
        assert report.issues[0].severity is Severity.WARNING

    @patch("vid2live.compat.ffutil.probe")
    def test_tiny_file_warning(self, mock_probe, tmp_path: Path):
        mock_probe.return_value = make_probe(duration=2.0, width=1280, height=720)
        report = check_compatibility(_video(tmp_path, size=1024))
        assert report.compatible
        assert report.kinds() == [ErrorKind.FILE_TOO_SMALL]

    @patch("vid2live.compat.ffutil.probe")
    def test_informational_notes(self, mock_probe, tmp_path: Path):
        mock_probe.return_value = make_probe(duration=30.0, width=3840, height=2160, fps=120.0)
        report = check_compatibility(_video(tmp_path))
        assert report.compatible
        severities = [i.severity for i in report.issues]
        assert severities.count(Severity.INFO) == 2
        assert Severity.WARNING in severities

    @patch("vid2live.compat.ffutil.probe")
    def test_no_video_track(self, mock_probe, tmp_path: Path):
        mock_probe.side_effect = ValueError("No video stream found")
        report = check_compatibility(_video(tmp_path))
        assert not report.compatible
        assert report.kinds() == [ErrorKind.NO_VIDEO_TRACK]

    @patch("vid2live.compat.ffutil.probe")
    def test_unopenable(self, mock_probe, tmp_path: Path):
        mock_probe.side_effect = subprocess.CalledProcessError(1, ["ffprobe"])
        report = check_compatibility(_video(tmp_path))
        assert not report.compatible
        assert report.kinds() == [ErrorKind.INVALID_INPUT]
