"""Unit tests for the vid2live HTTP API."""

import io
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from vid2live.classifier import classify_error
from vid2live.engine import BatchResult, ConversionJob, JobState
from vid2live.errors import ExportFailedError
from vid2live.models import AssetRecord, TimeRange
from vid2live.persistence import SaveOutcome, SaveTier
from vid2live.profiles import get_profile
from vid2live.web import create_app


@pytest.fixture
def app(tmp_path):
    app = create_app(work_dir=tmp_path, library=tmp_path / "library")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _upload(client, filename="test.mov", content=b"fake video data"):
    return client.post(
        "/api/upload",
        data={"file": (io.BytesIO(content), filename)},
        content_type="multipart/form-data",
    )


def _completed(source: Path) -> BatchResult:
    job = ConversionJob(
        index=0,
        source=source,
        profile=get_profile("balanced"),
        state=JobState.COMPLETED,
        time_range=TimeRange(1.0, 3.0),
        content_id="CID-1",
        outcome=SaveOutcome(asset=AssetRecord(id="ASSET-9"), tier=SaveTier.PRIMARY),
    )
    return BatchResult(jobs=[job])


def _failed(source: Path) -> BatchResult:
    job = ConversionJob(
        index=0,
        source=source,
        profile=get_profile("balanced"),
        state=JobState.FAILED,
        error=classify_error(ExportFailedError("encoder crashed")),
    )
    return BatchResult(jobs=[job])


def _events(resp) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in resp.get_data(as_text=True).splitlines()
        if line.startswith("data: ")
    ]


class TestProfiles:
    def test_lists_all_profiles(self, client):
        data = client.get("/api/profiles").get_json()
        assert data["default"] == "balanced"
        names = [p["name"] for p in data["profiles"]]
        assert names == ["high", "balanced", "fast", "custom"]
        balanced = data["profiles"][1]
        assert balanced["max_duration"] == 3.0
        assert balanced["target_resolution"] == [1280, 720]


class TestUpload:
    def test_upload_success(self, client):
        resp = _upload(client)
        assert resp.status_code == 200
        data = resp.get_json()
        assert "job_id" in data
        assert data["filename"] == "test.mov"

    def test_upload_no_file(self, client):
        resp = client.post("/api/upload")
        assert resp.status_code == 400

    def test_upload_creates_file(self, client, tmp_path):
        resp = _upload(client, content=b"CONTENT")
        job_id = resp.get_json()["job_id"]
        input_file = tmp_path / job_id / "input.mov"
        assert input_file.read_bytes() == b"CONTENT"


class TestCheck:
    def test_unknown_job(self, client):
        assert client.get("/api/jobs/nonexistent/check").status_code == 404

    @patch("vid2live.compat.ffutil.probe", side_effect=ValueError("No video stream found"))
    def test_reports_issues(self, mock_probe, client):
        job_id = _upload(client).get_json()["job_id"]
        data = client.get(f"/api/jobs/{job_id}/check").get_json()
        assert data["compatible"] is False
        kinds = [i["kind"] for i in data["issues"]]
        assert kinds == ["file_too_small", "no_video_track"]


class TestConvert:
    def test_unknown_job(self, client):
        resp = client.post("/api/jobs/nonexistent/convert", json={"quality": "fast"})
        assert resp.status_code == 404

    def test_unknown_quality(self, client):
        job_id = _upload(client).get_json()["job_id"]
        resp = client.post(f"/api/jobs/{job_id}/convert", json={"quality": "ultra"})
        assert resp.status_code == 400

    @patch("vid2live.web.routes.Converter")
    def test_convert_to_completion(self, mock_converter, client, tmp_path):
        job_id = _upload(client).get_json()["job_id"]
        mock_converter.return_value.convert.return_value = _completed(tmp_path / job_id / "input.mov")

        resp = client.post(f"/api/jobs/{job_id}/convert", json={"quality": "fast"})
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "started", "quality": "fast"}

        final = _events(client.get(f"/api/jobs/{job_id}/progress"))[-1]
        assert final["status"] == "done"
        assert final["result"]["asset_id"] == "ASSET-9"
        assert final["result"]["linked"] is True

        status = client.get(f"/api/jobs/{job_id}/status").get_json()
        assert status["status"] == "done"
        assert status["result"]["time_range"] == {"start": 1.0, "duration": 3.0}

        args, kwargs = mock_converter.return_value.convert.call_args
        assert args[1].name == "fast"

    @patch("vid2live.web.routes.Converter")
    def test_failed_conversion_reports_guidance(self, mock_converter, client, tmp_path):
        job_id = _upload(client).get_json()["job_id"]
        mock_converter.return_value.convert.return_value = _failed(tmp_path / job_id / "input.mov")

        client.post(f"/api/jobs/{job_id}/convert", json={})
        final = _events(client.get(f"/api/jobs/{job_id}/progress"))[-1]
        assert final["status"] == "error"
        assert final["error"]["kind"] == "export_failed"
        assert final["error"]["retryable"] is True
        assert final["error"]["suggestions"]

    @patch("vid2live.web.routes.Converter")
    def test_conversions_share_one_store(self, mock_converter, app, client, tmp_path):
        for _ in range(2):
            job_id = _upload(client).get_json()["job_id"]
            mock_converter.return_value.convert.return_value = _completed(tmp_path / job_id / "input.mov")
            client.post(f"/api/jobs/{job_id}/convert", json={})
            _events(client.get(f"/api/jobs/{job_id}/progress"))

        first, second = (c[0][0] for c in mock_converter.call_args_list)
        assert first is second is app.config["STORE"]
        assert first.root == tmp_path / "library"


class TestCancel:
    def test_nothing_to_cancel(self, client):
        job_id = _upload(client).get_json()["job_id"]
        assert client.post(f"/api/jobs/{job_id}/cancel").status_code == 409

    def test_unknown_job(self, client):
        assert client.post("/api/jobs/nonexistent/cancel").status_code == 404


class TestStatus:
    def test_status_after_upload(self, client):
        job_id = _upload(client).get_json()["job_id"]
        resp = client.get(f"/api/jobs/{job_id}/status")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "uploaded"

    def test_status_unknown_job(self, client):
        assert client.get("/api/jobs/nonexistent/status").status_code == 404

    def test_progress_before_convert(self, client):
        job_id = _upload(client).get_json()["job_id"]
        assert client.get(f"/api/jobs/{job_id}/progress").status_code == 409
