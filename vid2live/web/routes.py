"""HTTP API routes for vid2live."""

import json
import logging
import queue
import threading
import uuid
from dataclasses import asdict
from pathlib import Path

from flask import Blueprint, Response, current_app, jsonify, request

from vid2live.compat import check_compatibility
from vid2live.editors.export import ClipExporter
from vid2live.engine import BatchResult, CancellationToken, Converter
from vid2live.profiles import DEFAULT_PROFILE, PROFILES, get_profile

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}


def _error_json(info) -> dict:
    return {
        "kind": info.kind.value,
        "title": info.title,
        "message": info.message,
        "suggestions": list(info.suggestions),
        "severity": info.severity.value,
        "retryable": info.retryable,
    }


def _result_json(result: BatchResult) -> dict:
    job = result.jobs[0]
    data = {
        "state": job.state.value,
        "asset_id": job.asset_id,
        "content_id": job.content_id,
        "warnings": [_error_json(w) for w in job.warnings],
    }
    if job.outcome:
        data["tier"] = job.outcome.tier.value
        data["linked"] = job.outcome.linked
    if job.time_range:
        data["time_range"] = asdict(job.time_range)
    return data


@bp.route("/api/profiles")
def profiles():
    return jsonify({
        "default": DEFAULT_PROFILE,
        "profiles": [
            {
                "name": p.name,
                "preset": p.preset.name,
                "max_duration": p.max_duration,
                "target_resolution": list(p.target_resolution) if p.target_resolution else None,
            }
            for p in PROFILES.values()
        ],
    })


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)

    ext = Path(f.filename).suffix or ".mov"
    input_path = job_dir / f"input{ext}"
    f.save(input_path)

    _jobs[job_id] = {
        "dir": job_dir,
        "input_path": input_path,
        "filename": f.filename,
        "status": "uploaded",
    }

    return jsonify({"job_id": job_id, "filename": f.filename})


@bp.route("/api/jobs/<job_id>/check")
def check(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    report = check_compatibility(_jobs[job_id]["input_path"])
    return jsonify({
        "compatible": report.compatible,
        "issues": [
            {
                "kind": i.kind.value if i.kind else None,
                "severity": i.severity.value,
                "message": i.message,
            }
            for i in report.issues
        ],
    })


@bp.route("/api/jobs/<job_id>/convert", methods=["POST"])
def start_convert(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] not in ("uploaded", "done", "error", "cancelled"):
        return jsonify({"error": f"Job is already {job['status']}"}), 409

    config = request.get_json(silent=True) or {}
    try:
        profile = get_profile(config.get("quality", DEFAULT_PROFILE))
        candidates = int(config.get("candidate_frames", 1))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    converter = Converter(
        current_app.config["STORE"],
        exporter=ClipExporter(include_audio=bool(config.get("include_audio", True))),
        candidate_frames=max(1, candidates),
        max_concurrency=1,
    )

    progress_queue: queue.Queue = queue.Queue()
    token = CancellationToken()
    job["progress_queue"] = progress_queue
    job["token"] = token
    job["status"] = "processing"
    job["error"] = None
    job["result"] = None

    def run():
        try:
            def on_progress(fraction: float, index: int):
                progress_queue.put({"progress": round(fraction, 3)})

            result = converter.convert(
                [job["input_path"]], profile, on_progress=on_progress, token=token,
            )
            job["result"] = _result_json(result)
            if result.error:
                job["status"] = "error"
                job["error"] = _error_json(result.error.info)
            elif token.cancelled:
                job["status"] = "cancelled"
            else:
                job["status"] = "done"
        except Exception as e:
            logger.exception("conversion thread for %s crashed", job_id)
            job["status"] = "error"
            job["error"] = {"kind": "unknown", "message": str(e)}
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started", "quality": profile.name})


@bp.route("/api/jobs/<job_id>/cancel", methods=["POST"])
def cancel(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    token = _jobs[job_id].get("token")
    if token is None or _jobs[job_id]["status"] != "processing":
        return jsonify({"error": "No conversion in progress"}), 409
    token.cancel()
    return jsonify({"status": "cancelling"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    q = job.get("progress_queue")

    if q is None:
        return jsonify({"error": "No conversion in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                data = json.dumps({
                    "status": job["status"],
                    "progress": 1.0,
                    "result": job.get("result"),
                    "error": job.get("error"),
                })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {"status": job["status"], "filename": job.get("filename")}
    if job.get("result"):
        resp["result"] = job["result"]
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)
