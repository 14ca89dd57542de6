"""Web API routes for audiocut."""

import json
import queue
import threading
import uuid
from dataclasses import asdict
from pathlib import Path

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    request,
    send_file,
)

from audiocut import ffutil
from audiocut.analyzers.waveform import DEFAULT_SAMPLE_COUNT, analyze
from audiocut.engine import process
from audiocut.manifest import Manifest, parse_encoder, parse_segment

bp = Blueprint("web", __name__)

MAX_SAMPLE_COUNT = 20000

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}


def _info_json(info) -> dict:
    data = asdict(info)
    data["file_path"] = str(info.file_path)
    return data


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

    ext = Path(f.filename).suffix or ".mp3"
    input_path = job_dir / f"input{ext}"
    f.save(input_path)

    job = {
        "dir": job_dir,
        "input_path": input_path,
        "filename": f.filename,
        "status": "uploaded",
        "info": None,
    }
    _jobs[job_id] = job

    try:
        job["info"] = _info_json(ffutil.probe(input_path))
    except ffutil.ProbeError as e:
        job["probe_error"] = str(e)

    return jsonify({"job_id": job_id, "filename": f.filename, "info": job["info"]})


@bp.route("/api/jobs/<job_id>/info")
def file_info(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["info"] is None:
        return jsonify({"error": job.get("probe_error", "Metadata unavailable")}), 409
    return jsonify(job["info"])


@bp.route("/api/jobs/<job_id>/waveform")
def waveform(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    try:
        samples = int(request.args.get("samples", DEFAULT_SAMPLE_COUNT))
    except ValueError:
        return jsonify({"error": "samples must be an integer"}), 400
    if not 1 <= samples <= MAX_SAMPLE_COUNT:
        return jsonify({"error": f"samples must be between 1 and {MAX_SAMPLE_COUNT}"}), 400

    values = analyze(_jobs[job_id]["input_path"], samples)
    return jsonify({"samples": samples, "envelope": [float(v) for v in values]})


@bp.route("/api/jobs/<job_id>/export", methods=["POST"])
def start_export(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] not in ("uploaded", "done", "error"):
        return jsonify({"error": f"Job is already {job['status']}"}), 409

    config = request.get_json(silent=True) or {}
    try:
        encoder = parse_encoder(config.get("export", {}))
        segment = parse_segment(config["segment"]) if config.get("segment") else None
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    input_path = job["input_path"]
    ext = encoder.format.extension if encoder.format else input_path.suffix.lstrip(".")
    output_path = job["dir"] / f"output.{ext}"

    manifest = Manifest(
        input=input_path,
        output=output_path,
        segment=segment,
        encoder=encoder,
    )

    progress_queue: queue.Queue = queue.Queue()
    job["progress_queue"] = progress_queue
    job["status"] = "processing"
    job["error"] = None

    def run():
        try:
            def on_progress(stage: str, frac: float):
                progress_queue.put({"stage": stage, "progress": round(frac, 3)})

            result = process(manifest, on_progress=on_progress)
            job["result"] = {
                "output_path": str(result.output_path),
                "duration_original": result.duration_original,
                "duration_final": result.duration_final,
            }
            job["status"] = "done"
        except ffutil.EncodingError as e:
            job["status"] = "error"
            job["error"] = str(e)
            job["stderr"] = e.stderr
        except Exception as e:
            job["status"] = "error"
            job["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    q = job.get("progress_queue")

    if q is None:
        return jsonify({"error": "No export in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                else:
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "result": job.get("result"),
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    output_path = Path(job["result"]["output_path"])
    return send_file(output_path, as_attachment=True)


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {"status": job["status"], "filename": job.get("filename")}
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
        if job.get("stderr"):
            resp["stderr"] = job["stderr"]
    return jsonify(resp)
