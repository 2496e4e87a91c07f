#!/usr/bin/env python3
"""PhaseSmith HTTP server."""

import logging
import os
import threading
import time
import uuid
from flask import Flask, jsonify, request

from agents.corrector import ErrorCorrectionEngine
from config.defaults import DEFAULTS
from config.phases import default_phases
from core.orchestrator import run_pipeline
from utils.folder_naming import get_output_dir
from utils.log import configure_logging
from utils.sink import DirectorySink, MemorySink

logger = logging.getLogger(__name__)

app = Flask(__name__)
corrector = ErrorCorrectionEngine()
history = []

# Finished pipeline jobs keyed by job_id: {id: {"outcome": ..., "progress": [...], "created": timestamp}}
_jobs = {}
_jobs_lock = threading.Lock()
_MAX_JOBS = 50  # prevent unbounded memory growth
_JOB_TTL = 3600  # expire jobs after 1 hour


def _cleanup_jobs():
    """Remove expired jobs. Called under _jobs_lock."""
    now = time.time()
    expired = [jid for jid, job in _jobs.items() if now - job["created"] > _JOB_TTL]
    for jid in expired:
        del _jobs[jid]
    # If still over limit, remove oldest
    if len(_jobs) > _MAX_JOBS:
        by_age = sorted(_jobs.items(), key=lambda x: x[1]["created"])
        for jid, _ in by_age[:len(_jobs) - _MAX_JOBS]:
            del _jobs[jid]


def _store_job(job):
    job_id = str(uuid.uuid4())[:8]
    with _jobs_lock:
        _cleanup_jobs()
        _jobs[job_id] = {**job, "created": time.time()}
    return job_id


def _get_job(job_id):
    """Get a job by ID, or None if not found/expired."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and time.time() - job["created"] > _JOB_TTL:
            del _jobs[job_id]
            return None
    return job


def _phase_to_dict(phase):
    return {
        "index": phase.index,
        "name": phase.name,
        "description": phase.description,
        "kind": phase.kind,
        "dependencies": list(phase.dependencies),
        "outputs": list(phase.outputs),
    }


def _bad_request(message):
    return jsonify({"error": message}), 400


@app.route("/api/phases")
def api_phases():
    return jsonify([_phase_to_dict(p) for p in default_phases()])


@app.route("/api/pipeline", methods=["POST"])
def api_pipeline():
    """Run the full phase pipeline for an idea and store the outcome as a job."""
    data = request.get_json(silent=True)
    if not data or not str(data.get("idea", "")).strip():
        return _bad_request("Missing idea")

    idea = data["idea"].strip()
    features = data.get("features") or []
    if not isinstance(features, list):
        return _bad_request("features must be a list")

    config = {}
    if "max_corrections" in data:
        max_corrections = data["max_corrections"]
        if not isinstance(max_corrections, int) or max_corrections < 0:
            return _bad_request("max_corrections must be a non-negative integer")
        config["max_correction_iterations"] = min(max_corrections, DEFAULTS["hard_max_correction_iterations"])

    output_dir = None
    if data.get("write"):
        output_dir = get_output_dir(idea)
        sink = DirectorySink(output_dir)
    else:
        sink = MemorySink()

    progress = []

    def on_progress(phase_name, status, message):
        progress.append({"phase": phase_name, "status": status, "message": message})

    outcome = run_pipeline(
        default_phases(),
        {"idea": idea, "features": features},
        sink=sink,
        config=config,
        on_progress=on_progress,
    )

    result = outcome.to_dict()
    result["idea"] = idea
    result["output_dir"] = output_dir
    result["progress"] = progress

    job_id = _store_job({"outcome": outcome, "progress": progress, "idea": idea, "output_dir": output_dir})
    result["job_id"] = job_id

    history.append({
        "job_id": job_id,
        "idea": idea,
        "status": outcome.status,
        "files": outcome.metrics.files,
        "failed_phase": outcome.failed_phase,
    })
    logger.info("Job %s finished with status %s", job_id, outcome.status)
    return jsonify(result)


@app.route("/api/correct", methods=["POST"])
def api_correct():
    """Run the correction engine over a single code snippet."""
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get("code"), str):
        return _bad_request("Missing code")

    max_iterations = data.get("max_iterations", DEFAULTS["max_correction_iterations"])
    if not isinstance(max_iterations, int) or max_iterations < 0:
        return _bad_request("max_iterations must be a non-negative integer")

    result = corrector.correct_code(data["code"], max_iterations=max_iterations)
    return jsonify({
        "success": result.success,
        "original_issues": list(result.original_issues),
        "fixed_issues": list(result.fixed_issues),
        "remaining_issues": list(result.remaining_issues),
        "applied_fixes": list(result.applied_fixes),
        "iterations_used": result.iterations_used,
        "final_code": result.final_text,
    })


@app.route("/api/status/<job_id>")
def api_status(job_id):
    """Outcome and progress log for a stored job."""
    job = _get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    result = job["outcome"].to_dict()
    result["job_id"] = job_id
    result["idea"] = job["idea"]
    result["output_dir"] = job["output_dir"]
    result["progress"] = job["progress"]
    return jsonify(result)


@app.route("/api/history")
def api_history():
    return jsonify(history)


if __name__ == "__main__":
    configure_logging(DEFAULTS["log_level"])
    port = int(os.environ.get("PORT", 5001))
    logger.info("PhaseSmith running at http://localhost:%d", port)
    app.run(debug=False, port=port)
