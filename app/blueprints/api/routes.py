from __future__ import annotations

import json
import logging

from flask import Blueprint, Response, abort, jsonify, stream_with_context

from ...services import jobs, state

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


@api_bp.route("/job/<job_id>", methods=["GET"], endpoint="job_data")
def job_data(job_id: str):
    if not jobs.safe_job_id(job_id):
        abort(404)
    job_dir = jobs.job_dir(job_id)
    if not job_dir.exists():
        abort(404)
    payload = jobs.build_job_entry(job_dir)
    meta = jobs.load_job_meta(job_dir) or {}
    payload["reports"] = meta.get("reports") or []
    payload["message"] = meta.get("message")
    payload["download_name"] = jobs.build_download_name(job_id, payload["job_name"])
    return jsonify(payload)


@api_bp.route("/jobs", methods=["GET"], endpoint="list_jobs")
def list_jobs():
    jobs_list = jobs.build_jobs_list()
    return jsonify({"jobs": jobs_list})


@api_bp.route("/jobs/stream", methods=["GET"], endpoint="jobs_stream")
def jobs_stream():
    @stream_with_context
    def generate():
        last_version = -1
        while True:
            with state.JOBS_EVENT:
                if last_version == state.JOBS_VERSION:
                    state.JOBS_EVENT.wait(timeout=15)
                current_version = state.JOBS_VERSION
            if current_version == last_version:
                yield ": ping\n\n"
                continue
            last_version = current_version
            payload = {"jobs": jobs.build_jobs_list()}
            data = json.dumps(payload, ensure_ascii=False)
            yield f"event: jobs\ndata: {data}\n\n"

    resp = Response(generate(), mimetype="text/event-stream")
    resp.headers["Cache-Control"] = "no-cache"
    resp.headers["X-Accel-Buffering"] = "no"
    return resp


@api_bp.route("/job/<job_id>", methods=["DELETE"], endpoint="delete_job")
def delete_job(job_id: str):
    if not jobs.safe_job_id(job_id):
        abort(404)
    active = jobs.get_active_upload()
    if active and active.get("job_id") == job_id:
        return jsonify({"ok": False, "error": "Job is still running; cancel it first."}), 409
    job_dir = jobs.job_dir(job_id)
    if not job_dir.exists():
        return jsonify({"ok": True, "deleted": False})
    deleted, error = jobs.delete_job_dir(job_id)
    if not deleted:
        return jsonify({"ok": False, "error": error}), 500
    return jsonify({"ok": True, "deleted": True})


@api_bp.route("/upload-cancel", methods=["POST"], endpoint="cancel_upload")
def cancel_upload():
    active = jobs.get_active_upload()
    if not active:
        return jsonify({"ok": False, "status": "idle"})
    event = active.get("event")
    if event is not None:
        event.set()
    logger.info("Cancel requested job_id=%s", active.get("job_id"))
    jobs.notify_jobs_update()
    return jsonify({"ok": True, "job_id": active.get("job_id")})
