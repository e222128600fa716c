from __future__ import annotations

from flask import Blueprint, abort, request, send_file, send_from_directory

from ...services import jobs, state

jobs_bp = Blueprint("jobs", __name__, url_prefix="")


@jobs_bp.route("/jobs/<job_id>/<path:filename>", methods=["GET"], endpoint="job_file")
def job_file(job_id: str, filename: str):
    if not jobs.safe_job_id(job_id):
        abort(404)
    job_dir = jobs.job_dir(job_id)
    if not job_dir.exists():
        abort(404)
    file_path = (job_dir / filename).resolve()
    if not file_path.is_relative_to(job_dir.resolve()) or not file_path.is_file():
        abort(404)
    download_flag = str(request.args.get("download", "")).lower()
    if download_flag in {"1", "true", "yes"}:
        job_name = jobs.get_job_name(job_dir)
        download_name = (
            jobs.build_download_name(job_id, job_name)
            if filename == state.OUTPUT_PDF_NAME
            else filename
        )
        return send_file(file_path, as_attachment=True, download_name=download_name)
    return send_from_directory(job_dir, filename)
