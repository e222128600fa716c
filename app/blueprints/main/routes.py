from __future__ import annotations

import uuid
from pathlib import Path

from flask import Blueprint, abort, redirect, render_template, request, url_for
from werkzeug.utils import secure_filename

from translit_pipeline.models import TargetScript
from translit_pipeline.ocr import OCR_QUALITY_SCALES

from ...services import jobs, pipeline, state

main_bp = Blueprint("main", __name__)


@main_bp.route("/", methods=["GET"], endpoint="index")
def index() -> str:
    return render_template(
        "main/index.html",
        targets=[t.value for t in TargetScript],
        qualities=sorted(OCR_QUALITY_SCALES),
        default_target=state.DEFAULT_TARGET_SCRIPT,
        default_quality=state.DEFAULT_OCR_QUALITY,
    )


@main_bp.route("/job/<job_id>", methods=["GET"], endpoint="job_page")
def job_page(job_id: str) -> str:
    if not jobs.safe_job_id(job_id):
        abort(404)
    job_dir = jobs.job_dir(job_id)
    if not job_dir.exists():
        abort(404)
    return render_template("main/job.html", job=jobs.build_job_entry(job_dir))


@main_bp.route("/upload", methods=["POST"], endpoint="upload")
def upload():
    files = [f for f in request.files.getlist("files") if f and f.filename]
    if not files:
        abort(400, "Missing PDF or image files.")

    target_script = request.form.get("target", state.DEFAULT_TARGET_SCRIPT).strip()
    if target_script not in {t.value for t in TargetScript}:
        abort(400, f"Unknown target script: {target_script}")
    ocr_quality = request.form.get("quality", state.DEFAULT_OCR_QUALITY).strip().lower()
    if ocr_quality not in OCR_QUALITY_SCALES:
        abort(400, f"Unknown OCR quality: {ocr_quality}")

    state.JOB_ROOT.mkdir(parents=True, exist_ok=True)
    state.UPLOAD_ROOT.mkdir(parents=True, exist_ok=True)

    pdfs: list[Path] = []
    images: list[Path] = []
    stems: dict[Path, str] = {}
    for file in files:
        ext = Path(file.filename).suffix.lower()
        if ext not in state.ALLOWED_EXTENSIONS:
            continue
        # secure_filename drops non-ASCII names entirely, so save under a unique name.
        tmp_path = state.UPLOAD_ROOT / f"{uuid.uuid4().hex}{ext}"
        file.save(tmp_path)
        stems[tmp_path] = Path(file.filename).stem
        (pdfs if ext in state.PDF_EXTENSIONS else images).append(tmp_path)
    if not pdfs and not images:
        abort(400, "No supported files (PDF or images).")

    # One job per PDF; all images of one upload form one document in upload order.
    batches = [([p], stems[p]) for p in pdfs]
    if images:
        batches.append((images, stems[images[0]]))
    try:
        for paths, stem in batches:
            display_name = secure_filename(stem) or "job"
            pipeline.enqueue_job_from_upload(paths, display_name, target_script, ocr_quality)
    finally:
        for tmp_path in pdfs + images:
            tmp_path.unlink(missing_ok=True)

    jobs.notify_jobs_update()
    return redirect(url_for(".index"))
