from __future__ import annotations

import json
import re
import shutil
import time
from pathlib import Path
from typing import Any

from flask import url_for

from . import state

STATUS_LABELS = {
    "queued": "Queued",
    "running": "Converting",
    "completed": "Done",
    "failed": "Failed",
    "cancelled": "Cancelled",
}


def safe_job_id(job_id: str) -> bool:
    return bool(re.fullmatch(r"[a-f0-9]{32}", job_id))


def job_dir(job_id: str) -> Path:
    return state.JOB_ROOT / job_id


def job_timestamp(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return 0.0


def notify_jobs_update() -> None:
    with state.JOBS_EVENT:
        state.JOBS_VERSION += 1
        state.JOBS_EVENT.notify_all()


# -----------------------------
# Job meta
# -----------------------------
def job_meta_path(job_dir_path: Path) -> Path:
    return job_dir_path / "job_meta.json"


def write_job_meta(job_dir_path: Path, meta: dict[str, Any]) -> None:
    job_meta_path(job_dir_path).write_text(
        json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8"
    )


def load_job_meta(job_dir_path: Path) -> dict[str, Any] | None:
    path = job_meta_path(job_dir_path)
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None


def update_job_meta(job_dir_path: Path, **updates: Any) -> None:
    meta = load_job_meta(job_dir_path) or {}
    meta.update({k: v for k, v in updates.items() if v is not None})
    write_job_meta(job_dir_path, meta)


def get_job_name(job_dir_path: Path) -> str | None:
    job_name = (load_job_meta(job_dir_path) or {}).get("job_name")
    if isinstance(job_name, str):
        return job_name.strip() or None
    return None


def build_download_name(job_id: str, job_name: str | None) -> str:
    base = job_name or job_id
    return f"{base}_tamil.pdf"


# -----------------------------
# Listing
# -----------------------------
def build_job_entry(job_dir_path: Path) -> dict[str, Any]:
    job_id = job_dir_path.name
    meta = load_job_meta(job_dir_path) or {}
    output_path = job_dir_path / state.OUTPUT_PDF_NAME
    transcript_path = job_dir_path / state.TRANSCRIPT_NAME

    created_at = meta.get("processing_started_at") or job_timestamp(job_dir_path)
    completed_at = meta.get("processing_completed_at")
    if isinstance(completed_at, (int, float)) and isinstance(created_at, (int, float)):
        duration_seconds = max(0.0, float(completed_at) - float(created_at))
    elif isinstance(created_at, (int, float)):
        duration_seconds = max(0.0, time.time() - float(created_at))
    else:
        duration_seconds = None

    status_code = str(meta.get("status") or "queued")
    return {
        "job_id": job_id,
        "job_name": get_job_name(job_dir_path),
        "created_at": created_at,
        "updated_at": max(job_timestamp(job_meta_path(job_dir_path)), job_timestamp(output_path)),
        "duration_seconds": duration_seconds,
        "status_code": status_code,
        "status_label": STATUS_LABELS.get(status_code, status_code),
        "progress": int(meta.get("progress") or 0),
        "stage": meta.get("stage"),
        "target_script": meta.get("target_script"),
        "ocr_quality": meta.get("ocr_quality"),
        "pages_in": meta.get("pages_in"),
        "pages_out": meta.get("pages_out"),
        "degraded_pages": meta.get("degraded_pages") or [],
        "error": meta.get("error"),
        "job_url": url_for("main.job_page", job_id=job_id),
        "output_pdf_url": url_for("jobs.job_file", job_id=job_id, filename=state.OUTPUT_PDF_NAME)
        if output_path.exists()
        else None,
        "transcript_url": url_for("jobs.job_file", job_id=job_id, filename=state.TRANSCRIPT_NAME)
        if transcript_path.exists()
        else None,
    }


def build_jobs_list() -> list[dict[str, Any]]:
    state.JOB_ROOT.mkdir(parents=True, exist_ok=True)
    jobs = []
    for job_dir_path in sorted(state.JOB_ROOT.iterdir()):
        if not job_dir_path.is_dir() or not safe_job_id(job_dir_path.name):
            continue
        jobs.append(build_job_entry(job_dir_path))
    jobs.sort(key=lambda item: item["updated_at"], reverse=True)
    return jobs


def delete_job_dir(job_id: str) -> tuple[bool, str | None]:
    job_dir_path = job_dir(job_id)
    if not job_dir_path.exists():
        return False, None
    try:
        shutil.rmtree(job_dir_path)
    except Exception as exc:
        return False, str(exc)
    notify_jobs_update()
    return True, None


# -----------------------------
# Active upload (single running conversion)
# -----------------------------
def get_active_upload() -> dict[str, object] | None:
    with state.ACTIVE_UPLOAD_LOCK:
        return state.ACTIVE_UPLOAD


def set_active_upload(payload: dict[str, object] | None) -> None:
    with state.ACTIVE_UPLOAD_LOCK:
        state.ACTIVE_UPLOAD = payload


def clear_active_upload(job_id: str) -> None:
    with state.ACTIVE_UPLOAD_LOCK:
        if state.ACTIVE_UPLOAD and state.ACTIVE_UPLOAD.get("job_id") == job_id:
            state.ACTIVE_UPLOAD = None
