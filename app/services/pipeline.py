from __future__ import annotations

import logging
import shutil
import threading
import time
import uuid
from pathlib import Path
from typing import Any

from werkzeug.utils import secure_filename

from translit_pipeline import (
    AksharamukhaClient,
    ConversionCancelled,
    ConversionError,
    ConversionOptions,
    TargetScript,
    TransliterationEngine,
    convert_document,
)
from translit_pipeline.writer import resolve_fontfile

from . import jobs, state

logger = logging.getLogger(__name__)

_ENGINE: TransliterationEngine | None = None
_ENGINE_LOCK = threading.Lock()


def get_engine() -> TransliterationEngine:
    """Shared engine; its tables are read-only once built."""
    global _ENGINE
    with _ENGINE_LOCK:
        if _ENGINE is None:
            remote = (
                AksharamukhaClient(state.REMOTE_URL, timeout=state.REMOTE_TIMEOUT)
                if state.REMOTE_ENABLED
                else None
            )
            _ENGINE = TransliterationEngine(remote=remote)
        return _ENGINE


def _progress_writer(job_dir: Path):
    last = {"percent": -1}

    def report(stage: str, percent: int, message: str) -> None:
        if percent == last["percent"] and stage not in {"serialize", "done"}:
            return
        last["percent"] = percent
        jobs.update_job_meta(job_dir, progress=percent, stage=stage, message=message)
        jobs.notify_jobs_update()

    return report


def run_conversion_job(
    job_id: str,
    job_dir: Path,
    inputs: list[Path],
    target_script: str,
    ocr_quality: str,
    ocr_language: str,
    cancel_event: threading.Event,
) -> None:
    logger.info("Conversion job start job_id=%s inputs=%s", job_id, len(inputs))
    jobs.update_job_meta(job_dir, status="running")
    jobs.notify_jobs_update()
    try:
        options = ConversionOptions(
            target_script=TargetScript(target_script),
            ocr_language=ocr_language,
            ocr_quality=ocr_quality,
            font_path=resolve_fontfile(state.FONT_CANDIDATES),
        )
        source: Any = inputs[0] if len(inputs) == 1 else inputs
        result = convert_document(
            source,
            options,
            engine=get_engine(),
            progress_cb=_progress_writer(job_dir),
            cancel_event=cancel_event,
        )
    except ConversionCancelled as exc:
        logger.info("Conversion job cancelled job_id=%s page=%s", job_id, exc.page_number)
        jobs.update_job_meta(job_dir, status="cancelled", processing_completed_at=time.time())
        jobs.notify_jobs_update()
        return
    except ConversionError as exc:
        logger.exception("Conversion job failed job_id=%s error=%s", job_id, exc)
        jobs.update_job_meta(
            job_dir,
            status="failed",
            processing_completed_at=time.time(),
            error={"message": exc.message, "page": exc.page_number, "stage": exc.stage},
        )
        jobs.notify_jobs_update()
        return
    except Exception as exc:
        logger.exception("Conversion job failed job_id=%s error=%s", job_id, exc)
        jobs.update_job_meta(
            job_dir,
            status="failed",
            processing_completed_at=time.time(),
            error={"message": str(exc), "page": None, "stage": None},
        )
        jobs.notify_jobs_update()
        return
    finally:
        jobs.clear_active_upload(job_id)

    (job_dir / state.OUTPUT_PDF_NAME).write_bytes(result.pdf_bytes)
    if result.transcript is not None:
        (job_dir / state.TRANSCRIPT_NAME).write_text(result.transcript, encoding="utf-8")
    jobs.update_job_meta(
        job_dir,
        status="completed",
        progress=100,
        processing_completed_at=time.time(),
        pages_in=len(result.reports),
        pages_out=len(result.output_pages),
        degraded_pages=result.degraded_pages,
        reports=[r.to_dict() for r in result.reports],
    )
    logger.info("Conversion job completed job_id=%s", job_id)
    jobs.notify_jobs_update()


def enqueue_job_from_upload(
    sources: list[Path],
    display_name: str,
    target_script: str,
    ocr_quality: str,
    ocr_language: str = state.DEFAULT_OCR_LANG,
) -> str:
    if not sources:
        raise ValueError("no input files")
    job_id = uuid.uuid4().hex
    job_dir = jobs.job_dir(job_id)
    input_dir = job_dir / "input"
    input_dir.mkdir(parents=True, exist_ok=True)
    jobs.write_job_meta(
        job_dir,
        {
            "job_name": f"{display_name}_{job_id[:8]}",
            "status": "queued",
            "progress": 0,
            "target_script": target_script,
            "ocr_quality": ocr_quality,
            "ocr_language": ocr_language,
            "processing_started_at": time.time(),
        },
    )

    inputs: list[Path] = []
    for index, source in enumerate(sources, start=1):
        if not source.exists():
            raise FileNotFoundError(f"Missing input: {source}")
        dest = input_dir / secure_filename(f"{index:04d}{source.suffix.lower()}")
        shutil.copy2(source, dest)
        inputs.append(dest)

    cancel_event = threading.Event()
    jobs.set_active_upload({"event": cancel_event, "job_id": job_id, "started_at": time.time()})

    threading.Thread(
        target=run_conversion_job,
        args=(job_id, job_dir, inputs, target_script, ocr_quality, ocr_language, cancel_event),
        daemon=True,
    ).start()

    return job_id
