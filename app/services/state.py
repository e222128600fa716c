from __future__ import annotations

import os
import threading
from pathlib import Path

from translit_pipeline.transliterate import DEFAULT_REMOTE_TIMEOUT, DEFAULT_REMOTE_URL
from translit_pipeline.writer import DEFAULT_FONT_CANDIDATES

BASE_DIR = Path(__file__).resolve().parents[2]
OUT_ROOT = Path(os.getenv("TRANSLIT_OUT_ROOT", str(BASE_DIR / "out")))
JOB_ROOT = OUT_ROOT / "jobs"
UPLOAD_ROOT = OUT_ROOT / "uploads"

REMOTE_URL = os.getenv("TRANSLIT_REMOTE_URL", DEFAULT_REMOTE_URL)
REMOTE_TIMEOUT = float(os.getenv("TRANSLIT_REMOTE_TIMEOUT", str(DEFAULT_REMOTE_TIMEOUT)))
REMOTE_ENABLED = os.getenv("TRANSLIT_REMOTE_ENABLED", "1").lower() in {"1", "true", "yes"}

DEFAULT_TARGET_SCRIPT = os.getenv("TRANSLIT_TARGET_SCRIPT", "Tamil")
DEFAULT_OCR_LANG = os.getenv("TRANSLIT_OCR_LANG", "kan")
DEFAULT_OCR_QUALITY = os.getenv("TRANSLIT_OCR_QUALITY", "fast")
MAX_UPLOAD_MB = int(os.getenv("TRANSLIT_MAX_UPLOAD_MB", "200"))

PDF_EXTENSIONS = {".pdf"}
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".tif", ".tiff", ".bmp"}
ALLOWED_EXTENSIONS = PDF_EXTENSIONS | IMAGE_EXTENSIONS

FONT_CANDIDATES = [
    p
    for p in [os.getenv("TRANSLIT_FONT_PATH", ""), *DEFAULT_FONT_CANDIDATES]
    if p
]

OUTPUT_PDF_NAME = "output.pdf"
TRANSCRIPT_NAME = "transcript.txt"

ACTIVE_UPLOAD: dict[str, object] | None = None
ACTIVE_UPLOAD_LOCK = threading.Lock()
JOBS_EVENT = threading.Condition()
JOBS_VERSION = 0
