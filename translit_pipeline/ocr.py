from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import numpy as np

from .errors import OcrEngineError
from .extract import group_lines, join_line
from .models import TextFragment

logger = logging.getLogger(__name__)

# Rasterization scale per quality preset (speed vs accuracy).
OCR_QUALITY_SCALES = {"fast": 1.8, "best": 2.5}

# Tesseract-style language codes accepted from callers -> PaddleOCR codes.
PADDLE_LANG_CODES = {
    "kan": "ka",
    "tam": "ta",
    "tel": "te",
    "hin": "hi",
    "eng": "en",
}

ProgressFn = Callable[[float], None]


def scale_for_quality(quality: str) -> float:
    try:
        return OCR_QUALITY_SCALES[quality]
    except KeyError:
        raise ValueError(f"unknown OCR quality {quality!r}, expected one of {sorted(OCR_QUALITY_SCALES)}")


@dataclass
class OcrResult:
    text: str
    confidence: float | None = None


class OcrSession(Protocol):
    def recognize(self, raster: np.ndarray) -> OcrResult: ...

    def release(self) -> None: ...


class OcrEngine(Protocol):
    def create_session(self, language: str) -> OcrSession: ...


# -----------------------------
# PaddleOCR
# -----------------------------
def _as_mapping(res: Any) -> dict[str, Any]:
    if isinstance(res, dict):
        return res
    json_attr = getattr(res, "json", None)
    if isinstance(json_attr, dict):
        return json_attr.get("res", json_attr)
    return {}


def _as_list(value: Any) -> list[Any]:
    # PaddleOCR may hand back numpy arrays, which have no truth value.
    if value is None:
        return []
    return list(value)


def lines_from_boxes(
    polys: list[Any],
    texts: list[str],
) -> str:
    """Order recognized boxes into text lines (image coordinates, top-left origin)."""
    fragments: list[TextFragment] = []
    heights: list[float] = []
    for poly, text in zip(polys, texts):
        text = str(text or "").strip()
        if not text:
            continue
        try:
            xs = [float(p[0]) for p in poly]
            ys = [float(p[1]) for p in poly]
        except (TypeError, ValueError, IndexError):
            continue
        if not xs or not ys:
            continue
        heights.append(max(ys) - min(ys))
        # Flip so that a larger y is higher on the page.
        fragments.append(TextFragment(text=text, x=min(xs), y=-(min(ys) + max(ys)) / 2.0))
    if not fragments:
        return ""
    tolerance = max(1.0, statistics.median(heights) * 0.5)
    lines = group_lines(fragments, y_tolerance=tolerance)
    return "\n".join(join_line(line, word_gap=0.0) for line in lines).strip()


class PaddleOcrSession:
    def __init__(self, ocr: Any):
        self._ocr = ocr

    def recognize(self, raster: np.ndarray) -> OcrResult:
        if self._ocr is None:
            raise OcrEngineError("OCR session already released", stage="ocr")
        # PaddleOCR expects BGR arrays.
        bgr = np.ascontiguousarray(raster[:, :, ::-1]) if raster.ndim == 3 else raster
        results = self._ocr.predict(input=bgr)
        polys: list[Any] = []
        texts: list[str] = []
        scores: list[float] = []
        for res in results or []:
            data = _as_mapping(res)
            texts.extend(_as_list(data.get("rec_texts")))
            polys.extend(_as_list(data.get("rec_polys")))
            scores.extend(float(s) for s in _as_list(data.get("rec_scores")))
        text = lines_from_boxes(polys, texts)
        confidence = sum(scores) / len(scores) if scores else None
        return OcrResult(text=text, confidence=confidence)

    def release(self) -> None:
        self._ocr = None


class PaddleOcrEngine:
    def __init__(self, **options: Any):
        self.options = {
            "use_doc_orientation_classify": False,
            "use_doc_unwarping": False,
            "use_textline_orientation": False,
            **options,
        }

    def create_session(self, language: str) -> PaddleOcrSession:
        try:
            from paddleocr import PaddleOCR
        except Exception as exc:
            raise OcrEngineError("paddleocr package is required for OCR.", stage="ocr_init") from exc
        lang = PADDLE_LANG_CODES.get(language, language)
        try:
            ocr = PaddleOCR(lang=lang, **self.options)
        except Exception as exc:
            raise OcrEngineError(f"PaddleOCR init failed (lang={lang}): {exc}", stage="ocr_init") from exc
        return PaddleOcrSession(ocr)


# -----------------------------
# Adapter
# -----------------------------
class OcrAdapter:
    """One lazily created recognition session for one document conversion.

    The session is created on the first page that needs OCR and reused for the
    rest of the document. ``release`` ends it; use the adapter as a context
    manager so every exit path releases it.
    """

    def __init__(self, engine: OcrEngine, language: str):
        self.engine = engine
        self.language = language
        self._session: OcrSession | None = None
        self._released = False
        self.pages_recognized = 0

    @property
    def session_active(self) -> bool:
        return self._session is not None

    def _ensure_session(self, page_number: int | None) -> OcrSession:
        if self._released:
            raise OcrEngineError("OCR session already released", page_number=page_number, stage="ocr")
        if self._session is None:
            logger.info("OCR session init lang=%s", self.language)
            try:
                self._session = self.engine.create_session(self.language)
            except OcrEngineError as exc:
                exc.page_number = page_number
                raise
            except Exception as exc:
                raise OcrEngineError(
                    f"OCR session init failed: {exc}", page_number=page_number, stage="ocr_init"
                ) from exc
        return self._session

    def recognize(
        self,
        raster: np.ndarray,
        page_number: int | None = None,
        progress_cb: ProgressFn | None = None,
    ) -> str:
        session = self._ensure_session(page_number)
        if progress_cb:
            progress_cb(0.0)
        try:
            result = session.recognize(raster)
        except OcrEngineError as exc:
            exc.page_number = page_number
            raise
        except Exception as exc:
            raise OcrEngineError(
                f"recognition failed: {exc}", page_number=page_number, stage="ocr"
            ) from exc
        self.pages_recognized += 1
        if progress_cb:
            progress_cb(1.0)
        text = (result.text or "").strip() if result is not None else ""
        logger.info(
            "OCR page=%s chars=%s confidence=%s",
            page_number,
            len(text),
            None if result is None or result.confidence is None else round(result.confidence, 3),
        )
        return text

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        session, self._session = self._session, None
        if session is not None:
            logger.info("OCR session release pages=%s", self.pages_recognized)
            session.release()

    def __enter__(self) -> "OcrAdapter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()


__all__ = [
    "OCR_QUALITY_SCALES",
    "OcrAdapter",
    "OcrEngine",
    "OcrResult",
    "OcrSession",
    "PADDLE_LANG_CODES",
    "PaddleOcrEngine",
    "PaddleOcrSession",
    "lines_from_boxes",
    "scale_for_quality",
]
