from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .errors import ConversionCancelled, ConversionError
from .extract import extract_page_text
from .layout import LayoutEngine
from .models import (
    ConversionResult,
    LayoutConfig,
    OutputPage,
    PageReport,
    PageText,
    SourceKind,
    TargetScript,
    WidthFn,
)
from .ocr import OcrAdapter, OcrEngine, PaddleOcrEngine, scale_for_quality
from .selector import MinCharsPolicy, TextLayerPolicy
from .source import SourceDocument, SourceInput, open_source
from .transliterate import DEFAULT_SOURCE_SCRIPT, TransliterationEngine, script_name
from .writer import TargetFont, build_transcript, load_target_font, write_document

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, str], None]

# Share of the 0-100 range spent on pages; the rest is serialization.
PAGES_PERCENT = 95

# Sub-step boundaries inside one page's share.
_STEP_BOUNDS = {
    "resolve": (0.0, 0.6),
    "transliterate": (0.6, 0.8),
    "layout": (0.8, 1.0),
}


@dataclass
class ConversionOptions:
    target_script: TargetScript | str = TargetScript.TAMIL
    source_script: str = DEFAULT_SOURCE_SCRIPT
    ocr_language: str = "kan"
    ocr_quality: str = "fast"
    font_path: str | None = None
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    text_policy: TextLayerPolicy = field(default_factory=MinCharsPolicy)
    include_transcript: bool = True


# -----------------------------
# Progress
# -----------------------------
class ProgressTracker:
    """Maps page index and sub-step fraction onto a monotonic 0-100 percentage."""

    def __init__(self, total_pages: int, progress_cb: ProgressCallback | None = None):
        self.total_pages = max(1, total_pages)
        self.progress_cb = progress_cb
        self.percent = 0

    def _emit(self, stage: str, percent: float, message: str) -> None:
        value = max(self.percent, min(100, int(percent)))
        self.percent = value
        if self.progress_cb:
            self.progress_cb(stage, value, message)

    def page_step(self, index: int, step: str, fraction: float = 0.0, message: str = "") -> None:
        lo, hi = _STEP_BOUNDS[step]
        fraction = min(1.0, max(0.0, fraction))
        within = lo + (hi - lo) * fraction
        per_page = PAGES_PERCENT / self.total_pages
        self._emit(step, per_page * (index + within), message or f"page {index + 1}/{self.total_pages}")

    def page_done(self, index: int) -> None:
        per_page = PAGES_PERCENT / self.total_pages
        self._emit("page", per_page * (index + 1), f"page {index + 1}/{self.total_pages} done")

    def serializing(self) -> None:
        self._emit("serialize", PAGES_PERCENT, "writing document")

    def done(self) -> None:
        self._emit("done", 100, "done")


# -----------------------------
# Per-page steps
# -----------------------------
def resolve_page_text(
    page,
    ocr: OcrAdapter,
    policy: TextLayerPolicy,
    scale: float,
    ocr_progress: Callable[[float], None] | None = None,
) -> PageText:
    text = extract_page_text(page.get_text_fragments()) if page.has_text_layer else ""
    if not policy(text):
        logger.info("Page %s: using text layer chars=%s", page.page_number, len(text))
        return PageText(page.page_number, SourceKind.TEXT_LAYER, text)

    logger.info("Page %s: text layer unusable, running OCR scale=%s", page.page_number, scale)
    raster = page.render_to_raster(scale)
    recognized = ocr.recognize(raster, page_number=page.page_number, progress_cb=ocr_progress)
    return PageText(page.page_number, SourceKind.OCR, recognized)


def _check_cancel(cancel_event: threading.Event | None, page_number: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ConversionCancelled("conversion cancelled", page_number=page_number, stage="cancel")


def convert_document(
    source: SourceInput | SourceDocument,
    options: ConversionOptions | None = None,
    engine: TransliterationEngine | None = None,
    ocr_engine: OcrEngine | None = None,
    font: TargetFont | None = None,
    width_fn: WidthFn | None = None,
    progress_cb: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> ConversionResult:
    """Convert every page of ``source`` in order and serialize the result.

    Font, tables and the OCR quality knob are resolved before any page is
    touched. Fatal errors propagate and nothing is serialized; pages whose
    transliteration fell back to the original text are listed in the result.
    """
    options = options or ConversionOptions()
    started = time.time()

    # Resources first: a missing font or table fails before page work.
    if font is None:
        font = load_target_font(options.font_path)
    layout_cfg = options.layout
    if width_fn is None:
        width_fn = font.measure(layout_cfg.font_size)
    engine = engine or TransliterationEngine()
    engine.prepare(options.source_script, options.target_script)
    scale = scale_for_quality(options.ocr_quality)
    ocr_engine = ocr_engine or PaddleOcrEngine()

    owns_document = not hasattr(source, "get_page")
    document = open_source(source) if owns_document else source
    try:
        total = document.page_count
        if total < 1:
            raise ConversionError("source document has no pages", stage="open")
        logger.info(
            "Conversion start pages=%s %s->%s quality=%s",
            total,
            options.source_script,
            script_name(options.target_script),
            options.ocr_quality,
        )

        layout = LayoutEngine(layout_cfg, width_fn)
        tracker = ProgressTracker(total, progress_cb)
        output_pages: list[OutputPage] = []
        page_texts: list[PageText] = []
        transliterated: list[str] = []
        reports: list[PageReport] = []

        with OcrAdapter(ocr_engine, options.ocr_language) as ocr:
            for index in range(total):
                page_number = index + 1
                _check_cancel(cancel_event, page_number)

                tracker.page_step(index, "resolve")
                page = document.get_page(page_number)
                page_text = resolve_page_text(
                    page,
                    ocr,
                    options.text_policy,
                    scale,
                    ocr_progress=lambda f, i=index: tracker.page_step(i, "resolve", f),
                )

                tracker.page_step(index, "transliterate")
                result = engine.transliterate(
                    page_text.raw_text, options.target_script, options.source_script
                )
                if result.degraded:
                    logger.warning(
                        "Page %s left untransliterated error=%s", page_number, result.error
                    )

                tracker.page_step(index, "layout")
                pages = layout.layout_page(result.text, source_page=page_number)
                output_pages.extend(pages)

                page_texts.append(page_text)
                transliterated.append(result.text)
                reports.append(
                    PageReport(
                        page_number=page_number,
                        source_kind=page_text.source_kind,
                        transliteration=result.source,
                        output_pages=len(pages),
                        transliteration_error=result.error,
                    )
                )
                tracker.page_done(index)
    finally:
        if owns_document:
            document.close()

    tracker.serializing()
    pdf_bytes = write_document(output_pages, font, layout_cfg.font_size)
    transcript = None
    if options.include_transcript:
        transcript = build_transcript(
            (pt.page_number, text) for pt, text in zip(page_texts, transliterated)
        )
    tracker.done()

    result = ConversionResult(
        pdf_bytes=pdf_bytes,
        output_pages=output_pages,
        page_texts=page_texts,
        transliterated=transliterated,
        reports=reports,
        transcript=transcript,
    )
    degraded = result.degraded_pages
    if degraded:
        logger.warning("Conversion finished with untransliterated pages=%s", degraded)
    logger.info(
        "Conversion done pages_in=%s pages_out=%s elapsed=%.2fs",
        total,
        len(output_pages),
        time.time() - started,
    )
    return result


__all__ = [
    "ConversionOptions",
    "PAGES_PERCENT",
    "ProgressCallback",
    "ProgressTracker",
    "convert_document",
    "resolve_page_text",
]
