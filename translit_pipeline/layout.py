from __future__ import annotations

import logging
import re
import unicodedata

from .models import ConversionCursor, LayoutConfig, OutputLine, OutputPage, Paragraph, WidthFn
from .tables import SUPERSCRIPT_MARKS

logger = logging.getLogger(__name__)

_TRAILING_WS_RE = re.compile(r"[ \t\f\v]+\n")
_JOINERS = {"‌", "‍"}


# -----------------------------
# Step 1) normalize
# -----------------------------
def normalize_paragraphs(text: str) -> list[Paragraph]:
    """Split page text into paragraphs.

    One blank line separates paragraphs; every further blank line in the same
    run becomes an empty paragraph that stands for one line of vertical space.
    """
    clean = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    clean = _TRAILING_WS_RE.sub("\n", clean + "\n").strip("\n")
    if not clean.strip():
        return []

    paragraphs: list[Paragraph] = []
    current: list[str] = []
    blank_run = 0
    for line in clean.split("\n"):
        if not line.strip():
            blank_run += 1
            continue
        if blank_run:
            if current:
                paragraphs.append(Paragraph(current))
                current = []
            paragraphs.extend(Paragraph() for _ in range(blank_run - 1))
            blank_run = 0
        current.append(line)
    if current:
        paragraphs.append(Paragraph(current))
    return paragraphs


# -----------------------------
# Step 2) wrap
# -----------------------------
def split_clusters(word: str) -> list[str]:
    """Break a token into user-visible units; combining signs stay with their base."""
    clusters: list[str] = []
    for ch in word:
        attach = (
            unicodedata.category(ch) in ("Mn", "Mc", "Me")
            or ch in _JOINERS
            or ch in SUPERSCRIPT_MARKS
            or (clusters and clusters[-1][-1] in _JOINERS)
        )
        if clusters and attach:
            clusters[-1] += ch
        else:
            clusters.append(ch)
    return clusters


def hard_split(word: str, width_fn: WidthFn, max_width: float) -> list[str]:
    pieces: list[str] = []
    piece = ""
    for cluster in split_clusters(word):
        if piece and width_fn(piece + cluster) > max_width:
            pieces.append(piece)
            piece = cluster
        else:
            piece += cluster
    if piece:
        pieces.append(piece)
    return pieces


def wrap_line(line: str, width_fn: WidthFn, max_width: float) -> list[str]:
    words = line.split()
    out: list[str] = []
    current = ""
    for word in words:
        if current:
            candidate = current + " " + word
            if width_fn(candidate) <= max_width:
                current = candidate
                continue
            out.append(current)
            current = ""
        if width_fn(word) <= max_width:
            current = word
            continue
        pieces = hard_split(word, width_fn, max_width)
        out.extend(pieces[:-1])
        current = pieces[-1]
    if current:
        out.append(current)
    return out


def wrap_paragraph(paragraph: Paragraph, width_fn: WidthFn, max_width: float) -> list[str]:
    lines: list[str] = []
    for line in paragraph.lines:
        lines.extend(wrap_line(line, width_fn, max_width))
    return lines


# -----------------------------
# Step 3) paginate
# -----------------------------
class LayoutEngine:
    def __init__(self, config: LayoutConfig, width_fn: WidthFn):
        self.config = config
        self.width_fn = width_fn

    def _new_page(self, cursor: ConversionCursor | None, pages: list[OutputPage], source_page: int) -> ConversionCursor:
        cfg = self.config
        page = OutputPage(width=cfg.page_width, height=cfg.page_height, margin=cfg.margin, source_page=source_page)
        pages.append(page)
        if cursor is None:
            return ConversionCursor(current_page=page, y=cfg.top)
        cursor.current_page = page
        cursor.y = cfg.top
        return cursor

    def _draw(self, cursor: ConversionCursor, text: str, pages: list[OutputPage], source_page: int) -> None:
        cfg = self.config
        if cursor.y - cfg.line_height < cfg.margin and cursor.y < cfg.top:
            self._new_page(cursor, pages, source_page)
        cursor.current_page.lines.append(
            OutputLine(
                text=text,
                x=cfg.margin,
                y=cursor.y - cfg.font_size,
                bottom=cursor.y - cfg.line_height,
            )
        )
        cursor.y -= cfg.line_height

    def layout_page(self, text: str, source_page: int = 1) -> list[OutputPage]:
        """Wrap and paginate one input page. Always returns at least one page."""
        cfg = self.config
        pages: list[OutputPage] = []
        cursor = self._new_page(None, pages, source_page)

        paragraphs = normalize_paragraphs(text)
        if not paragraphs:
            if cfg.empty_page_placeholder:
                self._draw(cursor, cfg.empty_page_placeholder, pages, source_page)
            return pages

        pending_gap = False
        for paragraph in paragraphs:
            if paragraph.is_gap:
                # A gap that does not fit is absorbed by the next page break.
                cursor.y = max(cfg.margin, cursor.y - cfg.line_height)
                continue
            if pending_gap:
                gap = cfg.paragraph_gap * cfg.line_height
                if cursor.y - gap < cfg.margin:
                    self._new_page(cursor, pages, source_page)
                else:
                    cursor.y -= gap
            for line in wrap_paragraph(paragraph, self.width_fn, cfg.max_width):
                self._draw(cursor, line, pages, source_page)
            pending_gap = True

        logger.debug(
            "Layout page=%s paragraphs=%s output_pages=%s", source_page, len(paragraphs), len(pages)
        )
        return pages


__all__ = [
    "LayoutEngine",
    "hard_split",
    "normalize_paragraphs",
    "split_clusters",
    "wrap_line",
    "wrap_paragraph",
]
