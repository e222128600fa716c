from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from .errors import FontUnavailableError
from .models import OutputPage

logger = logging.getLogger(__name__)

DEFAULT_FONT_NAME = "TargetScript"

# Tamil-capable fonts commonly present on Linux, macOS and Windows.
DEFAULT_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/noto/NotoSansTamil-Regular.ttf",
    "/usr/share/fonts/opentype/noto/NotoSansTamil-Regular.ttf",
    "/usr/share/fonts/noto/NotoSansTamil-Regular.ttf",
    "/usr/share/fonts/truetype/lohit-tamil/Lohit-Tamil.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    r"C:\Windows\Fonts\Nirmala.ttf",
    r"C:\Windows\Fonts\latha.ttf",
)


# -----------------------------
# Fonts / glyph metrics
# -----------------------------
@dataclass(frozen=True)
class TargetFont:
    name: str
    path: str | None = None

    def width(self, text: str, size: float) -> float:
        return pdfmetrics.stringWidth(text, self.name, size)

    def measure(self, size: float):
        """Width function bound to this font at ``size``."""
        return lambda text: self.width(text, size)


def load_target_font(font_path: str | Path | None, font_name: str | None = None) -> TargetFont:
    """Register a TrueType font for drawing and measuring target-script text."""
    if not font_path:
        raise FontUnavailableError("no target-script font configured", stage="font")
    path = Path(font_path)
    if not path.exists():
        raise FontUnavailableError(f"font file not found: {path}", stage="font")
    font_name = font_name or f"{DEFAULT_FONT_NAME}-{path.stem.replace(' ', '')}"
    if font_name in pdfmetrics.getRegisteredFontNames():
        return TargetFont(name=font_name, path=path.as_posix())
    try:
        pdfmetrics.registerFont(TTFont(font_name, path.as_posix()))
    except Exception as exc:
        raise FontUnavailableError(f"cannot load font {path.name}: {exc}", stage="font") from exc
    logger.info("Loaded target font name=%s path=%s", font_name, path)
    return TargetFont(name=font_name, path=path.as_posix())


def resolve_fontfile(candidates: Iterable[str | Path]) -> str | None:
    for candidate in candidates:
        if candidate and Path(candidate).exists():
            return str(candidate)
    return None


def builtin_font(name: str = "Helvetica") -> TargetFont:
    """One of the PDF standard fonts; covers Latin text only."""
    if name not in pdfmetrics.standardFonts:
        raise FontUnavailableError(f"not a standard PDF font: {name}", stage="font")
    return TargetFont(name=name)


# -----------------------------
# Document writer
# -----------------------------
class PdfPage:
    def __init__(self, doc: "PdfDocument", width: float, height: float):
        self._doc = doc
        self.width = width
        self.height = height

    def draw_text(self, text: str, x: float, y: float, font: TargetFont, size: float) -> None:
        if self._doc.current_page is not self:
            raise RuntimeError("can only draw on the most recently added page")
        c = self._doc.canvas
        c.setFont(font.name, size)
        c.drawString(x, y, text)


class PdfDocument:
    """Sequential PDF writer: pages are added and drawn in order, then serialized."""

    def __init__(self) -> None:
        self._buf = io.BytesIO()
        self.canvas = canvas.Canvas(self._buf, pageCompression=1)
        self.current_page: PdfPage | None = None
        self.page_count = 0
        self._serialized: bytes | None = None

    def add_page(self, width: float, height: float) -> PdfPage:
        if self._serialized is not None:
            raise RuntimeError("document already serialized")
        if self.current_page is not None:
            self.canvas.showPage()
        self.canvas.setPageSize((width, height))
        self.current_page = PdfPage(self, width, height)
        self.page_count += 1
        return self.current_page

    def serialize(self) -> bytes:
        if self._serialized is None:
            if self.current_page is None:
                raise RuntimeError("document has no pages")
            self.canvas.showPage()
            self.canvas.save()
            self._serialized = self._buf.getvalue()
        return self._serialized


def write_document(pages: Sequence[OutputPage], font: TargetFont, font_size: float) -> bytes:
    doc = PdfDocument()
    for page in pages:
        out = doc.add_page(page.width, page.height)
        for line in page.lines:
            out.draw_text(line.text, line.x, line.y, font, font_size)
    data = doc.serialize()
    logger.info("Serialized document pages=%s bytes=%s", doc.page_count, len(data))
    return data


# -----------------------------
# Transcript
# -----------------------------
def build_transcript(pages: Iterable[tuple[int, str]]) -> str:
    parts: list[str] = []
    for page_number, text in pages:
        parts.append(f"--- Page {page_number} ---\n\n")
        parts.append((text or "").strip() or "[No Text Found]")
        parts.append("\n\n----------------------------\n\n")
    return "".join(parts)


__all__ = [
    "DEFAULT_FONT_CANDIDATES",
    "DEFAULT_FONT_NAME",
    "PdfDocument",
    "PdfPage",
    "TargetFont",
    "build_transcript",
    "builtin_font",
    "load_target_font",
    "resolve_fontfile",
    "write_document",
]
