from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Protocol, Sequence, Union

import fitz  # PyMuPDF
import numpy as np
from PIL import Image

from .errors import ConversionError
from .models import TextFragment

logger = logging.getLogger(__name__)

SourceInput = Union[bytes, str, Path, Sequence[Union[bytes, str, Path]]]

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".tif", ".tiff", ".bmp"}


class SourcePage(Protocol):
    page_number: int
    has_text_layer: bool

    def get_text_fragments(self) -> list[TextFragment]: ...

    def render_to_raster(self, scale: float) -> np.ndarray: ...


class SourceDocument(Protocol):
    page_count: int

    def get_page(self, page_number: int) -> SourcePage: ...

    def close(self) -> None: ...


# -----------------------------
# PDF (PyMuPDF)
# -----------------------------
class PdfSourcePage:
    has_text_layer = True

    def __init__(self, page: fitz.Page, page_number: int):
        self._page = page
        self.page_number = page_number

    def get_text_fragments(self) -> list[TextFragment]:
        """Span origins from the text layer, flipped to a bottom-left origin."""
        height = float(self._page.rect.height)
        fragments: list[TextFragment] = []
        try:
            data = self._page.get_text("dict")
        except Exception as exc:
            logger.warning("text layer unreadable page=%s error=%s", self.page_number, exc)
            return fragments
        for block in data.get("blocks", []) or []:
            if block.get("type", 0) != 0:
                continue
            for line in block.get("lines", []) or []:
                for span in line.get("spans", []) or []:
                    text = span.get("text") or ""
                    if not text.strip():
                        continue
                    origin = span.get("origin")
                    if not (isinstance(origin, (list, tuple)) and len(origin) == 2):
                        bbox = span.get("bbox") or ()
                        if len(bbox) != 4:
                            continue
                        origin = (bbox[0], bbox[3])
                    fragments.append(
                        TextFragment(text=text, x=float(origin[0]), y=height - float(origin[1]))
                    )
        return fragments

    def render_to_raster(self, scale: float) -> np.ndarray:
        try:
            pix = self._page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            samples = np.frombuffer(pix.samples, dtype=np.uint8)
            return samples.reshape(pix.height, pix.stride)[:, : pix.width * pix.n].reshape(
                pix.height, pix.width, pix.n
            ).copy()
        except Exception as exc:
            raise ConversionError(
                f"cannot render page: {exc}", page_number=self.page_number, stage="render"
            ) from exc


class PdfSourceDocument:
    def __init__(self, doc: fitz.Document):
        self._doc = doc
        self.page_count = doc.page_count

    @classmethod
    def open(cls, source: bytes | str | Path) -> "PdfSourceDocument":
        try:
            if isinstance(source, (bytes, bytearray)):
                doc = fitz.open(stream=bytes(source), filetype="pdf")
            else:
                doc = fitz.open(Path(source).as_posix())
        except Exception as exc:
            raise ConversionError(f"cannot open PDF: {exc}", stage="open") from exc
        return cls(doc)

    def get_page(self, page_number: int) -> PdfSourcePage:
        if page_number < 1 or page_number > self.page_count:
            raise ValueError(f"page_number out of range: 1~{self.page_count}")
        return PdfSourcePage(self._doc.load_page(page_number - 1), page_number)

    def close(self) -> None:
        self._doc.close()


# -----------------------------
# Standalone images (Pillow)
# -----------------------------
class ImageSourcePage:
    has_text_layer = False

    def __init__(self, image: bytes | str | Path, page_number: int):
        self._image = image
        self.page_number = page_number

    def get_text_fragments(self) -> list[TextFragment]:
        return []

    def render_to_raster(self, scale: float) -> np.ndarray:
        # Already a raster; the scale knob only applies to PDF rendering.
        src: Any = io.BytesIO(self._image) if isinstance(self._image, (bytes, bytearray)) else self._image
        try:
            with Image.open(src) as im:
                return np.asarray(im.convert("RGB")).copy()
        except Exception as exc:
            raise ConversionError(
                f"cannot read image: {exc}", page_number=self.page_number, stage="render"
            ) from exc


class ImageSourceDocument:
    def __init__(self, images: Sequence[bytes | str | Path]):
        self._images = list(images)
        self.page_count = len(self._images)

    def get_page(self, page_number: int) -> ImageSourcePage:
        if page_number < 1 or page_number > self.page_count:
            raise ValueError(f"page_number out of range: 1~{self.page_count}")
        return ImageSourcePage(self._images[page_number - 1], page_number)

    def close(self) -> None:
        return None


def _looks_like_pdf(item: bytes | str | Path) -> bool:
    if isinstance(item, (bytes, bytearray)):
        return bytes(item[:5]) == b"%PDF-"
    return Path(item).suffix.lower() == ".pdf"


def open_source(source: SourceInput) -> PdfSourceDocument | ImageSourceDocument:
    """Open PDF bytes/path, or a set of images, as a page source."""
    if isinstance(source, (bytes, bytearray, str, Path)):
        items: list[bytes | str | Path] = [source]
    else:
        items = list(source)
    if not items:
        raise ConversionError("no input document", stage="open")

    pdf_items = [item for item in items if _looks_like_pdf(item)]
    if pdf_items:
        if len(items) != 1:
            raise ConversionError("a PDF must be converted on its own", stage="open")
        return PdfSourceDocument.open(items[0])

    for item in items:
        if isinstance(item, (str, Path)) and Path(item).suffix.lower() not in IMAGE_EXTENSIONS:
            raise ConversionError(f"unsupported input: {Path(item).name}", stage="open")
    return ImageSourceDocument(items)


__all__ = [
    "IMAGE_EXTENSIONS",
    "ImageSourceDocument",
    "ImageSourcePage",
    "PdfSourceDocument",
    "PdfSourcePage",
    "SourceDocument",
    "SourcePage",
    "open_source",
]
