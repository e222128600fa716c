from __future__ import annotations

import io

import fitz
import numpy as np
import pytest
from PIL import Image

from conftest import make_pdf
from translit_pipeline.errors import ConversionError, FontUnavailableError
from translit_pipeline.models import OutputLine, OutputPage
from translit_pipeline.source import ImageSourceDocument, PdfSourceDocument, open_source
from translit_pipeline.writer import (
    PdfDocument,
    build_transcript,
    builtin_font,
    load_target_font,
    resolve_fontfile,
    write_document,
)


# -----------------------------
# Writer
# -----------------------------
def test_write_document_keeps_page_sizes_and_text():
    pages = [
        OutputPage(200, 300, 20, 1, [OutputLine("hello", 20, 267, 262)]),
        OutputPage(200, 300, 20, 1),
        OutputPage(400, 500, 20, 2, [OutputLine("world", 20, 467, 462)]),
    ]
    data = write_document(pages, builtin_font(), 13)
    with fitz.open(stream=data, filetype="pdf") as doc:
        assert doc.page_count == 3
        assert doc[2].rect.width == pytest.approx(400)
        assert "hello" in doc[0].get_text()
        assert doc[1].get_text().strip() == ""


def test_document_is_serialized_once():
    doc = PdfDocument()
    with pytest.raises(RuntimeError):
        doc.serialize()
    doc.add_page(100, 100).draw_text("x", 10, 10, builtin_font(), 10)
    first = doc.serialize()
    assert doc.serialize() == first
    with pytest.raises(RuntimeError):
        doc.add_page(100, 100)


def test_font_errors(tmp_path):
    with pytest.raises(FontUnavailableError):
        load_target_font(None)
    with pytest.raises(FontUnavailableError):
        load_target_font(tmp_path / "missing.ttf")
    broken = tmp_path / "broken.ttf"
    broken.write_bytes(b"not a font")
    with pytest.raises(FontUnavailableError):
        load_target_font(broken)
    with pytest.raises(FontUnavailableError):
        builtin_font("NoSuchFont")


def test_font_candidates(tmp_path):
    font = tmp_path / "a.ttf"
    font.write_bytes(b"")
    assert resolve_fontfile([tmp_path / "missing.ttf", font]) == str(font)
    assert resolve_fontfile([]) is None


def test_glyph_widths_scale_with_size():
    font = builtin_font()
    assert font.width("abc", 20) == pytest.approx(2 * font.width("abc", 10))
    assert font.measure(10)("abc") == font.width("abc", 10)


def test_transcript_format():
    text = build_transcript([(1, "ஒன்று\n"), (2, "   ")])
    assert text == (
        "--- Page 1 ---\n\nஒன்று\n\n----------------------------\n\n"
        "--- Page 2 ---\n\n[No Text Found]\n\n----------------------------\n\n"
    )


# -----------------------------
# Source documents
# -----------------------------
def png_bytes(size=(30, 20), color=(255, 0, 0)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def test_pdf_fragments_use_bottom_left_origin():
    doc = open_source(make_pdf(["top line\n\n\n\nlower line"]))
    assert isinstance(doc, PdfSourceDocument)
    page = doc.get_page(1)
    frags = {f.text.strip(): f for f in page.get_text_fragments()}
    assert frags["top line"].y > frags["lower line"].y
    assert frags["top line"].y == pytest.approx(842 - 72, abs=1)
    doc.close()


def test_pdf_render_scale():
    doc = open_source(make_pdf(["abc"]))
    raster = doc.get_page(1).render_to_raster(0.5)
    assert raster.dtype == np.uint8
    assert raster.shape[2] == 3
    assert raster.shape[1] == pytest.approx(595 * 0.5, abs=1)
    with pytest.raises(ValueError):
        doc.get_page(2)
    doc.close()


def test_pdf_render_failure_names_the_page(monkeypatch):
    def broken_pixmap(self, *args, **kwargs):
        raise RuntimeError("pixmap allocation failed")

    monkeypatch.setattr(fitz.Page, "get_pixmap", broken_pixmap)
    doc = open_source(make_pdf(["a", "b"]))
    with pytest.raises(ConversionError) as excinfo:
        doc.get_page(2).render_to_raster(2.0)
    assert excinfo.value.page_number == 2
    assert excinfo.value.stage == "render"
    assert "pixmap allocation failed" in str(excinfo.value)
    doc.close()


def test_pdf_path_input(tmp_path):
    path = tmp_path / "in.pdf"
    path.write_bytes(make_pdf(["a", "b"]))
    doc = open_source(path)
    assert doc.page_count == 2
    doc.close()


def test_images_become_pages_without_text_layer(tmp_path):
    path = tmp_path / "p2.png"
    path.write_bytes(png_bytes(size=(10, 12)))
    doc = open_source([png_bytes(), path])
    assert isinstance(doc, ImageSourceDocument)
    assert doc.page_count == 2
    first, second = doc.get_page(1), doc.get_page(2)
    assert first.get_text_fragments() == []
    assert first.has_text_layer is False
    assert first.render_to_raster(2.0).shape == (20, 30, 3)
    assert second.render_to_raster(2.0).shape == (12, 10, 3)


def test_invalid_inputs():
    with pytest.raises(ConversionError):
        open_source([])
    with pytest.raises(ConversionError):
        open_source([make_pdf(["a"]), png_bytes()])
    with pytest.raises(ConversionError):
        open_source("notes.docx")
    with pytest.raises(ConversionError):
        open_source([b"not an image"]).get_page(1).render_to_raster(1.0)
