from __future__ import annotations

import fitz
import pytest

from app import create_app
from app.services import state
from translit_pipeline.models import LayoutConfig
from translit_pipeline.ocr import OcrResult


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setattr(state, "OUT_ROOT", tmp_path)
    monkeypatch.setattr(state, "JOB_ROOT", tmp_path / "jobs")
    monkeypatch.setattr(state, "UPLOAD_ROOT", tmp_path / "uploads")
    monkeypatch.setattr(state, "ACTIVE_UPLOAD", None)
    return create_app("testing")


@pytest.fixture
def client(app):
    return app.test_client()


# -----------------------------
# Fakes for external collaborators
# -----------------------------
class FakeSession:
    def __init__(self, texts=None, error=None):
        self.texts = list(texts or [])
        self.error = error
        self.calls = 0
        self.released = 0

    def recognize(self, raster):
        self.calls += 1
        if self.error is not None:
            raise self.error
        text = self.texts.pop(0) if self.texts else ""
        return OcrResult(text=text, confidence=0.9 if text else None)

    def release(self):
        self.released += 1


class FakeOcrEngine:
    def __init__(self, texts=None, error=None, init_error=None):
        self.session = FakeSession(texts, error)
        self.init_error = init_error
        self.created = 0
        self.languages = []

    def create_session(self, language):
        if self.init_error is not None:
            raise self.init_error
        self.created += 1
        self.languages.append(language)
        return self.session


def char_width(text: str) -> float:
    """Every character is 10 units wide."""
    return 10.0 * len(text)


@pytest.fixture
def fake_ocr():
    return FakeOcrEngine()


@pytest.fixture
def small_layout():
    # max_width 100 (10 chars), 5 lines per page.
    return LayoutConfig(page_width=120, page_height=110, margin=10, font_size=8, line_height=18)


def make_pdf(pages: list[str]) -> bytes:
    """PDF with one page per entry; Latin text goes into the text layer."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page(width=595, height=842)
        y = 72
        for line in text.splitlines():
            if line:
                page.insert_text((72, y), line, fontname="helv", fontsize=11)
            y += 16
    data = doc.tobytes()
    doc.close()
    return data
