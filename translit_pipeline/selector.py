from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

# Scanned PDFs often carry a stray page number or a few garbage glyphs.
MIN_TEXT_LAYER_CHARS = 15

_WS_RE = re.compile(r"\s+")

TextLayerPolicy = Callable[[str], bool]


def stripped_length(text: str) -> int:
    return len(_WS_RE.sub("", text or ""))


@dataclass(frozen=True)
class MinCharsPolicy:
    """Decide whether a page needs OCR from the size of its extracted text."""

    min_chars: int = MIN_TEXT_LAYER_CHARS

    def __call__(self, text: str) -> bool:
        return stripped_length(text) < self.min_chars


def needs_ocr(text: str, min_chars: int = MIN_TEXT_LAYER_CHARS) -> bool:
    return MinCharsPolicy(min_chars)(text)


__all__ = [
    "MIN_TEXT_LAYER_CHARS",
    "MinCharsPolicy",
    "TextLayerPolicy",
    "needs_ocr",
    "stripped_length",
]
