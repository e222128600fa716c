from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable


# -----------------------------
# Source side
# -----------------------------
@dataclass(frozen=True)
class TextFragment:
    """A positioned run of characters from a page's text layer.

    Coordinates use a bottom-left origin, so a larger ``y`` is higher on the page.
    """

    text: str
    x: float
    y: float


class SourceKind(str, Enum):
    TEXT_LAYER = "text_layer"
    OCR = "ocr"


@dataclass
class PageText:
    page_number: int
    source_kind: SourceKind
    raw_text: str


# -----------------------------
# Transliteration
# -----------------------------
class TargetScript(str, Enum):
    TAMIL = "Tamil"
    TAMIL_EXTENDED = "TamilExtended"


class TransliterationSource(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    UNCHANGED = "unchanged"


@dataclass
class TransliterationResult:
    text: str
    source: TransliterationSource
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.source == TransliterationSource.UNCHANGED


# -----------------------------
# Layout side
# -----------------------------
WidthFn = Callable[[str], float]


@dataclass
class LayoutConfig:
    page_width: float = 595.28
    page_height: float = 841.89
    margin: float = 48.0
    font_size: float = 13.0
    line_height: float = 18.0
    paragraph_gap: float = 0.5
    empty_page_placeholder: str | None = None

    def __post_init__(self) -> None:
        if self.max_width <= 0:
            raise ValueError(
                f"no writable width: page_width={self.page_width} margin={self.margin}"
            )
        if self.page_height - 2 * self.margin < self.line_height:
            raise ValueError(
                f"writable height below one line: page_height={self.page_height} "
                f"margin={self.margin} line_height={self.line_height}"
            )
        if self.font_size <= 0 or self.line_height <= 0:
            raise ValueError("font_size and line_height must be positive")

    @property
    def max_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def top(self) -> float:
        return self.page_height - self.margin


@dataclass(frozen=True)
class OutputLine:
    text: str
    x: float
    y: float
    bottom: float


@dataclass
class OutputPage:
    width: float
    height: float
    margin: float
    source_page: int
    lines: list[OutputLine] = field(default_factory=list)


@dataclass
class Paragraph:
    """Source lines of one paragraph. No lines means a vertical gap marker."""

    lines: list[str] = field(default_factory=list)

    @property
    def is_gap(self) -> bool:
        return not self.lines


@dataclass
class ConversionCursor:
    current_page: OutputPage
    y: float


# -----------------------------
# Reporting
# -----------------------------
@dataclass
class PageReport:
    page_number: int
    source_kind: SourceKind
    transliteration: TransliterationSource
    output_pages: int
    transliteration_error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.transliteration == TransliterationSource.UNCHANGED

    def to_dict(self) -> dict[str, object]:
        return {
            "page_number": self.page_number,
            "source_kind": self.source_kind.value,
            "transliteration": self.transliteration.value,
            "output_pages": self.output_pages,
            "transliteration_error": self.transliteration_error,
        }


@dataclass
class ConversionResult:
    pdf_bytes: bytes
    output_pages: list[OutputPage]
    page_texts: list[PageText]
    transliterated: list[str]
    reports: list[PageReport]
    transcript: str | None = None

    @property
    def degraded_pages(self) -> list[int]:
        return [r.page_number for r in self.reports if r.degraded]
