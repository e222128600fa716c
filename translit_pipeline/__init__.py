from .errors import (
    ConversionCancelled,
    ConversionError,
    FontUnavailableError,
    OcrEngineError,
    RemoteTransliterationError,
    ResourceUnavailableError,
    TableConflictError,
    TableLoadError,
)
from .extract import extract_page_text
from .layout import LayoutEngine
from .models import (
    ConversionResult,
    LayoutConfig,
    OutputLine,
    OutputPage,
    PageReport,
    PageText,
    SourceKind,
    TargetScript,
    TextFragment,
    TransliterationResult,
    TransliterationSource,
)
from .ocr import OcrAdapter, PaddleOcrEngine
from .orchestrator import ConversionOptions, ProgressTracker, convert_document
from .selector import MinCharsPolicy, needs_ocr
from .source import open_source
from .tables import SubstitutionTable, build_table
from .transliterate import AksharamukhaClient, TransliterationEngine
from .writer import build_transcript, load_target_font, write_document

__all__ = [
    "AksharamukhaClient",
    "ConversionCancelled",
    "ConversionError",
    "ConversionOptions",
    "ConversionResult",
    "FontUnavailableError",
    "LayoutConfig",
    "LayoutEngine",
    "MinCharsPolicy",
    "OcrAdapter",
    "OcrEngineError",
    "OutputLine",
    "OutputPage",
    "PaddleOcrEngine",
    "PageReport",
    "PageText",
    "ProgressTracker",
    "RemoteTransliterationError",
    "ResourceUnavailableError",
    "SourceKind",
    "SubstitutionTable",
    "TableConflictError",
    "TableLoadError",
    "TargetScript",
    "TextFragment",
    "TransliterationEngine",
    "TransliterationResult",
    "TransliterationSource",
    "build_table",
    "build_transcript",
    "convert_document",
    "extract_page_text",
    "load_target_font",
    "needs_ocr",
    "open_source",
    "write_document",
]
