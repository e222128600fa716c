from __future__ import annotations


class ConversionError(Exception):
    def __init__(self, message: str, page_number: int | None = None, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.page_number = page_number
        self.stage = stage

    def __str__(self) -> str:
        parts = []
        if self.page_number is not None:
            parts.append(f"page {self.page_number}")
        if self.stage:
            parts.append(self.stage)
        if not parts:
            return self.message
        return f"[{' / '.join(parts)}] {self.message}"


class OcrEngineError(ConversionError):
    pass


class ResourceUnavailableError(ConversionError):
    pass


class FontUnavailableError(ResourceUnavailableError):
    pass


class TableLoadError(ResourceUnavailableError):
    pass


class TableConflictError(TableLoadError):
    def __init__(self, key: str, existing: str, new: str):
        super().__init__(
            f"source token {key!r} maps to both {existing!r} and {new!r}",
            stage="table",
        )
        self.key = key
        self.existing = existing
        self.new = new


class RemoteTransliterationError(ConversionError):
    pass


class ConversionCancelled(ConversionError):
    pass


__all__ = [
    "ConversionCancelled",
    "ConversionError",
    "FontUnavailableError",
    "OcrEngineError",
    "RemoteTransliterationError",
    "ResourceUnavailableError",
    "TableConflictError",
    "TableLoadError",
]
