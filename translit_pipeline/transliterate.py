from __future__ import annotations

import logging
import threading
import unicodedata
from typing import Any, Protocol

import requests

from .errors import RemoteTransliterationError
from .models import TransliterationResult, TransliterationSource
from .tables import SubstitutionTable, build_table, load_script_data

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_SCRIPT = "Kannada"
DEFAULT_REMOTE_URL = "https://aksharamukha-plugin.appspot.com/api/public"
DEFAULT_REMOTE_TIMEOUT = 20.0


def script_name(script: Any) -> str:
    return str(getattr(script, "value", script))


class RemoteTransliterator(Protocol):
    def transliterate(self, text: str, source: str, target: str) -> str: ...


class AksharamukhaClient:
    """Plain-text conversion through an Aksharamukha-compatible HTTP endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_REMOTE_URL,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        session: Any | None = None,
        nativize: bool = True,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.nativize = nativize

    def transliterate(self, text: str, source: str, target: str) -> str:
        payload = {
            "text": text,
            "source": source,
            "target": target,
            "nativize": "true" if self.nativize else "false",
        }
        try:
            resp = self.session.post(self.url, data=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteTransliterationError(f"request failed: {exc}", stage="transliterate") from exc
        if not resp.ok:
            raise RemoteTransliterationError(
                f"service returned HTTP {resp.status_code}", stage="transliterate"
            )
        return resp.text


class TransliterationEngine:
    """Local longest-match tables first, remote service second, original text last.

    Tables are built once per script pair and are read-only afterwards, so one
    engine can serve concurrent conversions.
    """

    def __init__(
        self,
        remote: RemoteTransliterator | None = None,
        scripts: dict[str, dict[str, Any]] | None = None,
    ):
        self.remote = remote
        self._scripts = scripts if scripts is not None else load_script_data()
        self._tables: dict[tuple[str, str], SubstitutionTable | None] = {}
        self._lock = threading.Lock()

    def covers(self, source: str, target: str) -> bool:
        source, target = script_name(source), script_name(target)
        return source in self._scripts and target in self._scripts and source != target

    def table_for(self, source: str, target: str) -> SubstitutionTable | None:
        key = (script_name(source), script_name(target))
        with self._lock:
            if key not in self._tables:
                self._tables[key] = build_table(*key, self._scripts) if self.covers(*key) else None
            return self._tables[key]

    def prepare(self, source: str, target: str) -> SubstitutionTable | None:
        """Build the table up front so table errors surface before any page work."""
        table = self.table_for(source, target)
        if table is None:
            if self.remote is None:
                logger.warning("No local table for %s->%s and no remote service configured", source, target)
            else:
                logger.info("No local table for %s->%s, remote service will be used", source, target)
        return table

    def transliterate(
        self,
        text: str,
        target: str,
        source: str = DEFAULT_SOURCE_SCRIPT,
    ) -> TransliterationResult:
        source, target = script_name(source), script_name(target)
        if not text or not text.strip():
            return TransliterationResult(text="", source=TransliterationSource.LOCAL)

        # Tables hold precomposed vowel signs; decomposed input would miss them.
        text = unicodedata.normalize("NFC", text)
        table = self.table_for(source, target)
        reason = f"no local table for {source}->{target}"
        if table is not None:
            try:
                return TransliterationResult(text=table.apply(text), source=TransliterationSource.LOCAL)
            except Exception as exc:
                logger.warning("Local transliteration failed %s->%s error=%s", source, target, exc)
                reason = f"local transliteration failed: {exc}"

        if self.remote is None:
            logger.warning("Transliteration unavailable (%s); keeping original text", reason)
            return TransliterationResult(
                text=text, source=TransliterationSource.UNCHANGED, error=reason
            )

        try:
            converted = self.remote.transliterate(text, source, target)
        except Exception as exc:
            logger.warning("Remote transliteration failed %s->%s error=%s; keeping original text", source, target, exc)
            return TransliterationResult(
                text=text, source=TransliterationSource.UNCHANGED, error=str(exc)
            )
        return TransliterationResult(text=converted, source=TransliterationSource.REMOTE)


__all__ = [
    "AksharamukhaClient",
    "DEFAULT_REMOTE_TIMEOUT",
    "DEFAULT_REMOTE_URL",
    "DEFAULT_SOURCE_SCRIPT",
    "RemoteTransliterator",
    "script_name",
    "TransliterationEngine",
]
