from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Iterator

from .errors import TableConflictError, TableLoadError

logger = logging.getLogger(__name__)

RESOURCE_NAME = "script_tables.json"

# Copied one-to-one after the generated consonant compounds.
SIMPLE_CATEGORIES = ("vowels", "vowelsigns", "virama", "numerals", "ayogavaha", "symbols", "om", "extra")

# Marks appended to a Tamil consonant to record aspiration/voicing.
SUPERSCRIPT_MARKS = "²³⁴"


# -----------------------------
# Trie-backed table
# -----------------------------
class _Node:
    __slots__ = ("children", "terminal", "value")

    def __init__(self) -> None:
        self.children: dict[str, _Node] = {}
        self.terminal = False
        self.value = ""


class SubstitutionTable:
    """Read-only source-token -> target-token table with longest-match lookup."""

    def __init__(self, source: str, target: str, mapping: dict[str, str]):
        self.source = source
        self.target = target
        self._mapping = dict(mapping)
        self._root = _Node()
        self.max_key_length = 0
        for key, value in self._mapping.items():
            if not key:
                raise TableLoadError("empty source token", stage="table")
            node = self._root
            for ch in key:
                node = node.children.setdefault(ch, _Node())
            node.terminal = True
            node.value = value
            self.max_key_length = max(self.max_key_length, len(key))

    def __len__(self) -> int:
        return len(self._mapping)

    def __contains__(self, key: object) -> bool:
        return key in self._mapping

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._mapping.get(key, default)

    def match(self, text: str, pos: int) -> tuple[int, str] | None:
        """Longest key starting at ``pos`` as ``(length, value)``, or None."""
        node = self._root
        best: tuple[int, str] | None = None
        i = pos
        while i < len(text):
            node = node.children.get(text[i])
            if node is None:
                break
            i += 1
            if node.terminal:
                best = (i - pos, node.value)
        return best

    def apply(self, text: str) -> str:
        out: list[str] = []
        i = 0
        n = len(text)
        while i < n:
            hit = self.match(text, i)
            if hit is None:
                out.append(text[i])
                i += 1
                continue
            length, value = hit
            out.append(value)
            i += length
        return "".join(out)


class TableBuilder:
    def __init__(self) -> None:
        self._mapping: dict[str, str] = {}

    def add(self, key: str, value: str) -> None:
        if not key or not value:
            return
        existing = self._mapping.get(key)
        if existing is not None and existing != value:
            raise TableConflictError(key, existing, value)
        self._mapping[key] = value

    def build(self, source: str, target: str) -> SubstitutionTable:
        return SubstitutionTable(source, target, self._mapping)


# -----------------------------
# Reference data
# -----------------------------
def load_script_data(path: str | Path | None = None) -> dict[str, dict[str, Any]]:
    try:
        if path is None:
            resource = resources.files("translit_pipeline").joinpath("resources").joinpath(RESOURCE_NAME)
            raw = resource.read_text(encoding="utf-8")
        else:
            raw = Path(path).read_text(encoding="utf-8")
    except (FileNotFoundError, OSError) as exc:
        raise TableLoadError(f"reference table missing: {exc}", stage="table") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise TableLoadError(f"reference table unreadable: {exc}", stage="table") from exc
    scripts = data.get("scripts") if isinstance(data, dict) else None
    if not isinstance(scripts, dict):
        raise TableLoadError("reference table has no 'scripts' section", stage="table")
    return scripts


def resolve_script(scripts: dict[str, dict[str, Any]], name: str) -> dict[str, list[str]]:
    seen: set[str] = set()
    chain: list[dict[str, Any]] = []
    current: str | None = name
    while current:
        if current in seen:
            raise TableLoadError(f"inheritance cycle at script {current!r}", stage="table")
        seen.add(current)
        entry = scripts.get(current)
        if not isinstance(entry, dict):
            raise TableLoadError(f"unknown script {current!r}", stage="table")
        chain.append(entry)
        current = entry.get("inherits")
    resolved: dict[str, list[str]] = {}
    for entry in reversed(chain):
        for key, value in entry.items():
            if key == "inherits":
                continue
            resolved[key] = list(value)
    return resolved


def split_marks(value: str) -> tuple[str, str]:
    base = value.rstrip(SUPERSCRIPT_MARKS)
    return base, value[len(base):]


def compose_syllable(base: str, sign: str, marks: str, virama: str) -> str:
    if marks and len(sign) > 1 and sign.startswith(virama):
        return base + virama + marks + sign[len(virama):]
    return base + sign + marks


def _pairs(src: dict[str, list[str]], dst: dict[str, list[str]], category: str) -> list[tuple[str, str]]:
    keys = src.get(category) or []
    values = dst.get(category) or []
    if not keys or not values:
        return []
    if len(keys) != len(values):
        raise TableLoadError(
            f"category {category!r} has {len(keys)} source and {len(values)} target entries",
            stage="table",
        )
    return list(zip(keys, values))


def build_table(
    source: str,
    target: str,
    scripts: dict[str, dict[str, Any]] | None = None,
) -> SubstitutionTable:
    scripts = scripts if scripts is not None else load_script_data()
    src = resolve_script(scripts, source)
    dst = resolve_script(scripts, target)

    builder = TableBuilder()
    virama_pairs = _pairs(src, dst, "virama")
    src_virama, dst_virama = virama_pairs[0] if virama_pairs else ("", "")
    sign_pairs = _pairs(src, dst, "vowelsigns")

    for cons_key, cons_value in _pairs(src, dst, "consonants"):
        builder.add(cons_key, cons_value)
        base, marks = split_marks(cons_value)
        for sign_key, sign_value in sign_pairs:
            builder.add(cons_key + sign_key, compose_syllable(base, sign_value, marks, dst_virama))
        if src_virama:
            builder.add(cons_key + src_virama, compose_syllable(base, dst_virama, marks, dst_virama))

    for category in SIMPLE_CATEGORIES:
        for key, value in _pairs(src, dst, category):
            builder.add(key, value)

    table = builder.build(source, target)
    logger.info("Built table %s->%s entries=%s", source, target, len(table))
    return table


def available_targets(source: str, scripts: dict[str, dict[str, Any]] | None = None) -> list[str]:
    scripts = scripts if scripts is not None else load_script_data()
    if source not in scripts:
        return []
    return sorted(name for name in scripts if name != source)


__all__ = [
    "SubstitutionTable",
    "TableBuilder",
    "available_targets",
    "build_table",
    "compose_syllable",
    "load_script_data",
    "resolve_script",
    "split_marks",
]
