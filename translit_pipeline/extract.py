from __future__ import annotations

import math
from typing import Iterable

from .models import TextFragment

Y_TOLERANCE = 3.0
WORD_GAP_THRESHOLD = 10.0


def _is_usable(fragment: TextFragment) -> bool:
    if not isinstance(fragment.text, str) or not fragment.text.strip():
        return False
    try:
        return math.isfinite(float(fragment.x)) and math.isfinite(float(fragment.y))
    except (TypeError, ValueError):
        return False


def _reading_order_key(fragment: TextFragment) -> tuple[float, float, str]:
    return (-float(fragment.y), float(fragment.x), fragment.text)


def group_lines(
    fragments: Iterable[TextFragment],
    y_tolerance: float = Y_TOLERANCE,
) -> list[list[TextFragment]]:
    """Partition fragments into lines, top-to-bottom and left-to-right.

    A line keeps the ``y`` of its first fragment; a fragment further than
    ``y_tolerance`` from it starts the next line.
    """
    ordered = sorted((f for f in fragments if _is_usable(f)), key=_reading_order_key)

    lines: list[list[TextFragment]] = []
    current: list[TextFragment] = []
    current_y: float | None = None
    for fragment in ordered:
        if current_y is not None and abs(float(fragment.y) - current_y) <= y_tolerance:
            current.append(fragment)
            continue
        if current:
            lines.append(sorted(current, key=lambda f: (float(f.x), f.text)))
        current = [fragment]
        current_y = float(fragment.y)
    if current:
        lines.append(sorted(current, key=lambda f: (float(f.x), f.text)))
    return lines


def join_line(line: list[TextFragment], word_gap: float = WORD_GAP_THRESHOLD) -> str:
    out = ""
    last_x: float | None = None
    for fragment in line:
        if last_x is not None and float(fragment.x) - last_x > word_gap:
            out += " "
        out += fragment.text
        last_x = float(fragment.x)
    return out.strip()


def extract_page_text(
    fragments: Iterable[TextFragment],
    y_tolerance: float = Y_TOLERANCE,
    word_gap: float = WORD_GAP_THRESHOLD,
) -> str:
    """Turn one page's fragments into newline-joined lines.

    Returns "" when the page carries no non-whitespace fragments. Malformed
    fragments are dropped rather than raised.
    """
    lines = group_lines(fragments, y_tolerance=y_tolerance)
    return "\n".join(join_line(line, word_gap=word_gap) for line in lines).strip()


__all__ = [
    "WORD_GAP_THRESHOLD",
    "Y_TOLERANCE",
    "extract_page_text",
    "group_lines",
    "join_line",
]
