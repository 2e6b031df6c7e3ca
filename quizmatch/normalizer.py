"""
Text Normalizer
===============
Canonicalizes raw OCR text: known misreads are corrected from the
correction table, decorative glyphs are removed and whitespace collapsed.

normalize() is idempotent. A deletion rule can join two fragments into a
pattern an earlier rule would have rewritten ("抑 图所示"), so the table
pass is repeated until the text stops changing.
"""

from __future__ import annotations

import re
from typing import Optional

from .tables import BULLET_GLYPHS, DEFAULT_CORRECTIONS, PUNCTUATION, CorrectionTable

# Upper bound on table sweeps; the default table settles in two.
MAX_SWEEPS = 8

_INLINE_SPACE_RE = re.compile(r"[ \t\u3000]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_STRIP_RE = re.compile("[" + re.escape(PUNCTUATION + BULLET_GLYPHS) + r"\s]")


def correct_ocr_errors(
    text: str,
    table: Optional[CorrectionTable] = None,
) -> str:
    """Apply each correction rule in order, one full replace per rule."""
    table = table or DEFAULT_CORRECTIONS
    for wrong, right in table:
        text = text.replace(wrong, right)
    return text


def collapse_whitespace(text: str) -> str:
    """
    Collapse spaces/tabs, strip every line, squash 3+ newlines to one
    blank line and trim the result.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _INLINE_SPACE_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def normalize(text: str, table: Optional[CorrectionTable] = None) -> str:
    """Correct OCR misreads and clean whitespace until the text is stable."""
    if not text:
        return ""

    current = collapse_whitespace(text)
    for _ in range(MAX_SWEEPS):
        updated = collapse_whitespace(correct_ocr_errors(current, table))
        if updated == current:
            break
        current = updated
    return current


def strip_punctuation(text: str) -> str:
    """Remove punctuation, bullet glyphs and all whitespace."""
    return _STRIP_RE.sub("", text)


def edit_form(text: str, table: Optional[CorrectionTable] = None) -> str:
    """Canonical form compared by edit distance."""
    return strip_punctuation(normalize(text, table)).casefold()
