"""
Keyword Extractor
=================
Bag-of-keywords signature of a text: every 2, 3 and 4 character window made
only of CJK ideographs, minus stop words.
"""

from __future__ import annotations

import re

from .normalizer import strip_punctuation
from .tables import STOP_WORDS

WINDOW_LENGTHS = (2, 3, 4)

_CJK_RUN_RE = re.compile(r"[\u4e00-\u9fa5]+")


def keywords(text: str) -> frozenset[str]:
    """Return the keyword set of a text; order carries no meaning."""
    cleaned = strip_punctuation(text or "")
    found: set[str] = set()

    for size in WINDOW_LENGTHS:
        for start in range(len(cleaned) - size + 1):
            window = cleaned[start:start + size]
            if _CJK_RUN_RE.fullmatch(window) and window not in STOP_WORDS:
                found.add(window)

    return frozenset(found)
