"""
Noise Line Classifier
=====================
Decides whether a single OCR line is page furniture (option markers with no
payload, numbering, category labels, watermark or ad fragments) rather than
question content.

The rules are heuristic. A content line that lands here by mistake is
usually a new AD_DENYLIST entry that is too broad; fix the table, not the
rules.
"""

from __future__ import annotations

import re

from .tables import AD_DENYLIST, BULLET_GLYPHS, CATEGORY_LABELS, WATERMARK_CHARS

# Two consecutive CJK ideographs anywhere in the line
CJK_PAIR_PATTERN = re.compile(r"[\u4e00-\u9fa5]{2,}")

STRUCTURAL_PATTERNS = [
    re.compile(r"^[A-D][:：、]\s*$"),  # "A:" with nothing after
    re.compile(r"^[" + BULLET_GLYPHS + r"]+\s*$"),
    re.compile(r"^\d+\s*[、.．]\s*$"),  # "12、" / "12."
    re.compile(r"^[" + WATERMARK_CHARS + r"]+$"),
]


def is_noise(line: str) -> bool:
    """Return True when the line carries no question content."""
    trimmed = line.strip()
    if not trimmed:
        return True

    if len(trimmed) <= 2:
        return True
    if len(trimmed) <= 4 and not CJK_PAIR_PATTERN.search(trimmed):
        return True

    if trimmed in CATEGORY_LABELS:
        return True
    if any(p.match(trimmed) for p in STRUCTURAL_PATTERNS):
        return True

    return any(fragment in trimmed for fragment in AD_DENYLIST)
