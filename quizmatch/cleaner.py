"""
Display Cleaner
===============
Turns raw OCR output into readable text for showing back to the user:
the stem lines followed by the options rendered as "A. ...".

Only used for display. Matching always works from the raw OCR text.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from .noise import is_noise
from .normalizer import normalize
from .state_machine import (
    BARE_NUMBER_PATTERN,
    MIN_UNNUMBERED_STEM_LENGTH,
    STEM_MARKER_PATTERN,
    is_category_line,
    split_lines,
)
from .tables import BULLET_GLYPHS, CorrectionTable

OPTION_PREFIX_PATTERN = re.compile(
    r"^[" + BULLET_GLYPHS + r"]*\s*([A-D])\s*[:：]\s*"
)
LEADING_BULLETS_PATTERN = re.compile(r"^[" + BULLET_GLYPHS + r"]+\s*")

# Shorter lines after the options are treated as stray fragments
MIN_OPTION_CONTINUATION_LENGTH = 3


class CleanerState(Enum):
    SEEKING_QUESTION = "SEEKING_QUESTION"
    QUESTION = "QUESTION"
    OPTIONS = "OPTIONS"


def _format_option(
    line: str,
    corrections: Optional[CorrectionTable] = None,
) -> Optional[str]:
    match = OPTION_PREFIX_PATTERN.match(line)
    if not match:
        return None
    return f"{match.group(1)}. {normalize(line[match.end():], corrections)}"


def clean_recognized_text(
    text: str,
    corrections: Optional[CorrectionTable] = None,
) -> str:
    """
    Return the OCR text reduced to stem and options, one per line.

    Lines are classified on their whitespace-collapsed form so that the
    "？" marker and option bullets are still visible; every emitted line
    is normalized on its own.
    """
    if not text:
        return ""

    lines = split_lines(text)

    state = CleanerState.SEEKING_QUESTION
    result: list[str] = []

    for line in lines:
        if BARE_NUMBER_PATTERN.match(line) or is_category_line(line):
            continue
        if is_noise(line):
            continue

        if state == CleanerState.SEEKING_QUESTION:
            marker = STEM_MARKER_PATTERN.match(line)
            if marker or len(line) > MIN_UNNUMBERED_STEM_LENGTH:
                state = CleanerState.QUESTION
                body = line[marker.end():] if marker else line
                body = normalize(LEADING_BULLETS_PATTERN.sub("", body), corrections)
                if body:
                    result.append(body)
            continue

        option = _format_option(line, corrections)
        if option is not None:
            state = CleanerState.OPTIONS
            result.append(option)
            continue

        body = normalize(line, corrections)
        if not body:
            continue
        if state == CleanerState.QUESTION:
            result.append(body)
        elif len(body) > MIN_OPTION_CONTINUATION_LENGTH:
            result.append(body)

    if not result:
        fallback = (normalize(line, corrections) for line in lines if not is_noise(line))
        return "\n".join(line for line in fallback if line)
    return "\n".join(result)
