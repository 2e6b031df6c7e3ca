"""
Stem Extraction State Machine
=============================
Deterministic state machine that isolates the question stem from OCR lines.

OCR output has no reliable grammar, so this is a line classifier rather than
a parser: it skips leading furniture, starts at the first numbered (or long
enough) line and stops at the first option label or noise line.

    SEEKING_STEM ──marker / long line──▶ COLLECTING_STEM ──option / noise──▶ DONE
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from .models import StemExtraction
from .noise import is_noise
from .normalizer import collapse_whitespace, normalize
from .tables import BULLET_GLYPHS, CATEGORY_LABELS, WATERMARK_CHARS, CorrectionTable

logger = logging.getLogger(__name__)

# ─── Line Patterns ────────────────────────────────────────────────────────────

# Page numbers and stray counters: "12"
BARE_NUMBER_PATTERN = re.compile(r"^\d+$")

# Numbering or interrogative marker: "3、", "3.", "?3、", "？"
STEM_MARKER_PATTERN = re.compile(r"^(?:[?？]\s*)?\d+\s*[、.．]\s*|^[?？]\s*")

# Option label at line start: "A:", "○B：", "C、"
OPTION_LABEL_PATTERN = re.compile(
    r"^[" + BULLET_GLYPHS + r"]?\s*[A-D]\s*[:：、.．]"
)

# First option label anywhere in the raw text
OPTION_LABEL_SEARCH = re.compile(r"[" + BULLET_GLYPHS + r"]?[A-D][:：]")

# Lines made only of watermark characters and bullets
GLYPH_ONLY_PATTERN = re.compile(
    r"^[" + WATERMARK_CHARS + BULLET_GLYPHS + r"]+$"
)

# Shorter unnumbered lines are not trusted as a stem start
MIN_UNNUMBERED_STEM_LENGTH = 5


class ExtractorState(Enum):
    """States of the stem extraction run."""
    SEEKING_STEM = "SEEKING_STEM"
    COLLECTING_STEM = "COLLECTING_STEM"
    DONE = "DONE"


def is_category_line(line: str) -> bool:
    """Category headers, alone or glued to other furniture."""
    return any(label in line for label in CATEGORY_LABELS)


def is_option_line(line: str) -> bool:
    return bool(OPTION_LABEL_PATTERN.match(line))


def split_lines(raw_text: str) -> list[str]:
    """Whitespace-collapsed, non-empty lines in OCR order."""
    return [line for line in collapse_whitespace(raw_text).split("\n") if line]


class StemExtractor:
    """
    Finite State Machine that turns OCR lines into a single stem string.

    An extractor is reusable; every call to extract() starts from
    SEEKING_STEM.
    """

    def __init__(self, corrections: Optional[CorrectionTable] = None):
        self.corrections = corrections
        self.state = ExtractorState.SEEKING_STEM
        self.fragments: list[str] = []

    def reset(self):
        """Reset the state machine for a fresh run."""
        self.state = ExtractorState.SEEKING_STEM
        self.fragments = []

    def extract(self, raw_text: str) -> StemExtraction:
        """Extract the stem, falling back to coarser strategies if needed."""
        self.reset()
        lines = split_lines(raw_text or "")

        for line in lines:
            if self.state == ExtractorState.DONE:
                break
            if self.state == ExtractorState.SEEKING_STEM:
                self._seek(line)
            else:
                self._collect(line)

        fragments = [f for f in self.fragments if not is_noise(f)]
        stem = normalize("".join(fragments), self.corrections)
        if stem:
            return StemExtraction(stem=stem, fragments=fragments)

        # ── Fallback 1: everything that is not furniture ──
        fragments = [
            line for line in lines
            if not BARE_NUMBER_PATTERN.match(line)
            and line not in CATEGORY_LABELS
            and not is_option_line(line)
            and not is_noise(line)
        ]
        stem = normalize("".join(fragments), self.corrections)
        if stem:
            logger.debug("Stem state machine found nothing; used filtered lines")
            return StemExtraction(
                stem=stem, fragments=fragments, fallback_level=1
            )

        # ── Fallback 2: raw text before the first option label ──
        raw = raw_text or ""
        option_match = OPTION_LABEL_SEARCH.search(raw)
        prefix = raw[:option_match.start()] if option_match else raw
        fragments = [line.strip() for line in prefix.splitlines() if line.strip()]
        stem = normalize("".join(fragments), self.corrections)
        logger.debug(f"Stem taken from raw text prefix ({len(stem)} chars)")
        return StemExtraction(stem=stem, fragments=fragments, fallback_level=2)

    def _seek(self, line: str):
        """SEEKING_STEM: skip furniture until something looks like a stem."""
        if BARE_NUMBER_PATTERN.match(line) or is_category_line(line):
            return
        if is_option_line(line):
            return

        marker = STEM_MARKER_PATTERN.match(line)
        if marker:
            self.state = ExtractorState.COLLECTING_STEM
            remainder = line[marker.end():].strip()
            if remainder:
                self.fragments.append(remainder)
            return

        if (
            len(line) > MIN_UNNUMBERED_STEM_LENGTH
            and not GLYPH_ONLY_PATTERN.match(line)
        ):
            self.state = ExtractorState.COLLECTING_STEM
            self.fragments.append(line)

    def _collect(self, line: str):
        """COLLECTING_STEM: append until an option label or noise line."""
        if is_option_line(line) or is_noise(line):
            self.state = ExtractorState.DONE
            return
        self.fragments.append(line)


def extract_stem(
    raw_text: str,
    corrections: Optional[CorrectionTable] = None,
) -> str:
    """Return only the stem text for the given OCR output."""
    return StemExtractor(corrections).extract(raw_text).stem
