"""
Similarity Scorer
=================
Scores a corpus stem against the OCR stem on a 0..1 scale.

    score = edit_weight × (1 − levenshtein / max_len)
          + keyword_weight × (jaccard_weight × jaccard + coverage_weight × coverage)

Keyword evidence carries more weight because OCR noise breaks character
alignment far more often than it drops whole keywords. Lengths and
distances are counted in code points.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rapidfuzz.distance import Levenshtein

from .keywords import keywords
from .normalizer import edit_form
from .tables import CorrectionTable


@dataclass(frozen=True)
class ScoringWeights:
    """Blend weights of the composite score."""

    edit: float = 0.4
    keyword: float = 0.6
    jaccard: float = 0.6
    coverage: float = 0.4


DEFAULT_WEIGHTS = ScoringWeights()


def edit_similarity(form1: str, form2: str) -> float:
    """1 − normalized Levenshtein distance of two edit forms."""
    if not form1 or not form2:
        return 0.0
    distance = Levenshtein.distance(form1, form2)
    return 1.0 - distance / max(len(form1), len(form2))


def keyword_similarity(
    keywords1: frozenset[str],
    keywords2: frozenset[str],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Jaccard index blended with the mean coverage of each set."""
    if not keywords1 or not keywords2:
        return 0.0

    shared = len(keywords1 & keywords2)
    jaccard = shared / len(keywords1 | keywords2)
    coverage = (shared / len(keywords1) + shared / len(keywords2)) / 2
    return weights.jaccard * jaccard + weights.coverage * coverage


@dataclass(frozen=True)
class StemFeatures:
    """Edit form and keyword set of one stem, computed once and reused."""

    form: str
    keywords: frozenset[str]


def stem_features(
    stem: str,
    corrections: Optional[CorrectionTable] = None,
) -> StemFeatures:
    return StemFeatures(
        form=edit_form(stem or "", corrections),
        keywords=keywords(stem or ""),
    )


def compare_features(
    candidate: StemFeatures,
    ocr: StemFeatures,
    weights: Optional[ScoringWeights] = None,
) -> float:
    """Composite similarity of two precomputed stems, clamped to [0, 1]."""
    weights = weights or DEFAULT_WEIGHTS

    if not candidate.form or not ocr.form:
        return 0.0

    edit_score = edit_similarity(candidate.form, ocr.form)

    if not candidate.keywords and not ocr.keywords:
        # No CJK text on either side: edit distance is the only evidence
        keyword_score = edit_score
    else:
        keyword_score = keyword_similarity(candidate.keywords, ocr.keywords, weights)

    score = weights.edit * edit_score + weights.keyword * keyword_score
    return min(1.0, max(0.0, score))


def similarity(
    candidate_stem: str,
    ocr_stem: str,
    weights: Optional[ScoringWeights] = None,
    corrections: Optional[CorrectionTable] = None,
) -> float:
    """Composite similarity of two stems, clamped to [0, 1]."""
    return compare_features(
        stem_features(candidate_stem, corrections),
        stem_features(ocr_stem, corrections),
        weights,
    )
