"""
Ranker
======
Scores every corpus record against the extracted stem and applies the
selection policy:

    1. keep records with similarity > threshold
    2. stable sort by similarity, descending (ties keep corpus order)
    3. if any candidate clears the high-confidence bar, return all of those;
       otherwise return the best `fallback_limit` of the kept set
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from .models import Candidate, QuestionRecord
from .scorer import ScoringWeights, compare_features, stem_features
from .state_machine import extract_stem
from .tables import CorrectionTable

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.25
HIGH_CONFIDENCE = 0.4
FALLBACK_LIMIT = 10


def select_candidates(
    scored: Sequence[Candidate],
    threshold: float = DEFAULT_THRESHOLD,
    high_confidence: float = HIGH_CONFIDENCE,
    fallback_limit: int = FALLBACK_LIMIT,
) -> list[Candidate]:
    """
    Apply threshold, ordering and confidence cutoff.

    Args:
        scored: Candidates in corpus order.
        threshold: Minimum similarity (exclusive) to be considered at all.
        high_confidence: Similarity (exclusive) that makes a candidate
            confident enough to suppress the low-confidence ones.
        fallback_limit: How many low-confidence candidates to keep when
            nothing is confident.

    Returns:
        Selected candidates, best first.
    """
    kept = [c for c in scored if c.similarity > threshold]
    kept.sort(key=lambda c: c.similarity, reverse=True)

    confident = [c for c in kept if c.similarity > high_confidence]
    if confident:
        return confident
    return kept[:fallback_limit]


def score_corpus(
    stem: str,
    corpus: Sequence[QuestionRecord],
    weights: Optional[ScoringWeights] = None,
    corrections: Optional[CorrectionTable] = None,
    workers: int = 1,
) -> list[Candidate]:
    """Score every record against the stem, preserving corpus order."""
    ocr_features = stem_features(stem, corrections)

    def score(record: QuestionRecord) -> Candidate:
        value = compare_features(
            stem_features(record.stem, corrections), ocr_features, weights
        )
        return Candidate.from_record(record, value)

    if workers > 1 and len(corpus) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # map() yields in input order whatever the completion order
            return list(pool.map(score, corpus))
    return [score(record) for record in corpus]


def rank(
    ocr_raw_text: str,
    corpus: Sequence[QuestionRecord],
    threshold: float = DEFAULT_THRESHOLD,
    *,
    high_confidence: float = HIGH_CONFIDENCE,
    fallback_limit: int = FALLBACK_LIMIT,
    weights: Optional[ScoringWeights] = None,
    corrections: Optional[CorrectionTable] = None,
    workers: int = 1,
) -> list[Candidate]:
    """
    Find the corpus records that best match a block of OCR text.

    An empty corpus is not an error: the result is simply empty.
    """
    if not corpus:
        logger.warning("Corpus is empty, nothing to match against")
        return []

    stem = extract_stem(ocr_raw_text, corrections)
    logger.debug(f"Extracted stem: {stem!r}")

    scored = score_corpus(stem, corpus, weights, corrections, workers)
    result = select_candidates(scored, threshold, high_confidence, fallback_limit)

    logger.info(
        f"Matched {len(result)} of {len(corpus)} questions "
        f"(threshold {threshold})"
    )
    return result
