"""
Matcher Engine
==============
Main orchestrator that combines display cleaning, stem extraction, scoring
and ranking into a single match call.

Usage:
    engine = MatcherEngine(config)
    report = engine.match(ocr_text, corpus)
    # report is a MatchReport with ranked candidates

Architecture:
    OCR text → StemExtractor → stem → score_corpus → select_candidates →
    MatchReport (JSON)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from .cleaner import clean_recognized_text
from .models import MatchOutcome, MatchReport, QuestionRecord
from .ranker import (
    DEFAULT_THRESHOLD,
    FALLBACK_LIMIT,
    HIGH_CONFIDENCE,
    score_corpus,
    select_candidates,
)
from .scorer import DEFAULT_WEIGHTS, ScoringWeights
from .state_machine import StemExtractor
from .tables import DEFAULT_CORRECTIONS, CorrectionTable

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class MatcherConfig:
    """Configuration for the matcher engine."""

    # Selection policy
    threshold: float = DEFAULT_THRESHOLD
    high_confidence: float = HIGH_CONFIDENCE
    fallback_limit: int = FALLBACK_LIMIT

    # Scoring
    weights: ScoringWeights = field(default_factory=lambda: DEFAULT_WEIGHTS)
    corrections: CorrectionTable = field(
        default_factory=lambda: DEFAULT_CORRECTIONS
    )

    # Processing
    workers: int = 1

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class MatcherEngine:
    """
    Main matching engine.

    Orchestrates one match call:
        1. Display cleaning of the OCR text
        2. Stem extraction (state machine)
        3. Scoring against every corpus record
        4. Threshold and confidence selection

    Holds no per-call state, so one engine can serve concurrent callers.
    """

    def __init__(self, config: Optional[MatcherConfig] = None):
        self.config = config or MatcherConfig()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("quizmatch")
        package_logger.setLevel(log_level)

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_path = Path(self.config.log_file).resolve()
            already_attached = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path
                for h in package_logger.handlers
            )
            if not already_attached:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(
                    logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
                )
                package_logger.addHandler(file_handler)

    def match(
        self,
        raw_text: str,
        corpus: Sequence[QuestionRecord],
    ) -> MatchReport:
        """
        Match OCR text against a corpus.

        Args:
            raw_text: Newline-separated OCR lines in reading order.
            corpus: Validated corpus records in corpus order.

        Returns:
            MatchReport; an empty candidate list is a normal outcome.
        """
        start_time = time.perf_counter()
        cfg = self.config

        report = MatchReport(
            recognized_text=clean_recognized_text(raw_text, cfg.corrections),
            corpus_size=len(corpus),
            threshold=cfg.threshold,
        )

        if not corpus:
            logger.warning("No corpus loaded, skipping match")
            report.outcome = MatchOutcome.EMPTY_CORPUS
            report.elapsed_ms = self._elapsed_ms(start_time)
            return report

        # ── Step 1: Stem extraction ───────────────────────────────────
        extraction = StemExtractor(cfg.corrections).extract(raw_text)
        report.extracted_stem = extraction.stem
        if extraction.used_fallback:
            logger.info(
                f"Stem extracted with fallback level {extraction.fallback_level}"
            )
        logger.debug(f"Extracted stem: {extraction.stem!r}")

        # ── Step 2: Scoring ───────────────────────────────────────────
        scored = score_corpus(
            extraction.stem,
            corpus,
            weights=cfg.weights,
            corrections=cfg.corrections,
            workers=cfg.workers,
        )

        # ── Step 3: Selection ─────────────────────────────────────────
        report.candidates = select_candidates(
            scored,
            threshold=cfg.threshold,
            high_confidence=cfg.high_confidence,
            fallback_limit=cfg.fallback_limit,
        )

        if extraction.is_empty:
            report.outcome = MatchOutcome.EMPTY_EXTRACTION
        elif report.candidates:
            report.outcome = MatchOutcome.MATCHED
        else:
            report.outcome = MatchOutcome.NO_MATCH

        report.elapsed_ms = self._elapsed_ms(start_time)
        logger.info(
            f"Match complete in {report.elapsed_ms:.1f}ms, "
            f"{len(report.candidates)} candidate(s), outcome {report.outcome.value}"
        )
        return report

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * 1000, 3)
