"""
Corpus Validator
================
Structural checks over a corpus before it is served:
    - Total Records
    - Duplicate Ids
    - Missing Ids (gaps in the 1..N sequence)
    - Records With Empty Stems
    - Records Without Options
    - Records Without Answer

The matcher assumes a validated corpus; this report is how to get one.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from .models import CorpusReport, QuestionRecord

logger = logging.getLogger(__name__)

# Cap on the number of missing ids listed in a report
MAX_REPORTED_GAPS = 10_000


class CorpusValidator:
    """
    Validates corpus records and produces a CorpusReport.
    """

    def validate(self, records: Sequence[QuestionRecord]) -> CorpusReport:
        """
        Run all checks on the given records.

        Args:
            records: Corpus records, duplicates included.

        Returns:
            CorpusReport with all detected issues.
        """
        report = CorpusReport()

        if not records:
            logger.warning("No corpus records to validate")
            return report

        report.total_records = len(records)

        id_counts = Counter(r.id for r in records)
        report.duplicate_ids = sorted(
            qid for qid, count in id_counts.items() if count > 1
        )
        report.missing_ids = self._find_gaps(sorted(id_counts))

        for record in records:
            if not record.stem.strip():
                report.empty_stems.append(record.id)
            if not record.options:
                report.without_options.append(record.id)
            if not record.answer.strip():
                report.without_answer.append(record.id)

        logger.info("=" * 60)
        logger.info("CORPUS REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Records: {report.total_records}")
        logger.info(f"Duplicate Ids: {len(report.duplicate_ids)}")
        logger.info(f"Missing Ids: {len(report.missing_ids)}")
        logger.info(f"Empty Stems: {len(report.empty_stems)}")
        logger.info(f"Without Options: {len(report.without_options)}")
        logger.info(f"Without Answer: {len(report.without_answer)}")
        logger.info("=" * 60)

        return report

    @staticmethod
    def _find_gaps(ids: Sequence[int], limit: int = MAX_REPORTED_GAPS) -> list[int]:
        """Missing ids below the largest id, walking sorted ids pairwise."""
        gaps: list[int] = []
        previous = 0
        for qid in ids:
            for missing in range(previous + 1, qid):
                if len(gaps) >= limit:
                    logger.warning(f"More than {limit} missing ids, list truncated")
                    return gaps
                gaps.append(missing)
            previous = qid
        return gaps
