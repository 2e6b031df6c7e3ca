"""
Corpus Loading
==============
Reads the question corpus and optional correction tables from JSON.

Corpus file format (UTF-8 JSON array):
    [
      {"id": 1, "question": "...", "options": ["A:...", "B:..."],
       "answer": "A", "explanation": "...", "image": "https://..."},
      ...
    ]

Records that fail validation are skipped with a warning instead of
failing the whole load.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from .models import QuestionRecord
from .tables import CorrectionTable

logger = logging.getLogger(__name__)


class CorpusError(ValueError):
    """A corpus or correction file that cannot be used at all."""


def read_json(path: str | Path):
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise CorpusError(f"Invalid JSON in {path}: {e}") from e


def parse_corpus(
    items: list,
    drop_duplicates: bool = True,
) -> tuple[QuestionRecord, ...]:
    """Validate raw corpus items, dropping malformed (and duplicate) records."""
    records: list[QuestionRecord] = []
    seen: set[int] = set()

    for index, item in enumerate(items):
        try:
            record = QuestionRecord.model_validate(item)
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed corpus entry #{index}: "
                f"{e.error_count()} validation error(s)"
            )
            continue

        if drop_duplicates and record.id in seen:
            logger.warning(f"Skipping duplicate corpus id {record.id}")
            continue

        seen.add(record.id)
        records.append(record)

    return tuple(records)


def load_corpus(path: str | Path) -> tuple[QuestionRecord, ...]:
    """
    Load a corpus file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        CorpusError: If the file is not a JSON array.
    """
    data = read_json(path)
    if not isinstance(data, list):
        raise CorpusError(f"Corpus must be a JSON array: {path}")

    records = parse_corpus(data)
    logger.info(
        f"Loaded {len(records)} questions from {path} "
        f"({len(data) - len(records)} skipped)"
    )
    return records


def load_correction_table(path: str | Path) -> CorrectionTable:
    """
    Load a correction table.

    Accepts either {"version": "...", "rules": [[wrong, right], ...]} or a
    plain ordered object {wrong: right, ...}.
    """
    data = read_json(path)

    if isinstance(data, dict) and "rules" in data:
        version = str(data.get("version", Path(path).stem))
        pairs = data["rules"]
    elif isinstance(data, dict):
        version = Path(path).stem
        pairs = list(data.items())
    else:
        raise CorpusError(f"Unsupported correction table format: {path}")

    rules = []
    for pair in pairs:
        if (
            not isinstance(pair, (list, tuple))
            or len(pair) != 2
            or not all(isinstance(part, str) for part in pair)
        ):
            raise CorpusError(f"Invalid correction rule {pair!r} in {path}")
        if not pair[0]:
            raise CorpusError(f"Empty pattern in correction table {path}")
        rules.append((pair[0], pair[1]))

    logger.info(f"Loaded correction table v{version} ({len(rules)} rules)")
    return CorrectionTable(version=version, rules=tuple(rules))


class QuestionBank:
    """Read-only access to a loaded corpus."""

    def __init__(self, records: Sequence[QuestionRecord] = ()):
        self.records: tuple[QuestionRecord, ...] = tuple(records)
        self._by_id = {r.id: r for r in self.records}

    @classmethod
    def from_file(cls, path: str | Path) -> QuestionBank:
        return cls(load_corpus(path))

    def all(self) -> tuple[QuestionRecord, ...]:
        return self.records

    def get(self, question_id: int) -> Optional[QuestionRecord]:
        return self._by_id.get(question_id)

    def count(self) -> int:
        return len(self.records)

    def search(self, keyword: str) -> list[QuestionRecord]:
        """Case-insensitive substring search over stems and options."""
        needle = keyword.lower()
        if not needle:
            return []
        return [
            r for r in self.records
            if needle in r.stem.lower()
            or any(needle in opt.lower() for opt in r.options)
        ]

    def __len__(self) -> int:
        return len(self.records)
