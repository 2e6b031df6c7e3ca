"""
Data Models
===========
Pydantic models for corpus records and match output.
All models are serializable to JSON for API consumers.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class MatchOutcome(str, Enum):
    """How a match call ended."""
    MATCHED = "matched"
    NO_MATCH = "no_match"
    EMPTY_CORPUS = "empty_corpus"
    EMPTY_EXTRACTION = "empty_extraction"


# ─── Corpus Models ────────────────────────────────────────────────────────────


class QuestionRecord(BaseModel):
    """
    A single multiple-choice question from the corpus.
    Immutable once loaded; the matcher only reads it.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    stem: str = Field(
        validation_alias=AliasChoices("stem", "question"),
        description="Question body without its options",
    )
    options: tuple[str, ...] = ()
    answer: str = Field(
        default="",
        description="Option-letter code (e.g. 'AB') or free text",
    )
    explanation: Optional[str] = None
    image: Optional[str] = Field(
        default=None,
        description="URL of an illustration, if the question has one",
    )


class Candidate(QuestionRecord):
    """A corpus record together with its similarity to the OCR stem."""
    similarity: float = Field(ge=0.0, le=1.0)

    @classmethod
    def from_record(cls, record: QuestionRecord, similarity: float) -> Candidate:
        return cls(**record.model_dump(), similarity=similarity)


# ─── Extraction Model ─────────────────────────────────────────────────────────


class StemExtraction(BaseModel):
    """
    Result of one stem extraction run.

    fallback_level is 0 when the state machine found the stem, 1 when the
    filtered re-scan produced it and 2 when the raw text before the first
    option label was used.
    """
    stem: str = ""
    fragments: list[str] = Field(default_factory=list)
    fallback_level: int = Field(default=0, ge=0, le=2)

    @computed_field
    @property
    def used_fallback(self) -> bool:
        return self.fallback_level > 0

    @computed_field
    @property
    def is_empty(self) -> bool:
        return not self.stem.strip()


# ─── Match Result Model ───────────────────────────────────────────────────────


class MatchReport(BaseModel):
    """
    Complete output of one match call.
    This is the top-level JSON structure returned by the CLI and the API.
    """
    recognized_text: str = Field(
        default="",
        description="OCR text cleaned up for display",
    )
    extracted_stem: str = ""
    candidates: list[Candidate] = Field(default_factory=list)
    corpus_size: int = 0
    threshold: float = Field(
        description="Similarity threshold the candidates were selected with",
    )
    elapsed_ms: float = 0.0
    outcome: MatchOutcome = MatchOutcome.NO_MATCH

    @computed_field
    @property
    def best(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None


class CorpusReport(BaseModel):
    """Structural report over a loaded corpus."""
    total_records: int = 0
    duplicate_ids: list[int] = Field(default_factory=list)
    missing_ids: list[int] = Field(default_factory=list)
    empty_stems: list[int] = Field(default_factory=list)
    without_options: list[int] = Field(default_factory=list)
    without_answer: list[int] = Field(default_factory=list)

    @computed_field
    @property
    def is_contiguous(self) -> bool:
        """True when ids run 1..N without gaps or duplicates."""
        return not self.duplicate_ids and not self.missing_ids
