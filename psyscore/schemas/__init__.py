"""Pydantic schemas for scoring engine results."""

from psyscore.schemas.scoring_schemas import (
    CombinationResult,
    CompositeScore,
    MatchOutcome,
    NoMatchOutcome,
    ScoredComponent,
    ScoringResult,
    SectionMatch,
    SectionResult,
)

__all__ = [
    "CombinationResult",
    "CompositeScore",
    "MatchOutcome",
    "NoMatchOutcome",
    "ScoredComponent",
    "ScoringResult",
    "SectionMatch",
    "SectionResult",
]
