"""Scoring engine data models.

This package contains the immutable records the engine consumes: responses,
sections and questions, scoring configurations, and result definitions.
"""

from psyscore.models.answer import Response
from psyscore.models.base import ConfigRecord, EngineModel, EntityId
from psyscore.models.result import ResultComponent, ResultDefinition
from psyscore.models.scoring import (
    CustomTopN,
    HighestOnly,
    RangeBased,
    ScoreBand,
    ScoringConfiguration,
    ScoringPattern,
    TopN,
    parse_scoring_pattern,
)
from psyscore.models.section import OptionEntry, Question, Section, coerce_number

__all__ = [
    "ConfigRecord",
    "CustomTopN",
    "EngineModel",
    "EntityId",
    "HighestOnly",
    "OptionEntry",
    "Question",
    "RangeBased",
    "Response",
    "ResultComponent",
    "ResultDefinition",
    "ScoreBand",
    "ScoringConfiguration",
    "ScoringPattern",
    "TopN",
    "coerce_number",
    "parse_scoring_pattern",
]
