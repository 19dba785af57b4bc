"""Result schemas returned by the scoring engine.

These are the values handed back to the attempt-submission flow. Persisting
them is the caller's job.
"""

from typing import Dict, List, Literal, Optional, Union

from pydantic import Field

from psyscore.models.base import EngineModel, EntityId
from psyscore.models.result import ResultComponent, ResultDefinition
from psyscore.utils.constants import MatchMode, ScoringType


class SectionResult(EngineModel):
    """Scoring outcome for one section."""

    section_id: EntityId
    section_order: int = 0
    section_name: Optional[str] = None
    scoring_type: ScoringType = ScoringType.SIMPLE
    pattern_type: Optional[str] = None
    flag_totals: Dict[str, float] = Field(default_factory=dict)
    weighted_totals: Dict[str, float] = Field(default_factory=dict)
    selection: List[str] = Field(default_factory=list)
    range_label: Optional[str] = None
    fragment_code: str = ""
    section_total: float = 0
    answered_count: int = 0
    unmapped_answers: int = 0
    used_fallback: bool = False
    configuration_error: Optional[str] = None

    @property
    def primary_flag(self) -> Optional[str]:
        """First selected flag, if any."""
        return self.selection[0] if self.selection else None


class CompositeScore(EngineModel):
    """Concatenated code and summed score across a test's sections."""

    composite_code: str = ""
    overall_score: float = 0
    answered_count: int = 0
    unmapped_answers: int = 0
    dominant_scoring_type: ScoringType = ScoringType.SIMPLE
    section_results: List[SectionResult] = Field(default_factory=list)

    @property
    def average_score(self) -> float:
        """Overall score per answered question."""
        return self.overall_score / self.answered_count if self.answered_count else 0


class NoMatchOutcome(EngineModel):
    """A code or score was computed but no active result corresponds to it.

    This is a value, not an error: it signals a gap in admin configuration.
    """

    matched: Literal[False] = False
    test_id: EntityId
    mode: MatchMode
    result_code: Optional[str] = None
    score: Optional[float] = None
    reason: str
    available: List[str] = Field(default_factory=list)


MatchOutcome = Union[ResultDefinition, NoMatchOutcome]


class SectionMatch(EngineModel):
    """Range match for one section of a multi-section range test."""

    section_id: EntityId
    score: float
    average_score: float
    outcome: MatchOutcome


class ScoringResult(EngineModel):
    """Final outcome of the flag/range pipeline for one attempt."""

    test_id: EntityId
    scoring_type: ScoringType
    match_mode: MatchMode
    composite_code: str = ""
    overall_score: float = 0
    average_score: float = 0
    answered_count: int = 0
    unmapped_answers: int = 0
    section_results: List[SectionResult] = Field(default_factory=list)
    matched_result: Optional[ResultDefinition] = None
    no_match: Optional[NoMatchOutcome] = None
    section_matches: List[SectionMatch] = Field(default_factory=list)
    summary: str = ""

    @property
    def outcome(self) -> MatchOutcome:
        """The matched definition, or the no-match value."""
        return self.matched_result if self.matched_result is not None else self.no_match

    @property
    def is_matched(self) -> bool:
        """Whether an admin result was found."""
        return self.matched_result is not None


class ScoredComponent(EngineModel):
    """A selected component and how it contributed to the weighted total."""

    component: ResultComponent
    raw_score: float
    weighted_score: float
    position_weight: float

    @property
    def contribution(self) -> float:
        """Share of the reported total that this component provides."""
        return self.weighted_score * self.position_weight


class CombinationResult(EngineModel):
    """Outcome of the component combination pipeline."""

    test_id: EntityId
    combination: List[ResultComponent] = Field(default_factory=list)
    scored_components: List[ScoredComponent] = Field(default_factory=list)
    result_code: str = ""
    weighted_total: float = 0
    max_components: int
    matched_result: Optional[ResultDefinition] = None
    no_match: Optional[NoMatchOutcome] = None
