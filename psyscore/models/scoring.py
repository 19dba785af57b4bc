"""Scoring configuration and scoring pattern models.

Patterns are a tagged union keyed on ``type``. Stored configurations may still
hold the loosely-typed JSON blobs older admin tooling wrote, so
``parse_scoring_pattern`` is the single place those shapes are translated into
typed patterns. The scoring services only ever see the typed values.
"""

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, Field, ValidationError as PydanticValidationError, field_validator

from psyscore.core.config import get_settings
from psyscore.models.base import ConfigRecord, EngineModel, EntityId
from psyscore.utils.constants import (
    LEGACY_CUSTOM_TYPES,
    LEGACY_HIGHEST_TYPES,
    LEGACY_LOWEST_TYPES,
    LEGACY_RANGE_TYPES,
    LEGACY_TOP_N_TYPES,
    ErrorCodes,
    OrderDirection,
    PatternType,
    ScoringConstants,
    ScoringType,
)
from psyscore.utils.exceptions import PatternConfigError


class HighestOnly(EngineModel):
    """Select the single highest scoring flag."""

    type: Literal["highest_only"] = "highest_only"


class TopN(EngineModel):
    """Select the N highest scoring flags, re-ordered by an optional priority list."""

    type: Literal["top_n"] = "top_n"
    n: int = Field(ge=1)
    order: List[str] = Field(default_factory=list)


class CustomTopN(EngineModel):
    """Top-N with per-flag weights applied before the score sort."""

    type: Literal["custom_top_n"] = "custom_top_n"
    n: int = ScoringConstants.DEFAULT_CUSTOM_TOP_N
    order: List[str] = Field(default_factory=list)
    weights: Dict[str, float] = Field(default_factory=dict)
    order_direction: OrderDirection = OrderDirection.HIGH_TO_LOW

    @field_validator("n", mode="before")
    @classmethod
    def clamp_n(cls, value: Any) -> int:
        """Clamp N into the 1..MAX_TOP_N window."""
        try:
            n = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"n must be an integer, got {value!r}")
        return max(ScoringConstants.MIN_TOP_N, min(n, get_settings().MAX_TOP_N))


class ScoreBand(EngineModel):
    """Inclusive numeric band mapped to a label."""

    min: float
    max: float
    label: str

    @field_validator("label")
    @classmethod
    def label_not_blank(cls, value: str) -> str:
        """Bands must be labelled."""
        value = value.strip()
        if not value:
            raise ValueError("label is required and must be a non-empty string")
        return value

    def contains(self, score: float) -> bool:
        """Check whether the score falls inside the band (both ends inclusive)."""
        return self.min <= score <= self.max

    def overlaps(self, other: "ScoreBand") -> bool:
        """Check whether two bands share any value."""
        return max(self.min, other.min) <= min(self.max, other.max)

    def describe(self) -> str:
        """Human-readable band description."""
        return f"{self.label} [{self.min:g}-{self.max:g}]"


class RangeBased(EngineModel):
    """Map the sum of all flag totals onto a labelled band."""

    type: Literal["range_based"] = "range_based"
    ranges: List[ScoreBand] = Field(default_factory=list)

    def sorted_ranges(self) -> List[ScoreBand]:
        """Bands in ascending order of lower bound."""
        return sorted(self.ranges, key=lambda band: band.min)


ScoringPattern = Annotated[
    Union[HighestOnly, TopN, CustomTopN, RangeBased],
    Field(discriminator="type"),
]


class ScoringConfiguration(ConfigRecord):
    """Admin-authored scoring rule for a section, or for a whole test."""

    test_id: EntityId = Field(validation_alias=AliasChoices("test_id", "testId"))
    section_id: Optional[EntityId] = Field(
        default=None, validation_alias=AliasChoices("section_id", "sectionId")
    )
    scoring_type: ScoringType = Field(
        default=ScoringType.FLAG_BASED,
        validation_alias=AliasChoices("scoring_type", "scoringType"),
    )
    pattern: ScoringPattern = Field(
        validation_alias=AliasChoices("pattern", "scoring_pattern", "scoringPattern")
    )

    @field_validator("scoring_type")
    @classmethod
    def validate_scoring_type(cls, value: ScoringType) -> ScoringType:
        """Only flag and range scoring can be configured."""
        if ScoringType(value) not in ScoringType.configurable():
            raise ValueError(f"scoring_type must be one of {[t.value for t in ScoringType.configurable()]}")
        return value

    @field_validator("pattern", mode="before")
    @classmethod
    def coerce_pattern(cls, value: Any) -> Any:
        """Accept stored JSON blobs and legacy shapes."""
        if isinstance(value, EngineModel):
            return value
        return parse_scoring_pattern(value)

    @property
    def is_test_level(self) -> bool:
        """Whether the configuration applies to the whole test."""
        return self.section_id is None


# ============================================================================
# LEGACY PATTERN PARSING
# ============================================================================

_PATTERN_MODELS = {
    PatternType.HIGHEST_ONLY.value: HighestOnly,
    PatternType.TOP_N.value: TopN,
    PatternType.CUSTOM_TOP_N.value: CustomTopN,
    PatternType.RANGE_BASED.value: RangeBased,
}


def parse_scoring_pattern(raw: Union[str, Dict[str, Any], EngineModel]) -> EngineModel:
    """Translate a stored scoring pattern into a typed pattern.

    Args:
        raw: JSON string, dict (canonical or legacy shape) or an already typed pattern

    Returns:
        One of HighestOnly, TopN, CustomTopN or RangeBased

    Raises:
        PatternConfigError: If the blob is not JSON, names an unknown type or
            does not fit the shape its type requires
    """
    if isinstance(raw, (HighestOnly, TopN, CustomTopN, RangeBased)):
        return raw

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise PatternConfigError(
                f"Scoring pattern is not valid JSON: {raw!r}",
                cause=e,
            )

    if not isinstance(raw, dict):
        raise PatternConfigError(f"Scoring pattern must be an object, got {type(raw).__name__}")

    pattern_type = raw.get("type")
    data = _canonicalize(pattern_type, raw)
    model = _PATTERN_MODELS[data["type"]]

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise PatternConfigError(
            f"Invalid {data['type']} pattern: {'; '.join(errors)}",
            pattern_type=str(pattern_type or data["type"]),
            cause=e,
        )


def _canonicalize(pattern_type: Optional[str], raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map a canonical or legacy pattern dict onto canonical field names."""
    order = raw.get("order") or raw.get("priorityOrder") or []

    if pattern_type is None:
        # Section configs once stored only a flag count and an order list
        if "flagCount" not in raw:
            raise PatternConfigError(
                "Scoring pattern has no type",
                error_code=ErrorCodes.PATTERN_UNKNOWN_TYPE,
            )
        flag_count = _as_int(raw.get("flagCount"), default=1)
        if flag_count == 1 and not order:
            return {"type": PatternType.HIGHEST_ONLY.value}
        return {"type": PatternType.TOP_N.value, "n": flag_count, "order": order}

    if pattern_type in _PATTERN_MODELS and pattern_type not in LEGACY_CUSTOM_TYPES + LEGACY_RANGE_TYPES:
        return dict(raw)

    if pattern_type in LEGACY_HIGHEST_TYPES:
        return {"type": PatternType.HIGHEST_ONLY.value}

    if pattern_type in LEGACY_TOP_N_TYPES:
        return {
            "type": PatternType.TOP_N.value,
            "n": LEGACY_TOP_N_TYPES[pattern_type],
            "order": order,
        }

    if pattern_type in LEGACY_CUSTOM_TYPES:
        n = raw.get("n", raw.get("topN", raw.get("flagCount", ScoringConstants.DEFAULT_CUSTOM_TOP_N)))
        return {
            "type": PatternType.CUSTOM_TOP_N.value,
            "n": n,
            "order": order,
            "weights": raw.get("weights") or raw.get("flagWeights") or {},
            "order_direction": _direction(raw.get("order_direction", raw.get("orderDirection"))),
        }

    if pattern_type in LEGACY_LOWEST_TYPES:
        return {
            "type": PatternType.CUSTOM_TOP_N.value,
            "n": raw.get("flagCount", 1),
            "order": order,
            "order_direction": OrderDirection.LOW_TO_HIGH.value,
        }

    if pattern_type in LEGACY_RANGE_TYPES:
        return {"type": PatternType.RANGE_BASED.value, "ranges": raw.get("ranges") or []}

    raise PatternConfigError(
        f"Unknown scoring pattern type: {pattern_type!r}",
        pattern_type=str(pattern_type),
        error_code=ErrorCodes.PATTERN_UNKNOWN_TYPE,
    )


def _direction(value: Optional[str]) -> str:
    """Normalize "high-to-low" / "low_to_high" spellings."""
    if not value:
        return OrderDirection.HIGH_TO_LOW.value
    normalized = str(value).strip().lower().replace("-", "_")
    if normalized not in {d.value for d in OrderDirection}:
        raise PatternConfigError(
            f'orderDirection must be "high-to-low" or "low-to-high", got {value!r}',
            pattern_type="custom_top_n",
        )
    return normalized


def _as_int(value: Any, default: int) -> int:
    """Parse an integer the way stored configs wrote it (number or string)."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
