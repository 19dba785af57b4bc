"""Save-time validation utilities for scoring configuration.

This module validates admin-authored scoring patterns, score range
descriptors, result definitions and result components before they are stored,
so the scoring engine only ever receives well-formed configuration.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from psyscore.core.config import get_settings
from psyscore.models.base import EngineModel
from psyscore.models.scoring import CustomTopN, RangeBased, ScoreBand, TopN, parse_scoring_pattern
from psyscore.services.range_parser import ScoreRange
from psyscore.utils.constants import ErrorCodes, ValidationConstants
from psyscore.utils.exceptions import PatternConfigError, RangeOverlapError


class ValidationResult(BaseModel):
    """Result of a validation operation."""

    is_valid: bool = Field(..., description="Whether validation passed")
    errors: List[str] = Field(default_factory=list, description="List of validation errors")
    warnings: List[str] = Field(default_factory=list, description="List of validation warnings")
    cleaned_value: Optional[Any] = Field(default=None, description="Cleaned/normalized value")

    def add_error(self, error: str) -> None:
        """Add a validation error."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a validation warning."""
        self.warnings.append(warning)

    @classmethod
    def success(cls, cleaned_value: Optional[Any] = None) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True, cleaned_value=cleaned_value)

    @classmethod
    def failure(cls, errors: Union[str, List[str]]) -> "ValidationResult":
        """Create a failed validation result."""
        if isinstance(errors, str):
            errors = [errors]
        return cls(is_valid=False, errors=errors)


def _check_bands(bands: List[ScoreBand]) -> Tuple[List[str], List[str]]:
    """Check a range pattern's bands.

    Returns:
        Tuple of (shape errors, overlap or inversion errors)
    """
    shape_errors = []
    overlap_errors = []
    max_ranges = get_settings().MAX_SCORE_RANGES

    if not bands:
        shape_errors.append("At least one score range is required")
    if len(bands) > max_ranges:
        shape_errors.append(f"At most {max_ranges} score ranges are allowed, got {len(bands)}")

    for band in bands:
        if band.min > band.max:
            overlap_errors.append(f"Range {band.describe()} has its minimum above its maximum")

    ordered = sorted((b for b in bands if b.min <= b.max), key=lambda b: b.min)
    for i, band in enumerate(ordered):
        for other in ordered[i + 1:]:
            if band.overlaps(other):
                overlap_errors.append(f"Ranges {band.describe()} and {other.describe()} overlap")

    return shape_errors, overlap_errors


def _requested_n(raw: Any) -> Optional[int]:
    """N as written in a stored custom pattern, before clamping."""
    if not isinstance(raw, dict):
        return None
    value = raw.get("n", raw.get("topN", raw.get("flagCount")))
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def validate_scoring_pattern(raw: Union[str, Dict[str, Any], EngineModel]) -> ValidationResult:
    """Validate a scoring pattern as an admin would save it.

    Args:
        raw: JSON string, dict (canonical or legacy shape) or typed pattern

    Returns:
        ValidationResult: Validation result with the typed pattern
    """
    if raw is None or raw == "" or raw == {}:
        return ValidationResult.failure("Scoring pattern is required")

    try:
        pattern = parse_scoring_pattern(raw)
    except PatternConfigError as e:
        return ValidationResult.failure(e.message)

    if isinstance(pattern, RangeBased):
        shape_errors, overlap_errors = _check_bands(pattern.ranges)
        if shape_errors or overlap_errors:
            return ValidationResult.failure(shape_errors + overlap_errors)
        return ValidationResult.success(pattern)

    result = ValidationResult.success(pattern)

    if isinstance(pattern, (TopN, CustomTopN)):
        seen = set()
        for flag in pattern.order:
            if flag in seen:
                result.add_warning(f"Flag {flag!r} appears more than once in the order list")
            seen.add(flag)

    if isinstance(pattern, TopN) and pattern.n > get_settings().MAX_TOP_N:
        result.add_warning(f"Top-N selects {pattern.n} flags, more than the usual {get_settings().MAX_TOP_N}")

    if isinstance(pattern, CustomTopN):
        requested = _requested_n(raw)
        if requested is not None and requested != pattern.n:
            result.add_warning(f"Requested N of {requested} was clamped to {pattern.n}")

    return result


def validate_score_range(descriptor: str) -> ValidationResult:
    """Validate a textual score range descriptor.

    Args:
        descriptor: Range descriptor such as "10-20" or ">=75"

    Returns:
        ValidationResult: Validation result with the stripped descriptor
    """
    if not descriptor or not str(descriptor).strip():
        return ValidationResult.failure("Score range is required")

    try:
        ScoreRange.parse(str(descriptor))
    except PatternConfigError as e:
        return ValidationResult.failure(e.message)

    return ValidationResult.success(str(descriptor).strip())


def validate_result_definition(data: Dict[str, Any]) -> ValidationResult:
    """Validate a result definition before it is saved.

    Args:
        data: Result definition fields

    Returns:
        ValidationResult: Validation result with cleaned fields
    """
    if not isinstance(data, dict):
        return ValidationResult.failure("Result definition must be a dictionary")

    errors = []
    cleaned = dict(data)

    test_id = data.get("test_id", data.get("testId"))
    if test_id is None or test_id == "":
        errors.append("test_id is required")

    title = str(data.get("title") or "").strip()
    if not title:
        errors.append("title is required")
    cleaned["title"] = title

    result_code = str(data.get("result_code", data.get("resultCode")) or "").strip()
    score_range = str(data.get("score_range", data.get("scoreRange")) or "").strip()

    if not result_code and not score_range:
        errors.append("Either result_code or score_range is required")

    if result_code and not ValidationConstants.RESULT_CODE_PATTERN.match(result_code):
        errors.append("result_code may only contain letters, numbers, underscores and hyphens")

    if score_range:
        range_result = validate_score_range(score_range)
        errors.extend(range_result.errors)

    if errors:
        return ValidationResult.failure(errors)

    cleaned["result_code"] = result_code or None
    cleaned["score_range"] = score_range or None

    result = ValidationResult.success(cleaned)
    if result_code and score_range:
        result.add_warning("Result has both a code and a score range; only one will be used per test")

    return result


def validate_result_component(data: Dict[str, Any]) -> ValidationResult:
    """Validate a result component before it is saved.

    Args:
        data: Result component fields

    Returns:
        ValidationResult: Validation result with cleaned fields
    """
    if not isinstance(data, dict):
        return ValidationResult.failure("Result component must be a dictionary")

    settings = get_settings()
    errors = []
    cleaned = dict(data)

    code = str(data.get("component_code", data.get("componentCode")) or "").strip()
    if not code:
        errors.append("component_code is required")
    elif not ValidationConstants.COMPONENT_CODE_PATTERN.match(code):
        errors.append("component_code must be 1-5 letters or numbers")
    cleaned["component_code"] = code

    score = data.get("score_value", data.get("scoreValue", 0))
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        errors.append("score_value must be a number")
    elif not ValidationConstants.COMPONENT_SCORE_MIN <= score <= ValidationConstants.COMPONENT_SCORE_MAX:
        errors.append(
            f"score_value must be between {ValidationConstants.COMPONENT_SCORE_MIN} "
            f"and {ValidationConstants.COMPONENT_SCORE_MAX}"
        )

    priority = data.get("order_priority", data.get("orderPriority", 1))
    if isinstance(priority, bool) or not isinstance(priority, int):
        errors.append("order_priority must be an integer")
    elif priority < ValidationConstants.COMPONENT_PRIORITY_MIN:
        errors.append(f"order_priority must be at least {ValidationConstants.COMPONENT_PRIORITY_MIN}")

    weight = data.get("component_weight", data.get("componentWeight", 1.0))
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        errors.append("component_weight must be a number")
    elif not settings.COMPONENT_WEIGHT_MIN <= weight <= settings.COMPONENT_WEIGHT_MAX:
        errors.append(
            f"component_weight must be between {settings.COMPONENT_WEIGHT_MIN} "
            f"and {settings.COMPONENT_WEIGHT_MAX}"
        )

    if errors:
        return ValidationResult.failure(errors)

    return ValidationResult.success(cleaned)


def ensure_valid_scoring_pattern(raw: Union[str, Dict[str, Any], EngineModel]) -> EngineModel:
    """Parse and validate a scoring pattern, raising on any problem.

    Args:
        raw: JSON string, dict (canonical or legacy shape) or typed pattern

    Returns:
        The typed pattern

    Raises:
        RangeOverlapError: If range bands overlap or are inverted
        PatternConfigError: For any other malformed pattern
    """
    pattern = parse_scoring_pattern(raw)

    if isinstance(pattern, RangeBased):
        shape_errors, overlap_errors = _check_bands(pattern.ranges)
        if overlap_errors:
            raise RangeOverlapError(
                "; ".join(overlap_errors),
                ranges=[band.describe() for band in pattern.ranges],
                pattern_type=pattern.type,
            )
        if shape_errors:
            raise PatternConfigError(
                "; ".join(shape_errors),
                pattern_type=pattern.type,
                error_code=ErrorCodes.PATTERN_INVALID,
            )

    return pattern


# Export all validation functions
__all__ = [
    "ValidationResult",
    "validate_scoring_pattern",
    "validate_score_range",
    "validate_result_definition",
    "validate_result_component",
    "ensure_valid_scoring_pattern",
]
