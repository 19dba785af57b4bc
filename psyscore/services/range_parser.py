"""Parsing of textual score-range descriptors.

Result definitions key range-based results with short descriptors such as
``"10-20"``, ``">90"`` or ``"<=25"``. A descriptor is parsed once into a
``ScoreRange`` value; scoring only ever calls ``contains`` on it.
"""

from dataclasses import dataclass
from typing import Optional

from psyscore.utils.constants import ErrorCodes, ValidationConstants
from psyscore.utils.exceptions import PatternConfigError
from psyscore.utils.logger import get_matching_logger

logger = get_matching_logger()


@dataclass(frozen=True)
class ScoreRange:
    """Parsed score range with optional, possibly exclusive, bounds."""

    descriptor: str
    lower: Optional[float] = None
    upper: Optional[float] = None
    lower_inclusive: bool = True
    upper_inclusive: bool = True

    @classmethod
    def parse(cls, descriptor: str) -> "ScoreRange":
        """Parse a descriptor.

        Args:
            descriptor: One of "<min>-<max>", ">n", "<n", ">=n" or "<=n"

        Returns:
            ScoreRange: Parsed range

        Raises:
            PatternConfigError: If the descriptor is malformed or inverted
        """
        if not isinstance(descriptor, str):
            raise PatternConfigError(
                f"Score range must be a string, got {descriptor!r}",
                pattern_type=repr(descriptor),
                error_code=ErrorCodes.RANGE_DESCRIPTOR_INVALID,
            )

        between = ValidationConstants.BETWEEN_PATTERN.match(descriptor)
        if between:
            lower, upper = float(between.group(1)), float(between.group(2))
            if lower > upper:
                raise PatternConfigError(
                    f"Score range {descriptor!r} has its minimum above its maximum",
                    pattern_type=descriptor,
                    error_code=ErrorCodes.RANGE_INVERTED,
                )
            return cls(descriptor=descriptor, lower=lower, upper=upper)

        bound = ValidationConstants.BOUND_PATTERN.match(descriptor)
        if bound:
            operator, value = bound.group(1), float(bound.group(2))
            if operator == ">":
                return cls(descriptor=descriptor, lower=value, lower_inclusive=False)
            if operator == ">=":
                return cls(descriptor=descriptor, lower=value)
            if operator == "<":
                return cls(descriptor=descriptor, upper=value, upper_inclusive=False)
            return cls(descriptor=descriptor, upper=value)

        raise PatternConfigError(
            f'Malformed score range {descriptor!r}: expected "80-100", ">90", "<50", ">=75" or "<=25"',
            pattern_type=descriptor,
            error_code=ErrorCodes.RANGE_DESCRIPTOR_INVALID,
        )

    @property
    def sort_key(self) -> float:
        """Effective lower bound; unbounded-below ranges sort at 0."""
        return self.lower if self.lower is not None else 0

    def contains(self, score: float) -> bool:
        """Check whether a score falls inside the range."""
        if self.lower is not None:
            if score < self.lower or (score == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if score > self.upper or (score == self.upper and not self.upper_inclusive):
                return False
        return True

    def __call__(self, score: float) -> bool:
        return self.contains(score)


def parse_range(descriptor: str) -> ScoreRange:
    """Parse a score range descriptor, raising on malformed input."""
    return ScoreRange.parse(descriptor)


def try_parse_range(descriptor: Optional[str]) -> Optional[ScoreRange]:
    """Parse a score range descriptor at scoring time.

    Malformed descriptors should have been rejected when the result was saved.
    If one slips through it is logged and treated as matching nothing.

    Args:
        descriptor: Range descriptor, may be None

    Returns:
        ScoreRange or None when missing or malformed
    """
    if not descriptor:
        return None
    try:
        return ScoreRange.parse(descriptor)
    except PatternConfigError as e:
        logger.warning(
            f"Ignoring malformed score range {descriptor!r}",
            extra={"descriptor": descriptor, "error": e.message},
        )
        return None
