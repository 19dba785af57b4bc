"""Scoring pattern resolution.

Applies one scoring pattern to a section's flag totals and yields either an
ordered flag selection or a matched range label.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from psyscore.models.base import EngineModel
from psyscore.models.scoring import CustomTopN, HighestOnly, RangeBased, TopN
from psyscore.utils.constants import ErrorCodes, OrderDirection
from psyscore.utils.exceptions import PatternConfigError
from psyscore.utils.logger import get_scoring_logger

logger = get_scoring_logger()


@dataclass(frozen=True)
class PatternResolution:
    """Outcome of applying a pattern to flag totals.

    Flag patterns fill ``selection``. Range patterns fill ``score`` and, when a
    band accepts it, ``range_label``; a None label is the no-match sentinel.
    """

    pattern_type: str
    selection: Tuple[str, ...] = ()
    weighted_totals: Dict[str, float] = field(default_factory=dict)
    score: Optional[float] = None
    range_label: Optional[str] = None

    @property
    def is_range(self) -> bool:
        """Whether this came from a range pattern."""
        return self.score is not None

    @property
    def range_matched(self) -> bool:
        """Whether a range pattern found a band."""
        return self.range_label is not None

    @property
    def code(self) -> str:
        """Selected flags concatenated in resolved order."""
        return "".join(self.selection)


class PatternResolver:
    """Reduces flag totals with a typed scoring pattern."""

    def resolve(self, totals: Mapping[str, float], pattern: EngineModel) -> PatternResolution:
        """Apply a pattern to flag totals.

        Args:
            totals: Flag totals, in a stable key order
            pattern: HighestOnly, TopN, CustomTopN or RangeBased

        Returns:
            PatternResolution: Selection or range label

        Raises:
            PatternConfigError: If the pattern is not a known pattern model
        """
        if isinstance(pattern, HighestOnly):
            ranked = self.rank(totals)
            return PatternResolution(pattern_type=pattern.type, selection=tuple(ranked[:1]))

        if isinstance(pattern, TopN):
            ranked = self.rank(totals, order=pattern.order)
            selection = self.apply_priority(ranked[:pattern.n], pattern.order)
            return PatternResolution(pattern_type=pattern.type, selection=tuple(selection))

        if isinstance(pattern, CustomTopN):
            weighted = self.apply_weights(totals, pattern.weights)
            ranked = self.rank(weighted, order=pattern.order, direction=pattern.order_direction)
            selection = self.apply_priority(ranked[:pattern.n], pattern.order)
            return PatternResolution(
                pattern_type=pattern.type,
                selection=tuple(selection),
                weighted_totals=weighted,
            )

        if isinstance(pattern, RangeBased):
            return self.resolve_range(totals, pattern)

        raise PatternConfigError(
            f"Unsupported scoring pattern {type(pattern).__name__}",
            pattern_type=getattr(pattern, "type", None),
            error_code=ErrorCodes.PATTERN_UNKNOWN_TYPE,
        )

    def rank(
        self,
        totals: Mapping[str, float],
        order: Sequence[str] = (),
        direction: str = OrderDirection.HIGH_TO_LOW,
    ) -> List[str]:
        """Sort flags by score.

        Equal scores are separated only by position in ``order``; flags missing
        from it keep the order of ``totals``.

        Args:
            totals: Flag scores
            order: Priority list
            direction: high_to_low or low_to_high

        Returns:
            List[str]: Flags in ranked order
        """
        positions = _positions(order)
        sign = 1 if OrderDirection(direction) == OrderDirection.LOW_TO_HIGH else -1
        return sorted(
            totals,
            key=lambda flag: (sign * totals[flag], positions.get(flag, len(positions))),
        )

    def apply_priority(self, selected: Sequence[str], order: Sequence[str]) -> List[str]:
        """Re-order a selection by a priority list.

        Flags found in ``order`` come first, earliest position first; the rest
        keep their score order behind them.
        """
        if not order:
            return list(selected)
        positions = _positions(order)
        in_order = sorted((f for f in selected if f in positions), key=positions.__getitem__)
        return in_order + [f for f in selected if f not in positions]

    def apply_weights(self, totals: Mapping[str, float], weights: Mapping[str, float]) -> Dict[str, float]:
        """Multiply each flag total by its weight (default 1)."""
        return {flag: total * weights.get(flag, 1) for flag, total in totals.items()}

    def resolve_range(self, totals: Mapping[str, float], pattern: RangeBased) -> PatternResolution:
        """Map the sum of all flag totals onto the first accepting band."""
        score = sum(totals.values())
        for band in pattern.sorted_ranges():
            if band.contains(score):
                return PatternResolution(pattern_type=pattern.type, score=score, range_label=band.label)

        logger.info(
            f"Score {score} falls outside every configured band",
            extra={"score": score, "bands": [band.describe() for band in pattern.ranges]},
        )
        return PatternResolution(pattern_type=pattern.type, score=score)


def _positions(order: Sequence[str]) -> Dict[str, int]:
    """First position of each flag in a priority list."""
    positions: Dict[str, int] = {}
    for index, flag in enumerate(order):
        positions.setdefault(flag, index)
    return positions
