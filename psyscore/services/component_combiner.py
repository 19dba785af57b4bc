"""Weighted component combination.

An alternate result pipeline: rank a test's result components by weighted
score, keep the top few and build a combination code from them.
"""

from typing import Any, Dict, Mapping, Optional, Sequence, Union

from psyscore.core.config import get_settings
from psyscore.models.base import EntityId, coerce_records
from psyscore.models.result import ResultComponent
from psyscore.models.section import coerce_number
from psyscore.schemas.scoring_schemas import CombinationResult, ScoredComponent
from psyscore.utils.constants import ScoringConstants
from psyscore.utils.exceptions import ValidationError
from psyscore.utils.logger import get_combination_logger

logger = get_combination_logger()


class ComponentCombiner:
    """Selects the top weighted components for a combination result."""

    def __init__(self, default_max_components: Optional[int] = None, position_decay: Optional[float] = None):
        """Initialize component combiner.

        Args:
            default_max_components: Components kept when the caller does not
                say (defaults to DEFAULT_MAX_COMPONENTS)
            position_decay: Weight lost per position in the reported total
                (defaults to COMPONENT_POSITION_DECAY)
        """
        settings = get_settings()
        self.default_max_components = default_max_components or settings.DEFAULT_MAX_COMPONENTS
        self.position_decay = settings.COMPONENT_POSITION_DECAY if position_decay is None else position_decay

    def combine(
        self,
        test_id: EntityId,
        score_data: Mapping[str, Any],
        components: Sequence[Union[ResultComponent, Dict[str, Any]]],
        max_components: Optional[int] = None,
    ) -> CombinationResult:
        """Build a combination from component scores.

        Each component scores ``score_data[code]`` (or its own score value when
        the map has none) times its weight. Components are ranked by that
        score, then by priority, then by code. The position decay only affects
        the reported total, never the ranking.

        Args:
            test_id: Test the components belong to
            score_data: Component code to score
            components: The test's result components
            max_components: How many components to keep

        Returns:
            CombinationResult: Selected components, code and weighted total

        Raises:
            ValidationError: If max_components is below 1
        """
        if max_components is None:
            max_components = self.default_max_components
        if isinstance(max_components, bool) or not isinstance(max_components, int) or max_components < 1:
            raise ValidationError(
                "max_components must be a positive integer",
                field="max_components",
                value=max_components,
            )

        scored = []
        for component in coerce_records(ResultComponent, components, "result component"):
            if not component.is_active or str(component.test_id) != str(test_id):
                continue
            raw = coerce_number(score_data.get(component.component_code))
            if raw is None:
                raw = component.score_value
            scored.append((component, raw, raw * component.component_weight))

        scored.sort(key=lambda item: (-item[2], item[0].order_priority, item[0].component_code))
        selected = scored[:max_components]

        scored_components = []
        for index, (component, raw, weighted) in enumerate(selected):
            scored_components.append(
                ScoredComponent(
                    component=component,
                    raw_score=raw,
                    weighted_score=weighted,
                    position_weight=max(0.0, 1.0 - self.position_decay * index),
                )
            )

        weighted_total = round(
            sum(c.contribution for c in scored_components),
            ScoringConstants.WEIGHTED_TOTAL_PRECISION,
        )
        result = CombinationResult(
            test_id=test_id,
            combination=[c.component for c in scored_components],
            scored_components=scored_components,
            result_code="".join(c.component.component_code for c in scored_components),
            weighted_total=weighted_total,
            max_components=max_components,
        )

        logger.info(
            f"Generated combination {result.result_code!r} for test {test_id}",
            extra={
                "test_id": str(test_id),
                "result_code": result.result_code,
                "weighted_total": weighted_total,
                "candidates": len(scored),
            },
        )

        return result
