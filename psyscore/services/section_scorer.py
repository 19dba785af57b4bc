"""Section scoring.

Runs flag aggregation and pattern resolution for one section. A section with no
usable scoring configuration falls back to a plain sum of its answers.
"""

from typing import Iterable, Optional, Sequence

from psyscore.models.answer import Response
from psyscore.models.scoring import ScoringConfiguration
from psyscore.models.section import Question, Section
from psyscore.schemas.scoring_schemas import SectionResult
from psyscore.services.flag_aggregator import FlagAggregator
from psyscore.services.pattern_resolver import PatternResolver
from psyscore.utils.constants import ScoringType
from psyscore.utils.exceptions import PatternConfigError
from psyscore.utils.logger import get_scoring_logger

logger = get_scoring_logger()


class SectionScorer:
    """Scores a single section under its scoring configuration."""

    def __init__(
        self,
        aggregator: Optional[FlagAggregator] = None,
        resolver: Optional[PatternResolver] = None,
    ):
        """Initialize section scorer.

        Args:
            aggregator: Flag aggregator (defaults to FlagAggregator)
            resolver: Pattern resolver (defaults to PatternResolver)
        """
        self.aggregator = aggregator or FlagAggregator()
        self.resolver = resolver or PatternResolver()

    def score_section(
        self,
        section: Section,
        responses: Iterable[Response],
        questions: Sequence[Question],
        configuration: Optional[ScoringConfiguration] = None,
        configuration_error: Optional[str] = None,
    ) -> SectionResult:
        """Score one section.

        Args:
            section: Section with its option table
            responses: Responses for the section
            questions: Questions of the section
            configuration: Applicable scoring configuration, if any
            configuration_error: Why a stored configuration could not be used

        Returns:
            SectionResult: Selection, fragment code and section total
        """
        flag_totals = self.aggregator.aggregate(section, responses, questions)

        base = {
            "section_id": section.id,
            "section_order": section.order,
            "section_name": section.name,
            "flag_totals": flag_totals.totals,
            "answered_count": flag_totals.answered_count,
            "unmapped_answers": flag_totals.unmapped_count,
        }

        if configuration is None:
            return self._simple_sum(base, flag_totals.raw_total, configuration_error)

        try:
            resolution = self.resolver.resolve(flag_totals.totals, configuration.pattern)
        except PatternConfigError as e:
            logger.warning(
                f"Section {section.id} pattern could not be applied, using simple sum",
                extra={"section_id": str(section.id), "error": e.message},
            )
            return self._simple_sum(base, flag_totals.raw_total, e.message)

        return SectionResult(
            **base,
            scoring_type=configuration.scoring_type,
            pattern_type=resolution.pattern_type,
            weighted_totals=resolution.weighted_totals,
            selection=list(resolution.selection),
            range_label=resolution.range_label,
            fragment_code=resolution.code,
            section_total=flag_totals.flag_sum,
        )

    def _simple_sum(self, base: dict, raw_total: float, configuration_error: Optional[str]) -> SectionResult:
        """Backward-compatible result for sections without a pattern."""
        logger.debug(
            f"Section {base['section_id']} scored as a simple sum",
            extra={"section_id": str(base["section_id"]), "total": raw_total},
        )
        return SectionResult(
            **base,
            scoring_type=ScoringType.SIMPLE,
            section_total=raw_total,
            used_fallback=True,
            configuration_error=configuration_error,
        )
