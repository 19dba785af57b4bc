"""Scoring service for test attempts.

This service is the entry point the attempt-submission flow calls. It scores an
attempt's sections, builds the composite code and overall score, picks the
matching mode for the test, and looks the outcome up among the admin-defined
results. It also runs the component combination pipeline and parses stored
scoring configuration at the save/load boundary.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from psyscore.core.config import Settings, get_settings
from psyscore.models.answer import Response
from psyscore.models.base import EntityId
from psyscore.models.result import ResultComponent, ResultDefinition
from psyscore.models.scoring import ScoringConfiguration
from psyscore.models.section import Question, Section
from psyscore.schemas.scoring_schemas import (
    CombinationResult,
    CompositeScore,
    NoMatchOutcome,
    ScoringResult,
)
from psyscore.services.component_combiner import ComponentCombiner
from psyscore.services.composite_scorer import CompositeScorer
from psyscore.services.result_matcher import ResultMatcher
from psyscore.utils.constants import MatchMode, PatternType, ScoringType
from psyscore.utils.exceptions import PatternConfigError
from psyscore.utils.logger import PerformanceLogger, get_logger
from psyscore.utils.validators import ensure_valid_scoring_pattern

logger = get_logger(__name__)


class ScoringService:
    """Service for scoring test attempts and generating combination results."""

    def __init__(
        self,
        composite_scorer: Optional[CompositeScorer] = None,
        combiner: Optional[ComponentCombiner] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize scoring service.

        Args:
            composite_scorer: Composite scorer (defaults to CompositeScorer)
            combiner: Component combiner (defaults to ComponentCombiner)
            settings: Engine settings (defaults to get_settings())
        """
        self.settings = settings or get_settings()
        self.composite_scorer = composite_scorer or CompositeScorer()
        self.combiner = combiner or ComponentCombiner(
            default_max_components=self.settings.DEFAULT_MAX_COMPONENTS,
            position_decay=self.settings.COMPONENT_POSITION_DECAY,
        )

    def score_attempt(
        self,
        test_id: EntityId,
        responses: Sequence[Union[Response, Dict[str, Any]]],
        sections: Sequence[Union[Section, Dict[str, Any]]],
        questions: Sequence[Union[Question, Dict[str, Any]]],
        scoring_configurations: Optional[Sequence[Union[ScoringConfiguration, Dict[str, Any]]]] = None,
        result_definitions: Optional[Sequence[Union[ResultDefinition, Dict[str, Any]]]] = None,
    ) -> ScoringResult:
        """Score a test attempt and match it against the test's results.

        Args:
            test_id: Test being scored
            responses: The attempt's responses
            sections: Test sections with option tables
            questions: Test questions with flags
            scoring_configurations: Stored scoring configurations for the test
            result_definitions: Admin-defined results for the test

        Returns:
            ScoringResult: Composite code, overall score, section results and
                the matched result or a NoMatchOutcome

        Raises:
            ValidationError: If records do not fit their shapes
            DataIntegrityError: If responses contradict sections or questions
        """
        with PerformanceLogger("score_attempt", logger, extra={"test_id": str(test_id)}):
            composite = self.composite_scorer.score_test(
                test_id, responses, sections, questions, scoring_configurations
            )

            matcher = ResultMatcher(
                test_id,
                result_definitions or [],
                average_fallback=self.settings.RANGE_MATCH_AVERAGE_FALLBACK,
            )
            match_mode = self.select_match_mode(composite.dominant_scoring_type, matcher)

            section_matches = []
            if match_mode == MatchMode.RANGE:
                outcome = matcher.match_range(composite.overall_score, composite.average_score)
                if len(composite.section_results) > 1:
                    section_matches = matcher.match_sections(composite.section_results)
            else:
                outcome = matcher.match_code(composite.composite_code)

            matched = outcome if isinstance(outcome, ResultDefinition) else None
            no_match = outcome if isinstance(outcome, NoMatchOutcome) else None

            result = ScoringResult(
                test_id=test_id,
                scoring_type=composite.dominant_scoring_type,
                match_mode=match_mode,
                composite_code=composite.composite_code,
                overall_score=composite.overall_score,
                average_score=composite.average_score,
                answered_count=composite.answered_count,
                unmapped_answers=composite.unmapped_answers,
                section_results=composite.section_results,
                matched_result=matched,
                no_match=no_match,
                section_matches=section_matches,
                summary=self.build_summary(composite, matched, match_mode),
            )

        self._log_outcome(result, matcher)
        return result

    def generate_combination(
        self,
        test_id: EntityId,
        score_data: Mapping[str, Any],
        result_components: Sequence[Union[ResultComponent, Dict[str, Any]]],
        max_components: Optional[int] = None,
        result_definitions: Optional[Sequence[Union[ResultDefinition, Dict[str, Any]]]] = None,
    ) -> CombinationResult:
        """Generate a weighted component combination.

        Args:
            test_id: Test the components belong to
            score_data: Component code to score
            result_components: The test's result components
            max_components: How many components to keep
            result_definitions: When given, the combination code is also
                matched against these

        Returns:
            CombinationResult: Selected components, code, weighted total and,
                when definitions were given, the match outcome

        Raises:
            ValidationError: If max_components is below 1
        """
        with PerformanceLogger("generate_combination", logger, extra={"test_id": str(test_id)}):
            result = self.combiner.combine(test_id, score_data, result_components, max_components)

            if result_definitions is None:
                return result

            matcher = ResultMatcher(test_id, result_definitions)
            outcome = matcher.match_code(result.result_code)

        if isinstance(outcome, NoMatchOutcome):
            logger.warning(
                f"No result configured for combination {result.result_code!r} of test {test_id}",
                extra={"test_id": str(test_id), "result_code": result.result_code, "available": outcome.available},
            )
            return result.model_copy(update={"no_match": outcome})

        return result.model_copy(update={"matched_result": outcome})

    def prepare_configuration(self, row: Union[ScoringConfiguration, Dict[str, Any]]) -> ScoringConfiguration:
        """Parse and validate a stored scoring configuration row.

        This is the save/load boundary: everything past it sees typed,
        validated patterns only.

        Args:
            row: Stored configuration row (pattern may be a JSON string)

        Returns:
            ScoringConfiguration: Typed configuration

        Raises:
            RangeOverlapError: If range bands overlap or are inverted
            PatternConfigError: If the pattern is malformed
        """
        try:
            configuration = row if isinstance(row, ScoringConfiguration) else ScoringConfiguration.model_validate(row)
        except PydanticValidationError as e:
            raise PatternConfigError(
                "Invalid scoring configuration: "
                + "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()),
                section_id=row.get("section_id") if isinstance(row, dict) else None,
                cause=e,
            )

        ensure_valid_scoring_pattern(configuration.pattern)

        logger.info(
            f"Scoring configuration accepted for test {configuration.test_id}",
            extra={
                "test_id": str(configuration.test_id),
                "section_id": str(configuration.section_id),
                "pattern_type": configuration.pattern.type,
            },
        )
        return configuration

    def select_match_mode(self, scoring_type: str, matcher: ResultMatcher) -> MatchMode:
        """Choose code or range matching for a test.

        Range tests match by range and flag tests by code. Unconfigured tests
        match by range only when range results exist.
        """
        scoring_type = ScoringType(scoring_type)
        if scoring_type == ScoringType.RANGE_BASED:
            return MatchMode.RANGE
        if scoring_type == ScoringType.FLAG_BASED:
            return MatchMode.CODE
        return MatchMode.RANGE if matcher.has_range_definitions else MatchMode.CODE

    def build_summary(
        self,
        composite: CompositeScore,
        matched: Optional[ResultDefinition],
        match_mode: MatchMode,
    ) -> str:
        """Generate a human-readable result summary.

        Args:
            composite: Composite score for the attempt
            matched: Matched result, if any
            match_mode: Mode used for matching

        Returns:
            str: Result summary
        """
        selection: List[str] = []
        breakdown: Dict[str, float] = {}
        labels = []
        for section in composite.section_results:
            selection.extend(section.selection)
            if section.range_label:
                labels.append(section.range_label)
            for flag, score in section.flag_totals.items():
                breakdown[flag] = breakdown.get(flag, 0) + score

        if match_mode == MatchMode.CODE:
            primary = composite.composite_code
        elif matched is not None:
            primary = matched.title or matched.score_range
        else:
            primary = ", ".join(labels)

        summary = f"Primary Result: {primary or 'Not determined'}"

        highest_only = all(
            s.pattern_type == PatternType.HIGHEST_ONLY.value
            for s in composite.section_results
            if s.selection
        )
        if len(selection) == 1 and highest_only:
            summary += " (Highest scoring flag)"
        elif selection:
            summary += f"\nTop Flags: {', '.join(selection)}"

        if breakdown:
            summary += "\nScore Breakdown: " + ", ".join(f"{flag}: {score:g}" for flag, score in breakdown.items())
        else:
            summary += f"\nTotal Score: {composite.overall_score:g}"

        return summary

    def _log_outcome(self, result: ScoringResult, matcher: ResultMatcher) -> None:
        """Log the attempt outcome and any configuration gaps."""
        if result.unmapped_answers:
            logger.warning(
                f"{result.unmapped_answers} answers did not match any option and scored 0",
                extra={"test_id": str(result.test_id), "unmapped_answers": result.unmapped_answers},
            )

        if matcher.skipped_ranges:
            logger.warning(
                f"{matcher.skipped_ranges} result definitions have malformed score ranges",
                extra={"test_id": str(result.test_id), "skipped_ranges": matcher.skipped_ranges},
            )

        if result.no_match is not None:
            logger.warning(
                f"No result matched for test {result.test_id}: {result.no_match.reason}",
                extra={
                    "test_id": str(result.test_id),
                    "mode": result.match_mode,
                    "result_code": result.composite_code,
                    "score": result.overall_score,
                    "available": result.no_match.available,
                },
            )
            return

        logger.info(
            "Test attempt scored successfully",
            extra={
                "test_id": str(result.test_id),
                "composite_code": result.composite_code,
                "overall_score": result.overall_score,
                "result_code": result.matched_result.result_code,
            },
        )
