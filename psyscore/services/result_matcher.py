"""Result matching against admin-defined result records.

A test's results are looked up either by exact code or by score range. Range
descriptors are parsed once, when the matcher is built, and kept sorted by
their lower bound.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from psyscore.core.config import get_settings
from psyscore.models.base import EntityId, coerce_records
from psyscore.models.result import ResultDefinition
from psyscore.schemas.scoring_schemas import MatchOutcome, NoMatchOutcome, SectionMatch, SectionResult
from psyscore.services.range_parser import ScoreRange, try_parse_range
from psyscore.utils.constants import MatchMode, ResultType
from psyscore.utils.logger import get_matching_logger

logger = get_matching_logger()


class ResultMatcher:
    """Looks up computed codes and scores among a test's result definitions."""

    def __init__(
        self,
        test_id: EntityId,
        result_definitions: Sequence[Union[ResultDefinition, Dict[str, Any]]],
        average_fallback: Optional[bool] = None,
    ):
        """Index a test's active result definitions.

        Args:
            test_id: Test the definitions belong to
            result_definitions: Typed definitions or stored rows
            average_fallback: Retry range matches with the average score
                (defaults to RANGE_MATCH_AVERAGE_FALLBACK)
        """
        self.test_id = test_id
        if average_fallback is None:
            average_fallback = get_settings().RANGE_MATCH_AVERAGE_FALLBACK
        self.average_fallback = average_fallback

        self.skipped_ranges = 0
        self._codes: Dict[str, ResultDefinition] = {}
        ranged: List[Tuple[ScoreRange, ResultDefinition]] = []

        for definition in coerce_records(ResultDefinition, result_definitions, "result definition"):
            if not definition.is_active or str(definition.test_id) != str(test_id):
                continue

            if definition.result_type == ResultType.RANGE_BASED:
                parsed = try_parse_range(definition.score_range)
                if parsed is None:
                    self.skipped_ranges += 1
                else:
                    ranged.append((parsed, definition))
            elif definition.result_code:
                if definition.result_code in self._codes:
                    logger.warning(
                        f"Duplicate result code {definition.result_code!r} for test {test_id}; keeping the first",
                        extra={"test_id": str(test_id), "result_code": definition.result_code},
                    )
                    continue
                self._codes[definition.result_code] = definition

        self._ranges = sorted(ranged, key=lambda item: item[0].sort_key)

    @property
    def has_range_definitions(self) -> bool:
        """Whether any usable range-based definition exists."""
        return bool(self._ranges)

    @property
    def available_codes(self) -> List[str]:
        """Result codes that can be matched."""
        return list(self._codes)

    def available_ranges(self, section_id: Optional[EntityId] = None) -> List[str]:
        """Range descriptors considered for the test or for one section."""
        return [parsed.descriptor for parsed, _ in self._range_candidates(section_id)]

    def match_code(self, code: str) -> MatchOutcome:
        """Find the definition whose result code equals the composite code.

        Args:
            code: Composite code

        Returns:
            The matched ResultDefinition, or a NoMatchOutcome
        """
        if not code:
            return self._no_match(MatchMode.CODE, "No result code was computed", code=code)

        definition = self._codes.get(code)
        if definition is not None:
            return definition

        return self._no_match(MatchMode.CODE, f"No result is configured for code {code!r}", code=code)

    def match_range(
        self,
        score: float,
        average_score: Optional[float] = None,
        section_id: Optional[EntityId] = None,
    ) -> MatchOutcome:
        """Find the first range (by lower bound) that accepts the score.

        When the total misses every range and an average is given, the average
        per answered question is tried next.

        Args:
            score: Total score
            average_score: Average score per answered question
            section_id: Match against definitions for this section as well as
                test-wide ones; None means test-wide only

        Returns:
            The matched ResultDefinition, or a NoMatchOutcome
        """
        candidates = self._range_candidates(section_id)

        definition = _first_accepting(candidates, score)
        if definition is None and self.average_fallback and average_score is not None:
            definition = _first_accepting(candidates, average_score)
            if definition is not None:
                logger.debug(
                    f"Score {score} matched range {definition.score_range!r} by its average {average_score}",
                    extra={"test_id": str(self.test_id), "score": score, "average_score": average_score},
                )

        if definition is not None:
            return definition

        return self._no_match(
            MatchMode.RANGE,
            f"No score range contains {score:g}",
            score=score,
            available=[parsed.descriptor for parsed, _ in candidates],
        )

    def match_sections(self, section_results: Sequence[SectionResult]) -> List[SectionMatch]:
        """Range-match each section total separately."""
        matches = []
        for result in section_results:
            average = result.section_total / result.answered_count if result.answered_count else 0
            matches.append(
                SectionMatch(
                    section_id=result.section_id,
                    score=result.section_total,
                    average_score=average,
                    outcome=self.match_range(result.section_total, average, section_id=result.section_id),
                )
            )
        return matches

    def _range_candidates(self, section_id: Optional[EntityId]) -> List[Tuple[ScoreRange, ResultDefinition]]:
        """Parsed ranges scoped to the test, or to a section and the test."""
        if section_id is None:
            return [item for item in self._ranges if item[1].section_id is None]
        return [
            item for item in self._ranges
            if item[1].section_id is None or str(item[1].section_id) == str(section_id)
        ]

    def _no_match(
        self,
        mode: MatchMode,
        reason: str,
        code: Optional[str] = None,
        score: Optional[float] = None,
        available: Optional[List[str]] = None,
    ) -> NoMatchOutcome:
        if available is None:
            available = self.available_codes if mode == MatchMode.CODE else self.available_ranges()
        return NoMatchOutcome(
            test_id=self.test_id,
            mode=mode,
            result_code=code,
            score=score,
            reason=reason,
            available=available,
        )


def _first_accepting(candidates: Sequence[Tuple[ScoreRange, ResultDefinition]], score: float) -> Optional[ResultDefinition]:
    for parsed, definition in candidates:
        if parsed.contains(score):
            return definition
    return None
