"""Test-level composite scoring.

Scores every section of a test in section order, concatenates the section code
fragments into one composite code and sums section totals into an overall
score.
"""

from collections import Counter, defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from psyscore.models.answer import Response
from psyscore.models.base import EntityId, coerce_records
from psyscore.models.scoring import ScoringConfiguration
from psyscore.models.section import Question, Section
from psyscore.schemas.scoring_schemas import CompositeScore
from psyscore.services.section_scorer import SectionScorer
from psyscore.utils.constants import ErrorCodes, ScoringType
from psyscore.utils.exceptions import DataIntegrityError, PatternConfigError
from psyscore.utils.logger import get_configuration_logger, get_scoring_logger

logger = get_scoring_logger()
config_logger = get_configuration_logger()

# Key under which the test-level configuration is stored
TEST_LEVEL = None


class CompositeScorer:
    """Builds the composite code and overall score for a test attempt."""

    def __init__(self, section_scorer: Optional[SectionScorer] = None):
        """Initialize composite scorer.

        Args:
            section_scorer: Section scorer (defaults to SectionScorer)
        """
        self.section_scorer = section_scorer or SectionScorer()

    def score_test(
        self,
        test_id: EntityId,
        responses: Sequence[Union[Response, Dict[str, Any]]],
        sections: Sequence[Union[Section, Dict[str, Any]]],
        questions: Sequence[Union[Question, Dict[str, Any]]],
        scoring_configurations: Optional[Sequence[Union[ScoringConfiguration, Dict[str, Any]]]] = None,
    ) -> CompositeScore:
        """Score every section of a test.

        Args:
            test_id: Test being scored
            responses: The attempt's responses
            sections: Test sections with option tables
            questions: Test questions with flags
            scoring_configurations: Stored configurations for the test

        Returns:
            CompositeScore: Composite code, overall score and section results

        Raises:
            ValidationError: If records do not fit their shapes
            DataIntegrityError: If responses contradict sections or questions
        """
        responses = coerce_records(Response, responses, "response")
        sections = coerce_records(Section, sections, "section")
        questions = coerce_records(Question, questions, "question")

        self.check_integrity(responses, sections, questions)

        configurations, errors = self.load_configurations(test_id, scoring_configurations or [])

        responses_by_section: Dict[EntityId, List[Response]] = defaultdict(list)
        for response in responses:
            responses_by_section[response.section_id].append(response)

        questions_by_section: Dict[EntityId, List[Question]] = defaultdict(list)
        for question in questions:
            questions_by_section[question.section_id].append(question)

        section_results = []
        applied_types = []

        for section in sorted(sections, key=lambda s: s.order):
            configuration, error = self.resolve_configuration(section.id, configurations, errors)
            if configuration is not None:
                applied_types.append(configuration.scoring_type)

            section_results.append(
                self.section_scorer.score_section(
                    section,
                    responses_by_section.get(section.id, []),
                    questions_by_section.get(section.id, []),
                    configuration=configuration,
                    configuration_error=error,
                )
            )

        composite = CompositeScore(
            composite_code="".join(r.fragment_code for r in section_results),
            overall_score=sum(r.section_total for r in section_results),
            answered_count=sum(r.answered_count for r in section_results),
            unmapped_answers=sum(r.unmapped_answers for r in section_results),
            dominant_scoring_type=self.dominant_scoring_type(applied_types),
            section_results=section_results,
        )

        logger.debug(
            f"Composite score built for test {test_id}",
            extra={
                "test_id": str(test_id),
                "composite_code": composite.composite_code,
                "overall_score": composite.overall_score,
                "sections": len(section_results),
            },
        )

        return composite

    def check_integrity(
        self,
        responses: Sequence[Response],
        sections: Sequence[Section],
        questions: Sequence[Question],
    ) -> None:
        """Fail fast on caller data that contradicts itself.

        Raises:
            DataIntegrityError: On unknown questions or sections, section
                mismatches and duplicate responses
        """
        section_ids = {s.id for s in sections}
        question_map = {q.id: q for q in questions}
        seen = set()

        for response in responses:
            if response.section_id not in section_ids:
                raise DataIntegrityError(
                    f"Response references unknown section {response.section_id!r}",
                    record_type="response",
                    record_id=response.question_id,
                    error_code=ErrorCodes.UNKNOWN_SECTION,
                )

            question = question_map.get(response.question_id)
            if question is None:
                raise DataIntegrityError(
                    f"Response references unknown question {response.question_id!r}",
                    record_type="response",
                    record_id=response.question_id,
                    error_code=ErrorCodes.UNKNOWN_QUESTION,
                )

            if question.section_id != response.section_id:
                raise DataIntegrityError(
                    f"Response places question {question.id!r} in section {response.section_id!r}, "
                    f"but the question belongs to section {question.section_id!r}",
                    record_type="response",
                    record_id=response.question_id,
                    error_code=ErrorCodes.SECTION_MISMATCH,
                )

            if response.question_id in seen:
                raise DataIntegrityError(
                    f"Question {response.question_id!r} was answered more than once",
                    record_type="response",
                    record_id=response.question_id,
                    error_code=ErrorCodes.DUPLICATE_RESPONSE,
                )
            seen.add(response.question_id)

    def load_configurations(
        self,
        test_id: EntityId,
        rows: Sequence[Union[ScoringConfiguration, Dict[str, Any]]],
    ) -> Tuple[Dict[Optional[str], ScoringConfiguration], Dict[Optional[str], str]]:
        """Index active configurations by section.

        Rows whose pattern cannot be parsed are recorded as errors for their
        section instead of failing the attempt. When a section has several
        active configurations the first one wins.

        Args:
            test_id: Test being scored
            rows: Typed configurations or stored rows

        Returns:
            Tuple of (configurations by section id, errors by section id), keyed
            by the section id as a string; the test-level entry is keyed by None
        """
        configurations: Dict[Optional[str], ScoringConfiguration] = {}
        errors: Dict[Optional[str], str] = {}

        for row in rows:
            try:
                configuration = row if isinstance(row, ScoringConfiguration) else ScoringConfiguration.model_validate(row)
            except (PatternConfigError, PydanticValidationError) as e:
                if not _raw_row_applies(row, test_id):
                    continue
                section_id = _raw_section_id(row)
                if isinstance(e, PatternConfigError):
                    message = e.message
                    config_logger.warning(
                        f"Unusable scoring configuration for section {section_id}",
                        extra={"test_id": str(test_id), "section_id": str(section_id), "error": message},
                    )
                else:
                    message = "; ".join(err["msg"] for err in e.errors())
                    config_logger.warning(
                        f"Malformed scoring configuration for section {section_id}",
                        extra={"test_id": str(test_id), "section_id": str(section_id), "error": str(e)},
                    )
                errors.setdefault(_section_key(section_id), message)
                continue

            if not configuration.is_active:
                continue

            if str(configuration.test_id) != str(test_id):
                config_logger.warning(
                    f"Ignoring scoring configuration for test {configuration.test_id}",
                    extra={"test_id": str(test_id), "configuration_test_id": str(configuration.test_id)},
                )
                continue

            key = _section_key(configuration.section_id)
            if key in configurations:
                config_logger.warning(
                    f"Multiple active scoring configurations for section {key}; using the first",
                    extra={"test_id": str(test_id), "section_id": str(key)},
                )
                continue

            configurations[key] = configuration

        return configurations, errors

    def resolve_configuration(
        self,
        section_id: EntityId,
        configurations: Dict[Optional[str], ScoringConfiguration],
        errors: Dict[Optional[str], str],
    ) -> Tuple[Optional[ScoringConfiguration], Optional[str]]:
        """Pick the configuration for a section.

        A section configuration beats the test-level one. When neither applies,
        the error recorded for the section (or the test) is returned so the
        fallback can be explained.
        """
        key = _section_key(section_id)
        if key in configurations:
            return configurations[key], None
        if key in errors:
            return None, errors[key]
        if TEST_LEVEL in configurations:
            return configurations[TEST_LEVEL], None
        return None, errors.get(TEST_LEVEL)

    def dominant_scoring_type(self, applied: Sequence[str]) -> ScoringType:
        """Majority scoring type among applied configurations.

        Ties go to flag_based. With nothing applied the test is simple.
        """
        if not applied:
            return ScoringType.SIMPLE

        counts = Counter(ScoringType(t) for t in applied)
        if counts[ScoringType.RANGE_BASED] > counts[ScoringType.FLAG_BASED]:
            return ScoringType.RANGE_BASED
        return ScoringType.FLAG_BASED


def _raw_section_id(row: Any) -> Optional[EntityId]:
    """Section id of a stored row that failed to parse."""
    if isinstance(row, dict):
        return row.get("section_id", row.get("sectionId"))
    return getattr(row, "section_id", None)


def _section_key(section_id: Optional[EntityId]) -> Optional[str]:
    """Index key for a section id; "1" and 1 name the same section."""
    return None if section_id is None else str(section_id)


def _raw_row_applies(row: Any, test_id: EntityId) -> bool:
    """Whether a row that failed to parse is active and belongs to the test."""
    if not isinstance(row, dict):
        return True
    is_active = row.get("is_active", row.get("isActive", True))
    if str(is_active).strip().lower() in {"false", "0", "no", "off", "f", "n"}:
        return False
    row_test_id = row.get("test_id", row.get("testId"))
    return row_test_id is None or str(row_test_id) == str(test_id)
