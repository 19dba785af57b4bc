"""Flag aggregation for a single section.

Converts a section's responses into per-flag totals by looking each chosen
value up in the section's option table.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence

from psyscore.models.answer import ChosenValue, Response
from psyscore.models.section import OptionEntry, Question, Section, coerce_number
from psyscore.utils.constants import ErrorCodes, ScoringConstants
from psyscore.utils.exceptions import DataIntegrityError
from psyscore.utils.logger import get_scoring_logger

logger = get_scoring_logger()


@dataclass(frozen=True)
class FlagTotals:
    """Per-flag totals for one section plus diagnostics."""

    totals: Dict[str, float] = field(default_factory=dict)
    raw_total: float = 0
    answered_count: int = 0
    unmapped_count: int = 0

    @property
    def flag_sum(self) -> float:
        """Sum of all flag totals."""
        return sum(self.totals.values())


def values_equal(chosen: Any, option_value: Any) -> bool:
    """Compare an answer with an option value, treating "3" and 3 as equal."""
    chosen_number = coerce_number(chosen)
    option_number = coerce_number(option_value)
    if chosen_number is not None and option_number is not None:
        return chosen_number == option_number
    return str(chosen).strip() == str(option_value).strip()


def resolve_option_value(chosen: ChosenValue, option_table: Sequence[OptionEntry]) -> Optional[float]:
    """Look up the points an answer is worth.

    Args:
        chosen: The submitted value
        option_table: Section options; the first matching entry wins

    Returns:
        Points for the answer, or None when it cannot be mapped
    """
    if not option_table:
        return coerce_number(chosen)

    for entry in option_table:
        if values_equal(chosen, entry.value):
            return entry.points

    return None


class FlagAggregator:
    """Sums option points per question flag within one section."""

    def aggregate(
        self,
        section: Section,
        responses: Iterable[Response],
        questions: Sequence[Question],
    ) -> FlagTotals:
        """Aggregate a section's responses into flag totals.

        Totals are keyed in the order flags first appear in the question list,
        so the result does not depend on submission order. Answers that do not
        match any option contribute 0 and are counted as unmapped.

        Args:
            section: Section being scored, with its option table
            responses: Responses belonging to the section
            questions: Questions of the section

        Returns:
            FlagTotals: Totals and diagnostics

        Raises:
            DataIntegrityError: If a response names a question outside the
                section or disagrees with its question's section
        """
        question_map = {q.id: q for q in questions}
        sums: Dict[str, float] = defaultdict(float)
        raw_total = 0
        answered = 0
        unmapped = 0

        for response in responses:
            question = question_map.get(response.question_id)
            if question is None:
                raise DataIntegrityError(
                    f"Response references unknown question {response.question_id!r}",
                    record_type="response",
                    record_id=response.question_id,
                    error_code=ErrorCodes.UNKNOWN_QUESTION,
                )
            if question.section_id != section.id or response.section_id != section.id:
                raise DataIntegrityError(
                    f"Response for question {question.id!r} does not belong to section {section.id!r}",
                    record_type="response",
                    record_id=response.question_id,
                    error_code=ErrorCodes.SECTION_MISMATCH,
                )

            answered += 1
            value = resolve_option_value(response.chosen_value, section.option_table)
            if value is None:
                unmapped += 1
                value = ScoringConstants.UNMAPPED_ANSWER_VALUE

            raw_total += value
            if question.flag:
                sums[question.flag] += value

        totals = {}
        for question in questions:
            if question.flag in sums and question.flag not in totals:
                totals[question.flag] = _tidy(sums[question.flag])

        if unmapped:
            logger.debug(
                f"Section {section.id} has {unmapped} unmapped answers",
                extra={"section_id": str(section.id), "unmapped": unmapped},
            )

        return FlagTotals(
            totals=totals,
            raw_total=_tidy(raw_total),
            answered_count=answered,
            unmapped_count=unmapped,
        )


def _tidy(value: float) -> float:
    """Return integral sums as ints so codes and logs read naturally."""
    return int(value) if float(value).is_integer() else value


__all__ = ["FlagAggregator", "FlagTotals", "resolve_option_value", "values_equal"]
