"""Unit tests for ScoringService.

Tests the attempt scoring pipeline end to end: section scoring, composite code
construction, match mode selection, result matching and the result summary.
Also covers the combination pipeline and the configuration save boundary.
"""

import logging
from unittest.mock import Mock

import pytest

from psyscore.core.config import get_settings
from psyscore.models import ResultDefinition, ScoringConfiguration, TopN
from psyscore.schemas import CombinationResult, NoMatchOutcome
from psyscore.services.component_combiner import ComponentCombiner
from psyscore.services.scoring_service import ScoringService
from psyscore.utils.constants import ErrorCodes, MatchMode, ScoringType
from psyscore.utils.exceptions import PatternConfigError, RangeOverlapError


@pytest.fixture
def scoring_service():
    """Create ScoringService instance."""
    return ScoringService()


class TestScoreAttempt:
    """Test suite for the flag/range scoring pipeline."""

    def test_two_section_end_to_end(self, scoring_service, sample_test_id, two_section_attempt, definition_factory):
        """Test highest-only E and top-1 S build "ES" and match its result."""
        data = two_section_attempt
        definitions = [
            definition_factory("EN", title="Outgoing Intuitive"),
            definition_factory("ES", title="Outgoing Sensor", pdf_file="es.pdf"),
        ]

        result = scoring_service.score_attempt(
            sample_test_id,
            data["responses"],
            data["sections"],
            data["questions"],
            data["configurations"],
            definitions,
        )

        assert result.composite_code == "ES"
        assert result.overall_score == 19
        assert result.match_mode == MatchMode.CODE
        assert result.scoring_type == ScoringType.FLAG_BASED
        assert result.is_matched
        assert result.matched_result.result_code == "ES"
        assert result.matched_result.pdf_file == "es.pdf"
        assert result.outcome is result.matched_result
        assert result.no_match is None
        assert [r.fragment_code for r in result.section_results] == ["E", "S"]

    def test_unmatched_code_is_reported_not_raised(
        self, scoring_service, sample_test_id, two_section_attempt, definition_factory, caplog
    ):
        """Test a missing result yields a NoMatchOutcome and a warning."""
        data = two_section_attempt

        with caplog.at_level(logging.WARNING):
            result = scoring_service.score_attempt(
                sample_test_id,
                data["responses"],
                data["sections"],
                data["questions"],
                data["configurations"],
                [definition_factory("IN")],
            )

        assert not result.is_matched
        assert result.matched_result is None
        assert isinstance(result.outcome, NoMatchOutcome)
        assert result.no_match.result_code == "ES"
        assert result.no_match.available == ["IN"]
        assert "No result matched" in caplog.text

    def test_no_definitions_never_defaults(self, scoring_service, sample_test_id, two_section_attempt):
        """Test no result is invented when nothing is configured."""
        data = two_section_attempt

        result = scoring_service.score_attempt(
            sample_test_id, data["responses"], data["sections"], data["questions"], data["configurations"], []
        )

        assert result.matched_result is None
        assert result.no_match.available == []

    def test_range_based_test(self, scoring_service, sample_test_id, section_factory, flagged_factory,
                              configuration_factory, definition_factory):
        """Test range-based tests match the overall score by range."""
        section = section_factory("A", order=1)
        questions, responses = flagged_factory("A", [("E", 3), ("I", 3), ("E", 3), ("I", 1)])
        configuration = configuration_factory(
            {"type": "range_based", "ranges": [{"min": 0, "max": 10, "label": "Low"},
                                               {"min": 11, "max": 20, "label": "High"}]},
            section_id="A",
            scoring_type="range_based",
        )
        definitions = [
            definition_factory(score_range="0-10", title="Calm"),
            definition_factory(score_range="11-20", title="Anxious"),
        ]

        result = scoring_service.score_attempt(
            sample_test_id, responses, [section], questions, [configuration], definitions
        )

        assert result.match_mode == MatchMode.RANGE
        assert result.overall_score == 10
        assert result.composite_code == ""
        assert result.matched_result.title == "Calm"
        assert result.section_results[0].range_label == "Low"
        assert result.section_matches == []

    def test_multi_section_range_test_reports_section_matches(
        self, scoring_service, sample_test_id, section_factory, flagged_factory,
        configuration_factory, definition_factory
    ):
        """Test each section of a range test is matched as well."""
        sections = [section_factory("A", order=1), section_factory("B", order=2)]
        questions_a, responses_a = flagged_factory("A", [("E", 3), ("E", 3)], start_id=1)
        questions_b, responses_b = flagged_factory("B", [("S", 1), ("S", 0)], start_id=10)
        pattern = {"type": "range_based", "ranges": [{"min": 0, "max": 100, "label": "Any"}]}
        definitions = [
            definition_factory(score_range="0-3", title="Low"),
            definition_factory(score_range="4-100", title="High"),
        ]

        result = scoring_service.score_attempt(
            sample_test_id,
            responses_a + responses_b,
            sections,
            questions_a + questions_b,
            [configuration_factory(pattern, section_id=None, scoring_type="range_based")],
            definitions,
        )

        assert result.matched_result.title == "High"
        assert [m.outcome.title for m in result.section_matches] == ["High", "Low"]

    def test_simple_test_uses_range_when_ranges_exist(
        self, scoring_service, sample_test_id, two_section_attempt, definition_factory
    ):
        """Test unconfigured tests match by range if range results exist."""
        data = two_section_attempt

        result = scoring_service.score_attempt(
            sample_test_id,
            data["responses"],
            data["sections"],
            data["questions"],
            [],
            [definition_factory(score_range="15-25", title="Moderate")],
        )

        assert result.scoring_type == ScoringType.SIMPLE
        assert result.match_mode == MatchMode.RANGE
        assert result.overall_score == 19
        assert result.matched_result.title == "Moderate"

    def test_simple_test_uses_code_without_ranges(self, scoring_service, sample_test_id, two_section_attempt,
                                                  definition_factory):
        """Test unconfigured tests without range results match by code."""
        data = two_section_attempt

        result = scoring_service.score_attempt(
            sample_test_id, data["responses"], data["sections"], data["questions"], [],
            [definition_factory("ES")],
        )

        assert result.match_mode == MatchMode.CODE
        assert isinstance(result.outcome, NoMatchOutcome)

    def test_average_fallback_for_range_match(self, scoring_service, sample_test_id, section_factory,
                                              flagged_factory, definition_factory):
        """Test the average per answer is matched when the total misses."""
        section = section_factory("A")
        questions, responses = flagged_factory("A", [(None, 3), (None, 3), (None, 2), (None, 2)])

        result = scoring_service.score_attempt(
            sample_test_id, responses, [section], questions, [],
            [definition_factory(score_range="0-3", title="Typical")],
        )

        assert result.overall_score == 10
        assert result.average_score == 2.5
        assert result.matched_result.title == "Typical"

    def test_unmapped_answers_logged(self, scoring_service, sample_test_id, section_factory, flagged_factory,
                                     configuration_factory, caplog):
        """Test unmapped answers are counted and logged at warning level."""
        section = section_factory("A")
        questions, responses = flagged_factory("A", [("E", 3), ("E", "often"), ("I", 99)])

        with caplog.at_level(logging.WARNING):
            result = scoring_service.score_attempt(
                sample_test_id, responses, [section], questions,
                [configuration_factory({"type": "highest_only"}, section_id="A")], [],
            )

        assert result.unmapped_answers == 2
        assert result.composite_code == "E"
        assert "did not match any option" in caplog.text


class TestResultSummary:
    """Test the human-readable summary."""

    def test_highest_only_summary(self, scoring_service, sample_test_id, section_factory, flagged_factory,
                                  configuration_factory):
        """Test a single highest flag is described as such."""
        section = section_factory("A")
        questions, responses = flagged_factory("A", [("E", 3), ("I", 1)])

        result = scoring_service.score_attempt(
            sample_test_id, responses, [section], questions,
            [configuration_factory({"type": "highest_only"}, section_id="A")], [],
        )

        assert result.summary == "Primary Result: E (Highest scoring flag)\nScore Breakdown: E: 3, I: 1"

    def test_multi_flag_summary(self, scoring_service, sample_test_id, two_section_attempt):
        """Test selected flags and the score breakdown are listed."""
        data = two_section_attempt

        result = scoring_service.score_attempt(
            sample_test_id, data["responses"], data["sections"], data["questions"], data["configurations"], []
        )

        assert result.summary == (
            "Primary Result: ES\n"
            "Top Flags: E, S\n"
            "Score Breakdown: E: 8, I: 3, S: 6, N: 2"
        )

    def test_undetermined_summary(self, scoring_service, sample_test_id, section_factory):
        """Test an attempt with nothing to report."""
        result = scoring_service.score_attempt(sample_test_id, [], [section_factory("A")], [], [], [])

        assert result.summary == "Primary Result: Not determined\nTotal Score: 0"


class TestGenerateCombination:
    """Test suite for the combination pipeline."""

    def test_combination_without_definitions(self, scoring_service, sample_test_id, component_factory):
        """Test the combination result is returned as built."""
        components = [component_factory("A"), component_factory("B")]

        result = scoring_service.generate_combination(sample_test_id, {"A": 2, "B": 5}, components)

        assert isinstance(result, CombinationResult)
        assert result.result_code == "BA"
        assert result.matched_result is None
        assert result.no_match is None

    def test_combination_matched_against_definitions(self, scoring_service, sample_test_id, component_factory,
                                                    definition_factory):
        """Test the combination code is looked up among definitions."""
        components = [component_factory("A"), component_factory("B")]

        result = scoring_service.generate_combination(
            sample_test_id, {"A": 2, "B": 5}, components, result_definitions=[definition_factory("BA")]
        )

        assert result.matched_result.result_code == "BA"

    def test_combination_without_match(self, scoring_service, sample_test_id, component_factory, definition_factory):
        """Test a combination code with no definition yields NoMatchOutcome."""
        result = scoring_service.generate_combination(
            sample_test_id, {"A": 1}, [component_factory("A")], result_definitions=[definition_factory("B")]
        )

        assert result.no_match.result_code == "A"
        assert result.no_match.available == ["B"]

    def test_default_max_components_from_settings(self, scoring_service, sample_test_id, component_factory):
        """Test the configured default applies."""
        components = [component_factory(code) for code in "ABCDEF"]
        scores = {code: 10 - i for i, code in enumerate("ABCDEF")}

        result = scoring_service.generate_combination(sample_test_id, scores, components)

        assert result.max_components == get_settings().DEFAULT_MAX_COMPONENTS
        assert result.result_code == "ABCD"

    def test_uses_injected_combiner(self, sample_test_id):
        """Test the service delegates to its combiner."""
        combiner = Mock(spec=ComponentCombiner)
        combiner.combine.return_value = CombinationResult(test_id=sample_test_id, max_components=1)
        service = ScoringService(combiner=combiner)

        service.generate_combination(sample_test_id, {"A": 1}, [], max_components=1)

        combiner.combine.assert_called_once_with(sample_test_id, {"A": 1}, [], 1)


class TestPrepareConfiguration:
    """Test the configuration save/load boundary."""

    def test_parses_stored_row(self, scoring_service, sample_test_id):
        """Test a stored row with a JSON pattern becomes a typed configuration."""
        row = {
            "test_id": sample_test_id,
            "section_id": 3,
            "scoring_type": "flag_based",
            "scoring_pattern": '{"type": "top_3", "order": ["R", "I"]}',
        }

        configuration = scoring_service.prepare_configuration(row)

        assert isinstance(configuration, ScoringConfiguration)
        assert isinstance(configuration.pattern, TopN)
        assert configuration.pattern.n == 3
        assert configuration.pattern.order == ["R", "I"]

    def test_overlapping_ranges_rejected(self, scoring_service, sample_test_id):
        """Test overlapping bands raise RangeOverlapError."""
        row = {
            "test_id": sample_test_id,
            "scoring_type": "range_based",
            "pattern": {"type": "range_based", "ranges": [{"min": 0, "max": 10, "label": "Low"},
                                                          {"min": 10, "max": 20, "label": "High"}]},
        }

        with pytest.raises(RangeOverlapError) as exc_info:
            scoring_service.prepare_configuration(row)

        assert exc_info.value.error_code == ErrorCodes.RANGE_OVERLAP

    def test_unknown_pattern_rejected(self, scoring_service, sample_test_id):
        """Test unknown pattern types raise PatternConfigError."""
        row = {"test_id": sample_test_id, "pattern": {"type": "astrology"}}

        with pytest.raises(PatternConfigError) as exc_info:
            scoring_service.prepare_configuration(row)

        assert exc_info.value.error_code == ErrorCodes.PATTERN_UNKNOWN_TYPE

    def test_invalid_scoring_type_rejected(self, scoring_service, sample_test_id):
        """Test shape errors outside the pattern surface as PatternConfigError."""
        row = {"test_id": sample_test_id, "scoring_type": "simple", "pattern": {"type": "highest_only"}}

        with pytest.raises(PatternConfigError):
            scoring_service.prepare_configuration(row)


class TestMatchModeSelection:
    """Test match mode selection."""

    def test_modes(self, scoring_service):
        """Test each scoring type maps to its mode."""
        with_ranges = Mock(has_range_definitions=True)
        without_ranges = Mock(has_range_definitions=False)

        assert scoring_service.select_match_mode("range_based", without_ranges) == MatchMode.RANGE
        assert scoring_service.select_match_mode("flag_based", with_ranges) == MatchMode.CODE
        assert scoring_service.select_match_mode("simple", with_ranges) == MatchMode.RANGE
        assert scoring_service.select_match_mode("simple", without_ranges) == MatchMode.CODE

    def test_matched_definition_is_caller_record(self, scoring_service, sample_test_id, two_section_attempt):
        """Test the matched definition is the record the caller supplied."""
        data = two_section_attempt
        definition = ResultDefinition(test_id=sample_test_id, result_code="ES", title="Outgoing Sensor")

        result = scoring_service.score_attempt(
            sample_test_id, data["responses"], data["sections"], data["questions"], data["configurations"],
            [definition],
        )

        assert result.matched_result == definition
