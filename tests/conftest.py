"""Shared fixtures and record factories for the psyscore test suite."""

import os

os.environ["APP_ENV"] = "test"

import pytest

from psyscore.core.config import configure_logging
from psyscore.models import (
    OptionEntry,
    Question,
    Response,
    ResultComponent,
    ResultDefinition,
    ScoringConfiguration,
    Section,
)

# Engine loggers at the configured level; records propagate to pytest capture
configure_logging()

TEST_ID = 7

LIKERT_OPTIONS = [
    {"text": "Never", "value": 0},
    {"text": "Sometimes", "value": 1},
    {"text": "Often", "value": 2},
    {"text": "Always", "value": 3},
]


def make_section(section_id, order=0, options=None, name=None):
    """Build a section with an option table."""
    return Section(
        id=section_id,
        order=order,
        name=name,
        option_table=[OptionEntry(**o) for o in (LIKERT_OPTIONS if options is None else options)],
    )


def make_flagged(section_id, flag_answers, start_id=1):
    """Build questions and responses from (flag, answer) pairs.

    Returns:
        Tuple of (questions, responses)
    """
    questions = []
    responses = []
    for offset, (flag, answer) in enumerate(flag_answers):
        question_id = start_id + offset
        questions.append(Question(id=question_id, section_id=section_id, flag=flag))
        if answer is not None:
            responses.append(Response(question_id=question_id, section_id=section_id, chosen_value=answer))
    return questions, responses


def make_configuration(pattern, section_id=None, scoring_type="flag_based", test_id=TEST_ID, **kwargs):
    """Build a scoring configuration from a pattern dict."""
    return ScoringConfiguration(
        test_id=test_id,
        section_id=section_id,
        scoring_type=scoring_type,
        pattern=pattern,
        **kwargs,
    )


def make_definition(result_code=None, score_range=None, title=None, test_id=TEST_ID, **kwargs):
    """Build a result definition."""
    return ResultDefinition(
        test_id=test_id,
        result_code=result_code,
        score_range=score_range,
        title=title or result_code or score_range or "",
        **kwargs,
    )


def make_component(code, score=0, priority=1, weight=1.0, test_id=TEST_ID, **kwargs):
    """Build a result component."""
    return ResultComponent(
        test_id=test_id,
        component_code=code,
        score_value=score,
        order_priority=priority,
        component_weight=weight,
        **kwargs,
    )


@pytest.fixture
def sample_test_id():
    """Identifier of the test under scoring."""
    return TEST_ID


@pytest.fixture
def two_section_attempt():
    """Two-section attempt: section A favours E over I, section B favours S over N.

    Section A: E scores 8 (3+3+2), I scores 3 (1+2+0).
    Section B: S scores 6 (3+3), N scores 2 (1+1).
    """
    section_a = make_section("A", order=1)
    section_b = make_section("B", order=2)

    questions_a, responses_a = make_flagged(
        "A", [("E", 3), ("I", 1), ("E", 3), ("I", 2), ("E", 2), ("I", 0)], start_id=1
    )
    questions_b, responses_b = make_flagged(
        "B", [("S", 3), ("N", 1), ("S", 3), ("N", 1)], start_id=101
    )

    return {
        "sections": [section_b, section_a],
        "questions": questions_a + questions_b,
        "responses": responses_b + responses_a,
        "configurations": [
            make_configuration({"type": "highest_only"}, section_id="A"),
            make_configuration({"type": "top_n", "n": 1}, section_id="B"),
        ],
    }


@pytest.fixture
def section_factory():
    """Factory for sections."""
    return make_section


@pytest.fixture
def flagged_factory():
    """Factory for flagged questions and their responses."""
    return make_flagged


@pytest.fixture
def configuration_factory():
    """Factory for scoring configurations."""
    return make_configuration


@pytest.fixture
def definition_factory():
    """Factory for result definitions."""
    return make_definition


@pytest.fixture
def component_factory():
    """Factory for result components."""
    return make_component
