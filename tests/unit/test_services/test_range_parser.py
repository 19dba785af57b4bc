"""Unit tests for score range descriptor parsing."""

import logging

import pytest

from psyscore.services.range_parser import ScoreRange, parse_range, try_parse_range
from psyscore.utils.constants import ErrorCodes
from psyscore.utils.exceptions import PatternConfigError


class TestScoreRangeParsing:
    """Test the accepted descriptor forms."""

    def test_between_range_is_inclusive(self):
        """Test that both ends of "min-max" are accepted."""
        score_range = parse_range("10-20")

        assert score_range.lower == 10
        assert score_range.upper == 20
        assert score_range.contains(10)
        assert score_range.contains(15)
        assert score_range.contains(20)
        assert not score_range.contains(9.5)
        assert not score_range.contains(21)

    def test_strict_lower_bound(self):
        """Test ">n" excludes n."""
        score_range = parse_range(">90")

        assert not score_range.contains(90)
        assert score_range.contains(90.5)
        assert score_range.contains(1000)

    def test_strict_upper_bound(self):
        """Test "<n" excludes n."""
        score_range = parse_range("<50")

        assert score_range.contains(0)
        assert score_range.contains(49)
        assert not score_range.contains(50)

    def test_inclusive_bounds(self):
        """Test ">=n" and "<=n" include n."""
        assert parse_range(">=75").contains(75)
        assert not parse_range(">=75").contains(74)
        assert parse_range("<=25").contains(25)
        assert not parse_range("<=25").contains(26)

    def test_whitespace_and_decimals(self):
        """Test descriptors with spaces and decimal bounds."""
        score_range = parse_range(" 1.5 - 3.5 ")

        assert score_range.contains(1.5)
        assert score_range.contains(3.5)
        assert not score_range.contains(3.6)

    def test_range_is_callable_predicate(self):
        """Test the parsed range can be used as a predicate."""
        score_range = parse_range("0-10")

        assert score_range(10)
        assert not score_range(11)

    def test_sort_key_is_effective_lower_bound(self):
        """Test ranges sort by lower bound, unbounded-below ranges at 0."""
        assert parse_range("11-20").sort_key == 11
        assert parse_range(">=75").sort_key == 75
        assert parse_range(">90").sort_key == 90
        assert parse_range("<50").sort_key == 0
        assert parse_range("<=25").sort_key == 0

    def test_parse_classmethod_matches_helper(self):
        """Test ScoreRange.parse and parse_range agree."""
        assert ScoreRange.parse("5-6") == parse_range("5-6")


class TestMalformedRanges:
    """Test rejection of malformed descriptors."""

    @pytest.mark.parametrize("descriptor", ["", "abc", "10-", "-5", "10 to 20", "=>5", "1-2-3", "--"])
    def test_malformed_descriptor_raises(self, descriptor):
        """Test malformed descriptors raise PatternConfigError naming the input."""
        with pytest.raises(PatternConfigError) as exc_info:
            parse_range(descriptor)

        assert exc_info.value.error_code == ErrorCodes.RANGE_DESCRIPTOR_INVALID
        assert repr(descriptor) in exc_info.value.message

    def test_inverted_range_raises(self):
        """Test "max-min" is rejected."""
        with pytest.raises(PatternConfigError) as exc_info:
            parse_range("20-10")

        assert exc_info.value.error_code == ErrorCodes.RANGE_INVERTED

    def test_non_string_raises(self):
        """Test non-string input is rejected."""
        with pytest.raises(PatternConfigError):
            parse_range(10)

    def test_try_parse_returns_none_for_malformed(self, caplog):
        """Test scoring-time parsing treats malformed ranges as no match."""
        with caplog.at_level(logging.WARNING):
            assert try_parse_range("not-a-range") is None

        assert "Ignoring malformed score range" in caplog.text

    def test_try_parse_returns_none_for_missing(self):
        """Test missing descriptors are not parsed."""
        assert try_parse_range(None) is None
        assert try_parse_range("") is None

    def test_try_parse_returns_range_for_valid(self):
        """Test valid descriptors parse normally."""
        assert try_parse_range("0-10").contains(10)
