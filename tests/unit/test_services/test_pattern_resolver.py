"""Unit tests for PatternResolver.

Covers highest-only, top-N, custom top-N and range-based patterns, including
tie-breaking by priority order.
"""

import pytest

from psyscore.core.config import Settings
from psyscore.models import CustomTopN, HighestOnly, RangeBased, ScoreBand, TopN
from psyscore.models.base import EngineModel
from psyscore.services.pattern_resolver import PatternResolver
from psyscore.utils.exceptions import PatternConfigError


@pytest.fixture
def resolver():
    """Create PatternResolver instance."""
    return PatternResolver()


class TestHighestOnly:
    """Test the highest-only pattern."""

    def test_selects_top_flag(self, resolver):
        """Test the single highest flag is selected."""
        resolution = resolver.resolve({"I": 3, "E": 8, "S": 5}, HighestOnly())

        assert resolution.selection == ("E",)
        assert resolution.code == "E"
        assert not resolution.is_range

    def test_tie_keeps_total_order(self, resolver):
        """Test ties without an order list keep the totals' key order."""
        resolution = resolver.resolve({"I": 5, "E": 5}, HighestOnly())

        assert resolution.selection == ("I",)

    def test_empty_totals(self, resolver):
        """Test no flags yields an empty selection."""
        resolution = resolver.resolve({}, HighestOnly())

        assert resolution.selection == ()
        assert resolution.code == ""


class TestTopN:
    """Test the top-N pattern."""

    def test_order_breaks_ties(self, resolver):
        """Test E/I tie is broken by position in the order list."""
        pattern = TopN(n=2, order=["E", "I", "R"])

        resolution = resolver.resolve({"E": 10, "I": 10, "R": 5}, pattern)

        assert list(resolution.selection) == ["E", "I"]

    def test_tie_break_ignores_key_order(self, resolver):
        """Test the order list wins over map iteration order."""
        pattern = TopN(n=2, order=["E", "I", "R"])

        resolution = resolver.resolve({"R": 5, "I": 10, "E": 10}, pattern)

        assert list(resolution.selection) == ["E", "I"]

    def test_selected_flags_reordered_by_priority(self, resolver):
        """Test flags in the order list move ahead of those not in it."""
        pattern = TopN(n=3, order=["S", "A"])

        resolution = resolver.resolve({"R": 9, "A": 7, "S": 4, "C": 1}, pattern)

        assert list(resolution.selection) == ["S", "A", "R"]

    def test_unlisted_flags_keep_score_order(self, resolver):
        """Test flags missing from the order list keep their score order."""
        pattern = TopN(n=3, order=["Z"])

        resolution = resolver.resolve({"A": 1, "B": 9, "C": 5}, pattern)

        assert list(resolution.selection) == ["B", "C", "A"]

    def test_order_is_not_a_filter(self, resolver):
        """Test flags absent from totals are ignored in the order list."""
        pattern = TopN(n=2, order=["X", "Y"])

        resolution = resolver.resolve({"A": 3, "B": 4}, pattern)

        assert list(resolution.selection) == ["B", "A"]

    def test_n_larger_than_flag_count(self, resolver):
        """Test N beyond the flag count selects every flag."""
        resolution = resolver.resolve({"A": 1, "B": 2}, TopN(n=5))

        assert list(resolution.selection) == ["B", "A"]
        assert resolution.code == "BA"


class TestCustomTopN:
    """Test the custom top-N pattern."""

    def test_weights_apply_before_sort(self, resolver):
        """Test a weight can lift a flag above a higher raw total."""
        pattern = CustomTopN(n=2, weights={"E": 2})

        resolution = resolver.resolve({"E": 5, "I": 9}, pattern)

        assert list(resolution.selection) == ["E", "I"]
        assert resolution.weighted_totals == {"E": 10, "I": 9}

    def test_n_is_clamped(self):
        """Test N is clamped into 1..10."""
        assert CustomTopN(n=0).n == 1
        assert CustomTopN(n=25).n == 10
        assert CustomTopN(n="4").n == 4

    def test_n_is_clamped_to_configured_maximum(self, monkeypatch):
        """Test MAX_TOP_N sets the upper bound for N."""
        settings = Settings(_env_file=None, APP_ENV="test", MAX_TOP_N=5)
        monkeypatch.setattr("psyscore.models.scoring.get_settings", lambda: settings)

        assert CustomTopN(n=8).n == 5
        assert CustomTopN(n=3).n == 3

    def test_low_to_high_direction(self, resolver):
        """Test the lowest scoring flags are selected when requested."""
        pattern = CustomTopN(n=1, order_direction="low_to_high")

        resolution = resolver.resolve({"A": 3, "B": 1, "C": 2}, pattern)

        assert list(resolution.selection) == ["B"]

    def test_order_breaks_weighted_ties(self, resolver):
        """Test priority order resolves equal weighted scores."""
        pattern = CustomTopN(n=1, order=["I", "E"], weights={"E": 2})

        resolution = resolver.resolve({"E": 3, "I": 6}, pattern)

        assert list(resolution.selection) == ["I"]


class TestRangeBased:
    """Test the range-based pattern."""

    @pytest.fixture
    def pattern(self):
        """Two adjacent bands, given out of order."""
        return RangeBased(ranges=[
            ScoreBand(min=11, max=20, label="High"),
            ScoreBand(min=0, max=10, label="Low"),
        ])

    def test_boundary_matches_lower_band(self, resolver, pattern):
        """Test a total of exactly 10 matches 0-10, not 11-20."""
        resolution = resolver.resolve({"E": 6, "I": 4}, pattern)

        assert resolution.is_range
        assert resolution.score == 10
        assert resolution.range_label == "Low"
        assert resolution.selection == ()
        assert resolution.code == ""

    def test_upper_band(self, resolver, pattern):
        """Test the sum of all flags is matched."""
        resolution = resolver.resolve({"E": 6, "I": 9}, pattern)

        assert resolution.range_label == "High"

    def test_no_band_is_a_sentinel(self, resolver, pattern):
        """Test a score outside every band yields no label, not an error."""
        resolution = resolver.resolve({"E": 30}, pattern)

        assert resolution.score == 30
        assert resolution.range_label is None
        assert not resolution.range_matched


class TestUnsupportedPattern:
    """Test unknown pattern objects."""

    def test_unknown_pattern_raises(self, resolver):
        """Test a non-pattern model raises PatternConfigError."""

        class Unknown(EngineModel):
            type: str = "mystery"

        with pytest.raises(PatternConfigError):
            resolver.resolve({"E": 1}, Unknown())
