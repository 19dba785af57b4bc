"""Constants and enums for the psyscore scoring engine.

This module defines all constants, enums, and mappings used throughout the
engine for consistency and type safety.
"""

import re
from enum import Enum
from typing import Dict, List


# ============================================================================
# CORE ENUMS
# ============================================================================

class ScoringType(str, Enum):
    """How a scoring configuration reduces a section's answers."""

    FLAG_BASED = "flag_based"
    RANGE_BASED = "range_based"
    SIMPLE = "simple"

    @classmethod
    def configurable(cls) -> List["ScoringType"]:
        """Scoring types an admin can store on a configuration row."""
        return [cls.FLAG_BASED, cls.RANGE_BASED]


class PatternType(str, Enum):
    """Canonical scoring pattern discriminators."""

    HIGHEST_ONLY = "highest_only"
    TOP_N = "top_n"
    CUSTOM_TOP_N = "custom_top_n"
    RANGE_BASED = "range_based"

    @property
    def is_flag_selection(self) -> bool:
        """Whether the pattern yields an ordered flag list."""
        return self != PatternType.RANGE_BASED


class OrderDirection(str, Enum):
    """Direction of the initial score sort for custom patterns."""

    HIGH_TO_LOW = "high_to_low"
    LOW_TO_HIGH = "low_to_high"


class MatchMode(str, Enum):
    """How a computed code or score is looked up against result definitions."""

    CODE = "code"
    RANGE = "range"


class ResultType(str, Enum):
    """Kind of admin-authored result definition."""

    FLAG_BASED = "flag_based"
    RANGE_BASED = "range_based"


# Legacy pattern identifiers persisted by older admin tooling, mapped to the
# canonical type and the N they imply.
LEGACY_TOP_N_TYPES: Dict[str, int] = {
    "top_3": 3,
    "top_4": 4,
    "top_5": 5,
    "preset-top-3-rie": 3,
    "preset-top-5": 5,
}

LEGACY_HIGHEST_TYPES = ("highest_only", "preset-highest")
LEGACY_CUSTOM_TYPES = ("custom_top_n", "custom-flag-pattern")
LEGACY_LOWEST_TYPES = ("preset-lowest",)
LEGACY_RANGE_TYPES = (
    "range_based",
    "custom-range-pattern",
    "range-male-adult",
    "range-female-adult",
    "range-child",
    "range-adolescent",
)


# ============================================================================
# SCORING CONSTANTS
# ============================================================================

class ScoringConstants:
    """Constants for flag aggregation, pattern resolution and combination."""

    # Custom top-N bounds
    MIN_TOP_N = 1
    MAX_TOP_N = 10
    DEFAULT_CUSTOM_TOP_N = 3

    # Range based patterns
    MAX_SCORE_RANGES = 10

    # Component combination
    DEFAULT_MAX_COMPONENTS = 4
    POSITION_DECAY_STEP = 0.1
    WEIGHTED_TOTAL_PRECISION = 2

    # Contribution of an answer whose value is not in the option table
    UNMAPPED_ANSWER_VALUE = 0


# ============================================================================
# VALIDATION CONSTANTS
# ============================================================================

class ValidationConstants:
    """Validation rules and patterns."""

    # Score range descriptors: "10-20", ">90", "<50", ">=75", "<=25"
    NUMBER = r"\d+(?:\.\d+)?"
    BETWEEN_PATTERN = re.compile(rf"^\s*({NUMBER})\s*-\s*({NUMBER})\s*$")
    BOUND_PATTERN = re.compile(rf"^\s*(>=|<=|>|<)\s*({NUMBER})\s*$")

    # Result definitions
    RESULT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

    # Result components
    COMPONENT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{1,5}$")
    COMPONENT_SCORE_MIN = -1000
    COMPONENT_SCORE_MAX = 1000
    COMPONENT_PRIORITY_MIN = 1
    COMPONENT_WEIGHT_MIN = 0.1
    COMPONENT_WEIGHT_MAX = 5.0


# ============================================================================
# ERROR CODES
# ============================================================================

class ErrorCodes:
    """Standardized error codes."""

    # Validation errors (2000-2099)
    VALIDATION_FAILED = 2001
    MISSING_REQUIRED_FIELD = 2002

    # Data integrity errors (2100-2199)
    UNKNOWN_QUESTION = 2101
    UNKNOWN_SECTION = 2102
    SECTION_MISMATCH = 2103
    DUPLICATE_RESPONSE = 2104

    # Configuration errors (3000-3099)
    PATTERN_INVALID = 3001
    PATTERN_UNKNOWN_TYPE = 3002
    RANGE_DESCRIPTOR_INVALID = 3003
    RANGE_OVERLAP = 3004
    RANGE_INVERTED = 3005
