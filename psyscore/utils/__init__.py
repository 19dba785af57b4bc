"""psyscore utilities package.

This package provides constants, exceptions and logging
used throughout the scoring engine.
"""

from psyscore.utils.constants import (
    ErrorCodes,
    MatchMode,
    OrderDirection,
    PatternType,
    ResultType,
    ScoringConstants,
    ScoringType,
    ValidationConstants,
)
from psyscore.utils.exceptions import (
    DataIntegrityError,
    PatternConfigError,
    RangeOverlapError,
    ScoringEngineError,
    ValidationError,
)
from psyscore.utils.logger import (
    PerformanceLogger,
    get_combination_logger,
    get_configuration_logger,
    get_logger,
    get_matching_logger,
    get_scoring_logger,
    setup_logging,
)

# Export all utility functions and classes
__all__ = [
    # Constants and Enums
    "ErrorCodes",
    "MatchMode",
    "OrderDirection",
    "PatternType",
    "ResultType",
    "ScoringConstants",
    "ScoringType",
    "ValidationConstants",

    # Exception classes
    "DataIntegrityError",
    "PatternConfigError",
    "RangeOverlapError",
    "ScoringEngineError",
    "ValidationError",

    # Logger functions
    "PerformanceLogger",
    "get_combination_logger",
    "get_configuration_logger",
    "get_logger",
    "get_matching_logger",
    "get_scoring_logger",
    "setup_logging",
]
