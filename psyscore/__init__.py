"""psyscore: scoring and result-matching engine for multi-section tests.

The engine turns a student's responses and admin-authored scoring
configuration into a composite result code or score, and matches it against
the test's result definitions. It performs no I/O: callers fetch records and
persist outcomes.
"""

from psyscore.services.scoring_service import ScoringService

__version__ = "1.0.0"

__all__ = ["ScoringService", "__version__"]
