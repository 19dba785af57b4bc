"""Custom exception classes for the psyscore scoring engine.

This module defines a hierarchy of custom exceptions for the errors the
engine can raise. A missing admin result is not an error: it is reported as a
``NoMatchOutcome`` value by the matcher.
"""

from typing import Any, Dict, List, Optional

from psyscore.utils.constants import ErrorCodes


class ScoringEngineError(Exception):
    """Base exception class for all scoring engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize scoring engine error.

        Args:
            message: Error message
            error_code: Engine-specific error code (see ErrorCodes)
            details: Additional error details
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary representation.

        Returns:
            Dict[str, Any]: Exception data
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        """String representation of the exception."""
        parts = [self.message]
        if self.error_code:
            parts.append(f"Code: {self.error_code}")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " | ".join(parts)


class ValidationError(ScoringEngineError):
    """Exception for invalid caller input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        validation_errors: Optional[List[str]] = None,
        **kwargs
    ):
        """Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            value: Invalid value
            validation_errors: List of specific validation errors
            **kwargs: Additional arguments for parent class
        """
        details = kwargs.get("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        if validation_errors:
            details["validation_errors"] = validation_errors

        kwargs["details"] = details
        kwargs.setdefault("error_code", ErrorCodes.VALIDATION_FAILED)
        super().__init__(message, **kwargs)

        self.field = field
        self.value = value
        self.validation_errors = validation_errors or []


class DataIntegrityError(ValidationError):
    """Exception for caller data that contradicts itself.

    Raised when, for example, a response references a question that was not
    supplied. These indicate a bug on the caller side and are never ignored.
    """

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[Any] = None,
        **kwargs
    ):
        """Initialize data integrity error.

        Args:
            message: Error message
            record_type: Kind of record at fault (response, question, section)
            record_id: Identifier of the record at fault
            **kwargs: Additional arguments for parent class
        """
        details = kwargs.get("details", {})
        if record_type:
            details["record_type"] = record_type
        if record_id is not None:
            details["record_id"] = record_id

        kwargs["details"] = details
        super().__init__(message, **kwargs)

        self.record_type = record_type
        self.record_id = record_id


class PatternConfigError(ScoringEngineError):
    """Exception for malformed or unrecognized scoring configuration."""

    def __init__(
        self,
        message: str,
        pattern_type: Optional[str] = None,
        section_id: Optional[Any] = None,
        **kwargs
    ):
        """Initialize pattern configuration error.

        Args:
            message: Error message
            pattern_type: Pattern type or descriptor that failed
            section_id: Section the configuration belongs to, if known
            **kwargs: Additional arguments for parent class
        """
        details = kwargs.get("details", {})
        if pattern_type:
            details["pattern_type"] = pattern_type
        if section_id is not None:
            details["section_id"] = section_id

        kwargs["details"] = details
        kwargs.setdefault("error_code", ErrorCodes.PATTERN_INVALID)
        super().__init__(message, **kwargs)

        self.pattern_type = pattern_type
        self.section_id = section_id


class RangeOverlapError(PatternConfigError):
    """Exception for overlapping or inverted score ranges.

    Only raised while saving configuration, never while scoring.
    """

    def __init__(
        self,
        message: str,
        ranges: Optional[List[str]] = None,
        **kwargs
    ):
        """Initialize range overlap error.

        Args:
            message: Error message
            ranges: Human-readable descriptions of the offending ranges
            **kwargs: Additional arguments for parent class
        """
        details = kwargs.get("details", {})
        if ranges:
            details["ranges"] = ranges

        kwargs["details"] = details
        kwargs.setdefault("error_code", ErrorCodes.RANGE_OVERLAP)
        super().__init__(message, **kwargs)

        self.ranges = ranges or []
