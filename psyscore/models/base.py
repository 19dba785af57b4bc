"""Base model classes for scoring engine records.

This module provides the base class for every record the engine consumes or
returns. Records are immutable: the engine never mutates caller data.
"""

from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError

from psyscore.utils.exceptions import ValidationError

# Identifiers are opaque to the engine: integer keys and UUID strings both occur.
EntityId = Union[int, str]

T = TypeVar("T", bound="EngineModel")


class EngineModel(BaseModel):
    """Base model for all engine records.

    Provides common configuration and (de)serialization helpers.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_dict(self, **kwargs: Any) -> Dict[str, Any]:
        """Convert model to dictionary.

        Args:
            **kwargs: Additional arguments for model_dump

        Returns:
            Dict[str, Any]: Dictionary representation of the model
        """
        return self.model_dump(**kwargs)

    def to_json(self, **kwargs: Any) -> str:
        """Convert model to JSON string.

        Args:
            **kwargs: Additional arguments for model_dump_json

        Returns:
            str: JSON string representation of the model
        """
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Create model instance from dictionary.

        Args:
            data: Dictionary containing model data

        Returns:
            Model instance
        """
        return cls.model_validate(data)


class ConfigRecord(EngineModel):
    """Admin-authored record that can be switched off without being deleted."""

    is_active: bool = True


def coerce_records(
    model: Type[T],
    records: Optional[Iterable[Union[T, Dict[str, Any]]]],
    name: str,
) -> List[T]:
    """Accept typed records or plain dicts from the caller.

    Args:
        model: Record class to validate against
        records: Typed records, dicts, or None
        name: Record name used in error messages

    Returns:
        List of typed records

    Raises:
        ValidationError: If a dict does not fit the record shape
    """
    coerced = []
    for index, record in enumerate(records or []):
        if isinstance(record, model):
            coerced.append(record)
            continue
        try:
            coerced.append(model.model_validate(record))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {name} at position {index}",
                field=name,
                validation_errors=[err["msg"] for err in e.errors()],
                cause=e,
            )
    return coerced
