"""Section and question models.

A section owns the option table that turns a chosen answer into points. A
question only matters to scoring through its flag.
"""

import math
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator

from psyscore.models.answer import ChosenValue
from psyscore.models.base import EngineModel, EntityId


class OptionEntry(EngineModel):
    """One selectable option and the points it is worth."""

    text: str = ""
    value: ChosenValue

    @property
    def points(self) -> float:
        """Numeric worth of the option; non-numeric values are worth nothing."""
        return coerce_number(self.value) or 0


class Section(EngineModel):
    """A scored section of a test."""

    id: EntityId
    order: int = Field(default=0, validation_alias=AliasChoices("order", "section_order"))
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "section_name"))
    option_table: List[OptionEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("option_table", "optionTable", "section_options"),
    )


class Question(EngineModel):
    """A question and the trait flag it measures, if any."""

    id: EntityId
    section_id: EntityId = Field(validation_alias=AliasChoices("section_id", "sectionId"))
    flag: Optional[str] = Field(default=None, validation_alias=AliasChoices("flag", "question_flag"))

    @field_validator("flag", mode="before")
    @classmethod
    def normalize_flag(cls, value: Any) -> Optional[str]:
        """Blank flags mean the question is unflagged."""
        if value is None:
            return None
        value = str(value).strip()
        return value or None


def coerce_number(value: Any) -> Optional[float]:
    """Interpret an answer or option value as a number.

    Args:
        value: Raw value (int, float or numeric string)

    Returns:
        The number, as int when integral, or None if not numeric
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None
