"""Admin-authored result records.

A result definition is either keyed by an exact code (flag-based tests) or by a
textual score range (range-based tests). Result components feed the
combination mode.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from psyscore.models.base import ConfigRecord, EntityId
from psyscore.utils.constants import ResultType


class ResultDefinition(ConfigRecord):
    """A result a student can be assigned, with its report assets."""

    id: Optional[EntityId] = None
    test_id: EntityId = Field(validation_alias=AliasChoices("test_id", "testId"))
    section_id: Optional[EntityId] = Field(
        default=None, validation_alias=AliasChoices("section_id", "sectionId")
    )
    result_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("result_code", "resultCode")
    )
    score_range: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("score_range", "scoreRange")
    )
    title: str = ""
    description: Optional[str] = None
    pdf_file: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("pdf_file", "pdfFile")
    )

    @field_validator("result_code", "score_range", mode="before")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        """Empty strings in storage mean "not set"."""
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def result_type(self) -> ResultType:
        """Range-based when a score range is present, flag-based otherwise."""
        return ResultType.RANGE_BASED if self.score_range else ResultType.FLAG_BASED


class ResultComponent(ConfigRecord):
    """A named building block of a combination-style result."""

    test_id: EntityId = Field(validation_alias=AliasChoices("test_id", "testId"))
    component_code: str = Field(validation_alias=AliasChoices("component_code", "componentCode"))
    component_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("component_name", "componentName")
    )
    component_category: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("component_category", "componentCategory")
    )
    score_value: float = Field(default=0, validation_alias=AliasChoices("score_value", "scoreValue"))
    order_priority: int = Field(default=1, validation_alias=AliasChoices("order_priority", "orderPriority"))
    component_weight: float = Field(
        default=1.0, validation_alias=AliasChoices("component_weight", "componentWeight")
    )
