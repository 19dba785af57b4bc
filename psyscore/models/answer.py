"""Answer model for a student's submitted responses."""

from typing import Union

from pydantic import AliasChoices, Field

from psyscore.models.base import EngineModel, EntityId

# An answer is whatever the option widget submitted: usually the option value
# itself, sometimes its string rendering.
ChosenValue = Union[int, float, str]


class Response(EngineModel):
    """One answered question within an attempt."""

    question_id: EntityId = Field(validation_alias=AliasChoices("question_id", "questionId"))
    section_id: EntityId = Field(validation_alias=AliasChoices("section_id", "sectionId"))
    chosen_value: ChosenValue = Field(
        validation_alias=AliasChoices("chosen_value", "chosenValue", "answer_value", "selected_answer")
    )
