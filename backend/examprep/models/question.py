# examprep/models/question.py
from enum import Enum
from typing import Any, Dict, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


OPTION_COUNT = 4


class Question(BaseModel):
    """One multiple-choice question with exactly four ordered options.

    Accepts both the wire names (``question``, ``correctIndex``) and the
    attribute names; dumps with the wire names so stored ``question_data``
    matches what the generator produced.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Union[StrictStr, StrictInt]
    text: StrictStr = Field(
        min_length=1,
        validation_alias=AliasChoices("question", "text"),
        serialization_alias="question",
    )
    options: Tuple[StrictStr, StrictStr, StrictStr, StrictStr]
    correct_index: StrictInt = Field(
        ge=0,
        le=OPTION_COUNT - 1,
        validation_alias=AliasChoices("correctIndex", "correct_index"),
        serialization_alias="correctIndex",
    )
    difficulty: Difficulty
    explanation: StrictStr = ""

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
