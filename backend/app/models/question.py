"""Question-related Pydantic models"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Highest question number a paper is expected to carry; gap checks stop here.
MAX_QUESTION_NUMBER = 1000


class QuestionType(str, Enum):
    MCQ_SINGLE = "mcq_single"
    MCQ_TWO = "mcq_two"
    MCQ_THREE = "mcq_three"
    MCQ_MULTIPLE = "mcq_multiple"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    MATCH = "match"
    SHORT_ANSWER = "short_answer"
    LONG_ANSWER = "long_answer"
    PROGRAMMING = "programming"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ParsedQuestion(BaseModel):
    """
    Canonical intermediate representation of one imported question.

    Attributes are snake_case; the JSON shape (API payloads and the stored
    batch rows) uses camelCase keys such as ``questionTextMr``.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    question_number: int = Field(ge=1)
    question_text_mr: str = ""
    question_text_en: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[int] = None  # zero-based index into options
    correct_answers: Optional[List[int]] = None  # multi-answer types only
    question_type: QuestionType = QuestionType.MCQ_SINGLE
    difficulty: Difficulty = Difficulty.MEDIUM
    marks: int = Field(default=1, ge=1)
    section: Optional[str] = None
    class_level: Optional[str] = None
    chapter_id: Optional[str] = None
    explanation: Optional[str] = None
    parsing_errors: Optional[List[str]] = None

    def to_api(self) -> dict:
        """camelCase dict with unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)
