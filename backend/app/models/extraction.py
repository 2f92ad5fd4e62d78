"""AI extraction response schema and progress models"""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ExtractedQuestion(BaseModel):
    """One question as returned by the AI model (scholarship paper format)."""
    model_config = ConfigDict(extra="ignore")

    number: int = Field(gt=0)
    text_mr: Optional[str] = None
    text_en: Optional[str] = None
    type: str = "mcq_single"
    marks: Optional[int] = None
    options: Optional[List[str]] = None
    correct_answers: Optional[List[Union[int, str]]] = None
    correct_answer: Optional[Union[int, List[int], str, bool]] = None
    section: Optional[str] = None
    explanation_mr: Optional[str] = None
    explanation_en: Optional[str] = None


class SectionInfo(BaseModel):
    name: str
    question_range: Optional[str] = None


class ExtractionMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_questions: Optional[int] = None
    paper_number: Optional[str] = None  # I or II
    subject: Optional[str] = None
    paper_name: Optional[str] = None
    exam_type: Optional[str] = None
    class_level: Optional[str] = None
    instructions: Optional[str] = None
    sections: Optional[List[SectionInfo]] = None


class ExtractionResult(BaseModel):
    """Top-level JSON object the model must return: {questions, metadata}."""
    questions: List[ExtractedQuestion]
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)


class ExtractionStage(str, Enum):
    PROCESSING = "processing"
    EXTRACTING = "extracting"
    COMPLETE = "complete"


class ExtractionProgress(BaseModel):
    stage: ExtractionStage
    message: str
    percentage: Optional[int] = None
    total_questions: Optional[int] = None
