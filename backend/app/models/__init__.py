"""Pydantic models for the StackHub question import service"""

from .user import User, ActorContext, IMPORT_ROLES, ELEVATED_ROLES
from .question import ParsedQuestion, QuestionType, Difficulty
from .batch import (
    BatchStatus,
    ImportBatch,
    BatchCreate,
    BatchUpdate,
    ReviewSubmission,
)
from .extraction import (
    ExtractedQuestion,
    ExtractionMetadata,
    ExtractionResult,
    ExtractionStage,
    ExtractionProgress,
)
