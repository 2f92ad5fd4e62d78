"""
Static catalogs used by the import pipeline: AI models, supported subjects,
spreadsheet column aliases, question type and difficulty vocabularies.

The pipeline receives an ImportCatalog instead of reading module constants,
so a deployment can extend a table without touching parsing code.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from app.config import get_provider_api_key
from app.models.question import Difficulty, QuestionType


@dataclass(frozen=True)
class ModelConfig:
    id: str
    name: str
    provider: str
    description: str
    max_tokens: Optional[int] = None


AI_MODELS: Dict[str, ModelConfig] = {
    "gemini-2.5-flash": ModelConfig(
        id="gemini-2.5-flash",
        name="Gemini 2.5 Flash",
        provider="gemini",
        description="Fast, good Marathi (Devanagari) support. Default.",
        max_tokens=1048576,
    ),
    "gemini-2.5-pro": ModelConfig(
        id="gemini-2.5-pro",
        name="Gemini 2.5 Pro",
        provider="gemini",
        description="Highest accuracy for bilingual papers, slower.",
        max_tokens=1048576,
    ),
    "gemini-2.0-flash": ModelConfig(
        id="gemini-2.0-flash",
        name="Gemini 2.0 Flash",
        provider="gemini",
        description="Previous generation, cost-effective.",
        max_tokens=1048576,
    ),
    "gemini-2.5-flash-lite": ModelConfig(
        id="gemini-2.5-flash-lite",
        name="Gemini 2.5 Flash-Lite",
        provider="gemini",
        description="Cheapest option, lower recall on long papers.",
        max_tokens=1048576,
    ),
}

DEFAULT_AI_MODEL = "gemini-2.5-flash"

# slug -> live question table written by the commit step
SUPPORTED_SUBJECTS: Dict[str, str] = {
    "scholarship": "questions_scholarship",
    "english": "questions_english",
    "information-technology": "questions_information_technology",
    "information_technology": "questions_information_technology",
}

# ParsedQuestion field -> accepted spreadsheet headers, matched case-insensitively
COLUMN_ALIASES: Dict[str, Tuple[str, ...]] = {
    "question_text_mr": ("Question (Marathi)", "question_mr", "questionTextMr", "Question Marathi"),
    "question_text_en": ("Question (English)", "question_en", "questionTextEn", "Question English"),
    "option_a": ("Option A (Marathi)", "Option A", "option_a", "optionA", "A"),
    "option_b": ("Option B (Marathi)", "Option B", "option_b", "optionB", "B"),
    "option_c": ("Option C (Marathi)", "Option C", "option_c", "optionC", "C"),
    "option_d": ("Option D (Marathi)", "Option D", "option_d", "optionD", "D"),
    "correct_answer": ("Correct Answer", "correct_answer", "correctAnswer", "Correct"),
    "difficulty": ("Difficulty", "difficulty"),
    "marks": ("Marks", "marks"),
    "question_type": ("Type", "type", "question_type", "questionType"),
    "section": ("Section", "section"),
    "class_level": ("Class Level", "class_level", "classLevel", "Class"),
    "explanation": ("Explanation", "explanation"),
}

OPTION_FIELDS = ("option_a", "option_b", "option_c", "option_d")

# Types whose rows are expected to carry exactly four options
MCQ_TYPES = (
    QuestionType.MCQ_SINGLE.value,
    QuestionType.MCQ_TWO.value,
    QuestionType.MCQ_THREE.value,
    QuestionType.MCQ_MULTIPLE.value,
)
MULTI_ANSWER_TYPES = (
    QuestionType.MCQ_TWO.value,
    QuestionType.MCQ_THREE.value,
    QuestionType.MCQ_MULTIPLE.value,
)


@dataclass(frozen=True)
class ImportCatalog:
    models: Dict[str, ModelConfig] = field(default_factory=lambda: dict(AI_MODELS))
    default_model: str = DEFAULT_AI_MODEL
    subjects: Dict[str, str] = field(default_factory=lambda: dict(SUPPORTED_SUBJECTS))
    column_aliases: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(COLUMN_ALIASES))
    question_types: Tuple[str, ...] = tuple(t.value for t in QuestionType)
    difficulties: Tuple[str, ...] = tuple(d.value for d in Difficulty)

    def is_subject_supported(self, subject_slug: Optional[str]) -> bool:
        return bool(subject_slug) and subject_slug.lower() in self.subjects

    def get_model_config(self, model: str) -> Optional[ModelConfig]:
        return self.models.get(model)

    def is_model_available(self, model: str) -> bool:
        """A model is available when it is in the catalog and its provider credential is set."""
        config = self.models.get(model)
        if config is None:
            return False
        return bool(get_provider_api_key(config.provider))


DEFAULT_CATALOG = ImportCatalog()
