"""
AI-backed question extraction from PDF text.

Builds the prompt, calls the configured model through LlmChat, decodes the
JSON response against ExtractionResult and converts every extracted question
into a ParsedQuestion row for the normalizer.
"""

import json
import re
import time
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional

from pydantic import ValidationError as SchemaValidationError

from app.config import logger, get_provider_api_key, AI_TIMEOUT_SECONDS
from app.errors import ExtractionError, ValidationError
from app.models.extraction import ExtractionMetadata, ExtractionResult, ExtractionStage, ExtractedQuestion
from app.models.question import MAX_QUESTION_NUMBER
from app.services.catalog import DEFAULT_CATALOG, ImportCatalog, ModelConfig
from app.services.llm import LlmChat, UserMessage, is_timeout_error, send_with_retry
from app.services.progress import ProgressObserver
from app.services.prompts import create_enhanced_extraction_prompt

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)

TIMEOUT_MESSAGE = (
    "Request timed out. The PDF may be too large. "
    "Please try a smaller file, a different model, or disable AI extraction."
)


@dataclass
class AiExtractionOutput:
    rows: List[dict]
    metadata: ExtractionMetadata
    dropped_count: int = 0
    elapsed_ms: int = 0


def get_model_or_raise(model: str, catalog: ImportCatalog = DEFAULT_CATALOG) -> ModelConfig:
    """Catalog lookup; unknown models are a client error listing the valid ids."""
    config = catalog.get_model_config(model)
    if config is None:
        valid = ", ".join(catalog.models.keys())
        raise ValidationError(f"Invalid AI model. Must be one of: {valid}")
    return config


def parse_model_json(response_text: str) -> dict:
    """
    Decode the model's JSON object. Accepts a bare object or one wrapped in a
    ```json fence; anything else is malformed output.
    """
    text = (response_text or "").strip()
    candidates = [text]
    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    logger.warning(f"Failed to parse JSON from AI response. Response preview: {text[:200]}")
    raise ExtractionError(
        "AI model returned malformed output (not valid JSON). "
        "Try again, choose a different model, or disable AI extraction."
    )


def decode_extraction_result(response_text: str) -> ExtractionResult:
    data = parse_model_json(response_text)
    try:
        return ExtractionResult.model_validate(data)
    except SchemaValidationError as e:
        logger.warning(f"AI response failed schema validation: {e.error_count()} errors")
        raise ExtractionError(
            "AI model output did not match the expected question schema. "
            "Try again, choose a different model, or disable AI extraction."
        ) from e


def extracted_to_row(question: ExtractedQuestion) -> dict:
    """Map one AI question to ParsedQuestion JSON keys; coercion is left to the normalizer."""
    return {
        "questionNumber": question.number,
        "questionTextMr": question.text_mr or "",
        "questionTextEn": question.text_en,
        "options": question.options or [],
        "correctAnswers": question.correct_answers,
        "correctAnswer": question.correct_answer,
        "questionType": question.type,
        "marks": question.marks,
        "section": question.section,
        "explanation": question.explanation_en or question.explanation_mr,
    }


def to_question_rows(result: ExtractionResult) -> List[dict]:
    """
    Rows without question text in either language, or numbered past
    MAX_QUESTION_NUMBER, are dropped here.
    """
    rows = []
    for question in result.questions:
        if question.number > MAX_QUESTION_NUMBER:
            logger.warning(f"Dropping AI question {question.number}: number exceeds {MAX_QUESTION_NUMBER}")
            continue
        if not (question.text_mr or "").strip() and not (question.text_en or "").strip():
            logger.warning(f"Dropping AI question {question.number}: no question text")
            continue
        rows.append(extracted_to_row(question))
    return rows


def _friendly_provider_error(model: str, error: Exception) -> ExtractionError:
    message = str(error)
    lowered = message.lower()
    if "api key" in lowered or "api_key" in lowered or "permission" in lowered:
        return ExtractionError(f"API key not configured for {model}. Please check environment variables.")
    if "rate limit" in lowered or "429" in lowered or "quota" in lowered:
        return ExtractionError("Rate limit exceeded. Please try again in a moment.")
    if is_timeout_error(error):
        return ExtractionError(TIMEOUT_MESSAGE)
    return ExtractionError(f"AI extraction failed: {message or 'unknown provider error'}")


async def extract_questions_with_ai(
    pdf_text: str,
    model: str,
    catalog: ImportCatalog = DEFAULT_CATALOG,
    answer_key_text: Optional[str] = None,
    scholarship_mode: bool = True,
    max_questions: Optional[int] = None,
    observer: Optional[ProgressObserver] = None,
    chat_factory: Optional[Callable[..., LlmChat]] = None,
    timeout_seconds: int = AI_TIMEOUT_SECONDS,
) -> AiExtractionOutput:
    """Run AI extraction over already-read PDF text."""
    observer = observer or ProgressObserver()
    config = get_model_or_raise(model, catalog)

    api_key = get_provider_api_key(config.provider)
    if not api_key:
        raise ExtractionError(
            f"AI model {model} is not available. Please check that the required API key is configured, "
            "or disable AI extraction."
        )

    observer.report(ExtractionStage.EXTRACTING, f"Extracting questions using {config.name}...", 30)

    system_message, prompt = create_enhanced_extraction_prompt(
        pdf_text,
        answer_key_text=answer_key_text,
        scholarship_mode=scholarship_mode,
    )
    chat = (chat_factory or LlmChat)(
        api_key=api_key,
        session_id=f"import_pdf_{uuid.uuid4().hex[:8]}",
        system_message=system_message,
    ).with_model(config.provider, config.id).with_params(
        temperature=0.1,
        response_mime_type="application/json",
    )

    started = time.monotonic()
    try:
        response_text = await send_with_retry(
            chat,
            UserMessage(text=prompt),
            timeout_seconds=timeout_seconds,
            operation_name=f"Question extraction ({config.id})",
        )
    except TimeoutError as e:
        raise ExtractionError(TIMEOUT_MESSAGE) from e
    except Exception as e:
        logger.error(f"[AI Extraction] Provider error: {e}")
        raise _friendly_provider_error(model, e) from e
    elapsed_ms = int((time.monotonic() - started) * 1000)

    result = decode_extraction_result(response_text)
    questions = sorted(result.questions, key=lambda q: q.number)
    if max_questions:
        questions = questions[:max_questions]
    result = result.model_copy(update={"questions": questions})

    rows = to_question_rows(result)
    metadata = result.metadata.model_copy(update={"total_questions": len(rows)})

    logger.info(f"AI extracted {len(rows)} questions with {config.id} in {elapsed_ms}ms")
    observer.report(
        ExtractionStage.COMPLETE,
        f"Successfully extracted {len(rows)} questions",
        100,
        total_questions=len(rows),
    )
    return AiExtractionOutput(
        rows=rows,
        metadata=metadata,
        dropped_count=len(questions) - len(rows),
        elapsed_ms=elapsed_ms,
    )
