"""
Import pipeline - file validation, strategy selection, extraction,
normalization and draft batch creation for PDF and spreadsheet uploads.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Union

from app import config
from app.config import logger, AI_FALLBACK_TO_LEGACY
from app.errors import BatchNotFoundError, ExtractionError, ValidationError
from app.models.batch import BatchCreate, BatchStatus, BatchUpdate, ImportBatch, ReviewSubmission, utc_now_iso
from app.models.extraction import ExtractionStage
from app.models.question import ParsedQuestion
from app.models.user import ActorContext
from app.services.catalog import DEFAULT_CATALOG, ImportCatalog
from app.services.extraction import extract_questions_with_ai, get_model_or_raise
from app.services.file_processing import (
    PDF_MIME_TYPES, SPREADSHEET_MIME_TYPES, read_pdf_text, read_spreadsheet_rows,
)
from app.services.legacy_pdf_parser import parse_pdf_questions
from app.services.normalizer import normalize_questions, profile_for
from app.services.progress import FanoutProgressObserver, ProgressObserver, RecordingProgressObserver
from app.services.prompts import strip_instructions_preamble
from app.services.question_import import QuestionImportService
from app.services.spreadsheet_import import SPREADSHEET_PROFILE, transform_rows
from app.utils.validation import summarize_question_set

NO_QUESTIONS_MESSAGE = "No valid questions found in file. Please check the format and try again."


@dataclass(frozen=True)
class AiExtraction:
    model: str
    scholarship_mode: bool = True
    max_questions: Optional[int] = None


@dataclass(frozen=True)
class LegacyExtraction:
    scholarship_mode: bool = True
    fallback_reason: Optional[str] = None


@dataclass(frozen=True)
class SpreadsheetExtraction:
    pass


PdfStrategy = Union[AiExtraction, LegacyExtraction]


@dataclass
class UploadedFile:
    """An uploaded file already read into memory."""
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ImportResult:
    batch: ImportBatch
    questions: List[ParsedQuestion]
    strategy: Union[AiExtraction, LegacyExtraction, SpreadsheetExtraction]


def select_pdf_strategy(
    use_ai: bool,
    model: Optional[str],
    scholarship_mode: bool = True,
    max_questions: Optional[int] = None,
    catalog: ImportCatalog = DEFAULT_CATALOG,
    fallback_to_legacy: bool = AI_FALLBACK_TO_LEGACY,
) -> PdfStrategy:
    """
    Pick the PDF strategy before any extraction work.

    Unknown models are rejected outright. A catalog model without a configured
    credential degrades to legacy parsing when fallback is enabled.
    """
    if not use_ai:
        return LegacyExtraction(scholarship_mode=scholarship_mode)

    model = model or catalog.default_model
    get_model_or_raise(model, catalog)

    if max_questions is not None and max_questions <= 0:
        raise ValidationError("maxQuestions must be a positive integer")

    if not catalog.is_model_available(model):
        if fallback_to_legacy:
            reason = f"AI model {model} is not configured; used legacy parser"
            logger.warning(f"⚠️ {reason}")
            return LegacyExtraction(scholarship_mode=scholarship_mode, fallback_reason=reason)
        raise ExtractionError(
            f"AI model {model} is not available. Please check that the required API key is configured."
        )

    return AiExtraction(model=model, scholarship_mode=scholarship_mode, max_questions=max_questions)


def max_upload_bytes() -> int:
    return config.MAX_UPLOAD_MB * 1024 * 1024


def check_upload_size(size: Optional[int]):
    if size is not None and size > max_upload_bytes():
        raise ValidationError(f"File too large. Maximum size is {config.MAX_UPLOAD_MB}MB")


def _check_upload(upload: Optional[UploadedFile], field_name: str, allowed_mime: tuple, allowed_ext: tuple):
    if upload is None or not upload.filename:
        raise ValidationError(f"No {field_name} file provided")
    if upload.size == 0:
        raise ValidationError(f"Uploaded {field_name} file is empty")
    check_upload_size(upload.size)

    ext = os.path.splitext(upload.filename)[1].lower()
    if upload.content_type not in allowed_mime and ext not in allowed_ext:
        raise ValidationError(f"Invalid {field_name} file type: {upload.content_type or ext or 'unknown'}")


def _check_subject(subject_slug: Optional[str], catalog: ImportCatalog):
    if not subject_slug:
        raise ValidationError("Subject is required")
    if not catalog.is_subject_supported(subject_slug):
        raise ValidationError(f"Invalid subject: {subject_slug}")


class ImportPipeline:
    """Runs one import end to end and persists the result as a draft batch."""

    def __init__(self, service: QuestionImportService, catalog: ImportCatalog = DEFAULT_CATALOG):
        self.service = service
        self.catalog = catalog

    async def import_pdf(
        self,
        pdf: UploadedFile,
        subject_slug: str,
        actor: ActorContext,
        strategy: PdfStrategy,
        answer_key: Optional[UploadedFile] = None,
        batch_name: Optional[str] = None,
        observer: Optional[ProgressObserver] = None,
    ) -> ImportResult:
        _check_subject(subject_slug, self.catalog)
        _check_upload(pdf, "PDF", PDF_MIME_TYPES, (".pdf",))
        if answer_key is not None:
            _check_upload(answer_key, "answer key", PDF_MIME_TYPES, (".pdf",))

        recorder = RecordingProgressObserver()
        progress = FanoutProgressObserver(recorder, observer)

        progress.report(ExtractionStage.PROCESSING, "Reading PDF file...", 10)
        pdf_text = read_pdf_text(pdf.data, label="PDF")

        answer_key_text = None
        if answer_key is not None:
            progress.report(ExtractionStage.PROCESSING, "Reading answer key...", 20)
            answer_key_text = read_pdf_text(answer_key.data, label="answer key PDF").text

        extraction_metadata = None
        dropped = 0
        if isinstance(strategy, AiExtraction):
            output = await extract_questions_with_ai(
                pdf_text.text,
                strategy.model,
                catalog=self.catalog,
                answer_key_text=answer_key_text,
                scholarship_mode=strategy.scholarship_mode,
                max_questions=strategy.max_questions,
                observer=progress,
            )
            rows = output.rows
            dropped = output.dropped_count
            extraction_metadata = output.metadata.model_dump(exclude_none=True)
            method = "ai"
        else:
            progress.report(ExtractionStage.EXTRACTING, "Parsing questions with the legacy parser...", 30)
            text = strip_instructions_preamble(pdf_text.text) if strategy.scholarship_mode else pdf_text.text
            rows = parse_pdf_questions(text, answer_key_text)
            method = "legacy"

        questions = normalize_questions(rows, profile_for(strategy.scholarship_mode), self.catalog)
        if not questions:
            raise ValidationError(NO_QUESTIONS_MESSAGE)
        if method == "legacy":
            progress.report(ExtractionStage.COMPLETE, f"Parsed {len(questions)} questions", 100, len(questions))

        metadata = {
            "fileName": pdf.filename,
            "fileSize": pdf.size,
            "fileType": "pdf",
            "pageCount": pdf_text.page_count,
            "extractionMethod": method,
            "useAI": method == "ai",
            "aiModel": strategy.model if isinstance(strategy, AiExtraction) else None,
            "scholarshipMode": strategy.scholarship_mode,
            "hasAnswerKey": answer_key is not None,
            "answerKeyFileName": answer_key.filename if answer_key is not None else None,
            "uploadedAt": utc_now_iso(),
            "parsedCount": len(questions),
            "diagnostics": summarize_question_set(questions, dropped_rows=dropped),
            "progress": [stage.value for stage in recorder.stages],
        }
        if extraction_metadata:
            metadata["extractionMetadata"] = extraction_metadata
        if isinstance(strategy, LegacyExtraction) and strategy.fallback_reason:
            metadata["fallbackReason"] = strategy.fallback_reason

        batch = await self.service.create_batch(
            BatchCreate(
                subject_slug=subject_slug,
                batch_name=batch_name,
                parsed_questions=[q.to_api() for q in questions],
                metadata=metadata,
                created_by=actor.user_id,
            ),
            actor,
        )
        logger.info(f"PDF import ({method}) created batch {batch.batch_id} with {len(questions)} questions")
        return ImportResult(batch=batch, questions=questions, strategy=strategy)

    async def import_spreadsheet(
        self,
        upload: UploadedFile,
        subject_slug: str,
        actor: ActorContext,
        batch_name: Optional[str] = None,
    ) -> ImportResult:
        _check_subject(subject_slug, self.catalog)
        _check_upload(upload, "spreadsheet", SPREADSHEET_MIME_TYPES, (".csv", ".xlsx"))

        raw_rows = read_spreadsheet_rows(upload.data, upload.content_type, upload.filename)
        if not raw_rows:
            raise ValidationError("No data found in file")

        rows, dropped = transform_rows(raw_rows, SPREADSHEET_PROFILE, self.catalog)
        questions = normalize_questions(rows, SPREADSHEET_PROFILE, self.catalog)
        if not questions:
            raise ValidationError(NO_QUESTIONS_MESSAGE)

        metadata = {
            "fileName": upload.filename,
            "fileSize": upload.size,
            "fileType": os.path.splitext(upload.filename)[1].lstrip(".").lower() or "csv",
            "extractionMethod": "csv",
            "uploadedAt": utc_now_iso(),
            "parsedCount": len(questions),
            "diagnostics": summarize_question_set(questions, dropped_rows=dropped),
        }

        batch = await self.service.create_batch(
            BatchCreate(
                subject_slug=subject_slug,
                batch_name=batch_name or f"Import from {upload.filename}",
                parsed_questions=[q.to_api() for q in questions],
                metadata=metadata,
                created_by=actor.user_id,
            ),
            actor,
        )
        logger.info(f"Spreadsheet import created batch {batch.batch_id} with {len(questions)} questions")
        return ImportResult(batch=batch, questions=questions, strategy=SpreadsheetExtraction())

    async def review(self, submission: ReviewSubmission, actor: ActorContext) -> ImportBatch:
        """
        Replace a batch's questions with the reviewer's edits and mark it reviewed.

        Edited rows go back through the normalizer with the profile the batch was imported with.
        """
        existing = await self.service.get_batch_by_id(submission.batch_id, actor)
        if existing is None:
            raise BatchNotFoundError("Batch not found")
        if not submission.questions:
            raise ValidationError("Questions are required for review")

        if existing.metadata.get("extractionMethod") == "csv":
            profile = SPREADSHEET_PROFILE
        else:
            profile = profile_for(existing.metadata.get("scholarshipMode", True))
        questions = normalize_questions(submission.questions, profile, self.catalog)
        if not questions:
            raise ValidationError(NO_QUESTIONS_MESSAGE)

        return await self.service.update_batch(
            submission.batch_id,
            BatchUpdate(
                batch_name=submission.batch_name,
                parsed_questions=[q.to_api() for q in questions],
                status=BatchStatus.REVIEWED,
            ),
            actor,
        )
