"""Question import routes - PDF/CSV upload, review, batch listing, AI model catalog."""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from typing import Optional

from app.config import logger
from app.deps import get_import_actor, get_import_pipeline, get_import_service
from app.errors import BatchNotFoundError
from app.models.batch import BatchStatus, ReviewSubmission
from app.models.user import ActorContext
from app.services.catalog import DEFAULT_CATALOG
from app.services.import_pipeline import (
    ImportPipeline, UploadedFile, check_upload_size, max_upload_bytes, select_pdf_strategy,
)
from app.services.progress import LoggingProgressObserver
from app.services.question_import import QuestionImportService

router = APIRouter(prefix="/questions/import", tags=["question-import"])


async def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Read an upload without buffering more than one byte past the size limit."""
    if upload is None:
        return None
    check_upload_size(upload.size)
    data = await upload.read(max_upload_bytes() + 1)
    check_upload_size(len(data))
    return UploadedFile(filename=upload.filename or "", content_type=upload.content_type, data=data)


@router.post("/pdf")
async def import_pdf(
    pdf: Optional[UploadFile] = File(None),
    answer_key: Optional[UploadFile] = File(None, alias="answerKey"),
    subject_slug: Optional[str] = Form(None, alias="subjectSlug"),
    batch_name: Optional[str] = Form(None, alias="batchName"),
    use_ai: bool = Form(True, alias="useAI"),
    ai_model: Optional[str] = Form(None, alias="aiModel"),
    scholarship_mode: bool = Form(True, alias="scholarshipMode"),
    max_questions: Optional[int] = Form(None, alias="maxQuestions"),
    actor: ActorContext = Depends(get_import_actor),
    pipeline: ImportPipeline = Depends(get_import_pipeline),
):
    """Import questions from a question paper PDF (AI or legacy parser) into a draft batch"""
    strategy = select_pdf_strategy(
        use_ai=use_ai,
        model=ai_model,
        scholarship_mode=scholarship_mode,
        max_questions=max_questions,
        catalog=pipeline.catalog,
    )

    result = await pipeline.import_pdf(
        await _read_upload(pdf),
        subject_slug,
        actor,
        strategy,
        answer_key=await _read_upload(answer_key),
        batch_name=batch_name,
        observer=LoggingProgressObserver(label=f"PDF Import {actor.user_id}"),
    )

    batch = result.batch
    return {
        "batchId": batch.batch_id,
        "batchName": batch.batch_name,
        "questionsCount": len(result.questions),
        "questions": batch.parsed_questions,
        "metadata": batch.metadata,
        "useAI": batch.metadata.get("useAI", False),
    }


@router.post("/csv")
async def import_csv(
    file: Optional[UploadFile] = File(None),
    subject_slug: Optional[str] = Form(None, alias="subjectSlug"),
    batch_name: Optional[str] = Form(None, alias="batchName"),
    actor: ActorContext = Depends(get_import_actor),
    pipeline: ImportPipeline = Depends(get_import_pipeline),
):
    """Import questions from a CSV or XLSX sheet into a draft batch"""
    result = await pipeline.import_spreadsheet(
        await _read_upload(file),
        subject_slug,
        actor,
        batch_name=batch_name,
    )

    batch = result.batch
    return {
        "batchId": batch.batch_id,
        "batchName": batch.batch_name,
        "questionsCount": len(result.questions),
        "questions": batch.parsed_questions,
    }


@router.post("/review")
async def review_batch(
    submission: ReviewSubmission,
    actor: ActorContext = Depends(get_import_actor),
    pipeline: ImportPipeline = Depends(get_import_pipeline),
):
    """Save reviewer edits to a draft batch and mark it reviewed"""
    batch = await pipeline.review(submission, actor)
    logger.info(f"Batch {batch.batch_id} reviewed by {actor.user_id}")
    return {
        "batchId": batch.batch_id,
        "status": batch.status,
        "questionsCount": len(batch.parsed_questions),
    }


@router.get("/batches")
async def list_batches(
    status: Optional[BatchStatus] = None,
    actor: ActorContext = Depends(get_import_actor),
    service: QuestionImportService = Depends(get_import_service),
):
    """Get the current user's import batches, newest first"""
    batches = await service.list_batches(actor, status.value if status else None)
    return [
        {
            "batchId": b.batch_id,
            "batchName": b.batch_name,
            "subjectSlug": b.subject_slug,
            "status": b.status,
            "questionsCount": len(b.parsed_questions),
            "createdAt": b.created_at,
            "updatedAt": b.updated_at,
        }
        for b in batches
    ]


@router.get("/batches/{batch_id}")
async def get_batch(
    batch_id: str,
    actor: ActorContext = Depends(get_import_actor),
    service: QuestionImportService = Depends(get_import_service),
):
    """Get one import batch with its questions"""
    batch = await service.get_batch_by_id(batch_id, actor)
    if batch is None:
        raise BatchNotFoundError("Batch not found")
    return batch.model_dump(by_alias=True)


@router.get("/ai-models")
async def list_ai_models(actor: ActorContext = Depends(get_import_actor)):
    """AI model catalog with availability flags"""
    return {
        "defaultModel": DEFAULT_CATALOG.default_model,
        "models": [
            {
                "id": m.id,
                "name": m.name,
                "provider": m.provider,
                "description": m.description,
                "available": DEFAULT_CATALOG.is_model_available(m.id),
            }
            for m in DEFAULT_CATALOG.models.values()
        ],
    }
