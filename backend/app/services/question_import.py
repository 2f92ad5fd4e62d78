"""
Batch manager - durable draft batches in the question_import_batches collection.
"""

import uuid
from typing import List, Optional

from app.config import logger
from app.database import IMPORT_BATCHES_COLLECTION
from app.errors import BatchNotFoundError, BatchOwnershipError, ConflictError, ValidationError
from app.models.batch import (
    BatchCreate, BatchStatus, BatchUpdate, EDITABLE_STATUSES, ImportBatch, utc_now_iso,
)
from app.models.user import ActorContext
from app.services.catalog import DEFAULT_CATALOG, ImportCatalog


def default_batch_name() -> str:
    return f"Import {utc_now_iso()[:10]}"


class QuestionImportService:
    """Create, fetch, update and list import batches for an authenticated actor."""

    def __init__(self, db, catalog: ImportCatalog = DEFAULT_CATALOG):
        self.collection = db[IMPORT_BATCHES_COLLECTION]
        self.catalog = catalog

    async def create_batch(self, data: BatchCreate, actor: ActorContext) -> ImportBatch:
        if not self.catalog.is_subject_supported(data.subject_slug):
            raise ValidationError(f"Invalid subject: {data.subject_slug}")

        now = utc_now_iso()
        batch_doc = {
            "batch_id": str(uuid.uuid4()),
            "subject_slug": data.subject_slug.lower(),
            "batch_name": (data.batch_name or "").strip() or default_batch_name(),
            "status": BatchStatus.DRAFT.value,
            "parsed_questions": data.parsed_questions,
            "metadata": data.metadata,
            "created_by": actor.user_id,
            "created_at": now,
            "updated_at": now,
        }

        await self.collection.insert_one(batch_doc)
        batch_doc.pop("_id", None)

        logger.info(
            f"Created import batch {batch_doc['batch_id']} ({len(data.parsed_questions)} questions) "
            f"for {actor.user_id}"
        )
        return ImportBatch(**batch_doc)

    async def get_batch_by_id(self, batch_id: str, actor: ActorContext) -> Optional[ImportBatch]:
        doc = await self.collection.find_one({"batch_id": batch_id}, {"_id": 0})
        if not doc:
            return None
        return ImportBatch(**doc)

    async def update_batch(self, batch_id: str, patch: BatchUpdate, actor: ActorContext) -> ImportBatch:
        """
        Apply a review patch. Questions are replaced as a whole list; concurrent
        updates are last-write-wins. A committed batch is never modified.
        """
        existing = await self.get_batch_by_id(batch_id, actor)
        if existing is None:
            raise BatchNotFoundError("Batch not found")

        if existing.created_by != actor.user_id and not actor.is_elevated:
            raise BatchOwnershipError("You do not have permission to edit this batch")

        if not existing.is_editable:
            raise ConflictError(f"Batch is {existing.status} and can no longer be edited")

        if patch.status == BatchStatus.COMMITTED:
            raise ValidationError("Batches are committed by the commit step, not by review")

        update_fields = {"updated_at": utc_now_iso()}
        if patch.batch_name is not None and patch.batch_name.strip():
            update_fields["batch_name"] = patch.batch_name.strip()
        if patch.parsed_questions is not None:
            update_fields["parsed_questions"] = patch.parsed_questions
        if patch.status is not None:
            update_fields["status"] = BatchStatus(patch.status).value

        result = await self.collection.update_one(
            {"batch_id": batch_id, "status": {"$in": list(EDITABLE_STATUSES)}},
            {"$set": update_fields},
        )
        if result.matched_count == 0:
            # committed between the read and the write
            raise ConflictError("Batch was committed and can no longer be edited")

        logger.info(f"Updated import batch {batch_id} by {actor.user_id}: {sorted(update_fields)}")
        return ImportBatch(**{**existing.model_dump(), **update_fields})

    async def list_batches(self, actor: ActorContext, status: Optional[str] = None) -> List[ImportBatch]:
        query = {"created_by": actor.user_id}
        if status:
            query["status"] = status
        docs = await self.collection.find(query, {"_id": 0}).sort("created_at", -1).to_list(500)
        return [ImportBatch(**doc) for doc in docs]
