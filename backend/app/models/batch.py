"""Import batch Pydantic models"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BatchStatus(str, Enum):
    DRAFT = "draft"
    REVIEWED = "reviewed"
    COMMITTED = "committed"


EDITABLE_STATUSES = (BatchStatus.DRAFT.value, BatchStatus.REVIEWED.value)


class ImportBatch(BaseModel):
    """Stored import batch. Built from the Mongo document (snake_case), served camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    batch_id: str
    subject_slug: str
    batch_name: str
    status: BatchStatus = BatchStatus.DRAFT
    parsed_questions: List[Dict[str, Any]] = []
    metadata: Dict[str, Any] = {}
    created_by: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES


class BatchCreate(BaseModel):
    subject_slug: str
    batch_name: Optional[str] = None
    parsed_questions: List[Dict[str, Any]]
    metadata: Dict[str, Any] = {}
    created_by: str


class BatchUpdate(BaseModel):
    """Review patch: questions are a whole-list replacement."""
    batch_name: Optional[str] = None
    parsed_questions: Optional[List[Dict[str, Any]]] = None
    status: Optional[BatchStatus] = None


class ReviewSubmission(BaseModel):
    """Body of POST /questions/import/review"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    batch_id: str = Field(min_length=1)
    questions: List[Dict[str, Any]]
    batch_name: Optional[str] = None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
