"""User-related Pydantic models"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime, timezone

# Roles allowed to import and review questions
IMPORT_ROLES = ("admin", "super_admin", "teacher")
# Roles that may edit batches created by someone else
ELEVATED_ROLES = ("admin", "super_admin")


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")
    user_id: str
    email: str
    name: str
    picture: Optional[str] = None
    role: str = "teacher"  # admin, super_admin, teacher, school_admin, student
    school_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ActorContext(BaseModel):
    """Authenticated actor identity handed to the import services."""
    user_id: str
    role: str
    email: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "ActorContext":
        return cls(user_id=user.user_id, role=user.role, email=user.email)

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES
