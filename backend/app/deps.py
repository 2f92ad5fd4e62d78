"""
FastAPI dependencies - get_current_user, get_import_actor, service wiring.
"""

from fastapi import Request, HTTPException, Depends
from datetime import datetime, timezone

from .database import get_database
from .models.user import User, ActorContext, IMPORT_ROLES
from .services.question_import import QuestionImportService
from .services.import_pipeline import ImportPipeline


async def get_current_user(request: Request, db=Depends(get_database)) -> User:
    """Get current user from the session token (cookie or Bearer header)"""
    session_token = request.cookies.get("session_token")

    if not session_token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            session_token = auth_header.split(" ")[1]

    if not session_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    session = await db.user_sessions.find_one(
        {"session_token": session_token},
        {"_id": 0}
    )

    if not session:
        raise HTTPException(status_code=401, detail="Invalid session")

    expires_at = session.get("expires_at")
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at)
    if expires_at is not None:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at < datetime.now(timezone.utc):
            raise HTTPException(status_code=401, detail="Session expired")

    user = await db.users.find_one(
        {"user_id": session["user_id"]},
        {"_id": 0}
    )

    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    account_status = user.get("account_status", "active")
    if account_status == "banned":
        raise HTTPException(
            status_code=403,
            detail="Your account has been banned. Contact support for assistance."
        )
    elif account_status == "disabled":
        raise HTTPException(
            status_code=403,
            detail="Your account has been temporarily disabled. Contact support for assistance."
        )

    return User(**user)


async def get_import_actor(user: User = Depends(get_current_user)) -> ActorContext:
    """Dependency to ensure the user may import and review questions"""
    if user.role not in IMPORT_ROLES:
        raise HTTPException(
            status_code=403,
            detail="Insufficient permissions. Question import requires a teacher or admin role."
        )
    return ActorContext.from_user(user)


def get_import_service(db=Depends(get_database)) -> QuestionImportService:
    return QuestionImportService(db)


def get_import_pipeline(service: QuestionImportService = Depends(get_import_service)) -> ImportPipeline:
    return ImportPipeline(service)
