"""API route registration."""

from fastapi import APIRouter
from .question_import import router as question_import_router


def register_all_routes(api_router: APIRouter):
    """Include all route modules on the main API router."""
    api_router.include_router(question_import_router)
