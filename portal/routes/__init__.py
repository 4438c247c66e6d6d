"""API routes for the telemedicine portal."""

from fastapi import APIRouter

from .auth import router as auth_router
from .chat import router as chat_router
from .notifications import router as notifications_router
from .views import router as views_router

api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(chat_router)
api_router.include_router(notifications_router)

__all__ = ["api_router", "views_router"]
