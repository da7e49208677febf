"""
API routes package.

Collects the public subscription endpoints, the machine-oriented publish
endpoint and the session-gated admin pages into one router.
"""

from fastapi import APIRouter

from src.api.routes import admin, newsletters, subscriptions

router = APIRouter()
router.include_router(subscriptions.router)
router.include_router(newsletters.router)
router.include_router(admin.router)

__all__ = ["router"]
