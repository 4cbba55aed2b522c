"""
API v1 router.

Trigger management, inbound JoAi webhooks and health.
"""

from fastapi import APIRouter

from .endpoints import (
    health,
    joai_triggers,
    joai_webhook,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(joai_triggers.router, prefix="/joai", tags=["joai-triggers"])
api_router.include_router(joai_webhook.router, prefix="/joai", tags=["joai-webhooks"])
