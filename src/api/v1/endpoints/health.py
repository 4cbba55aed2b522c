"""Health check endpoints."""

from fastapi import APIRouter, Request

from core.config import get_settings
from events.event_bus import event_bus
from schemas.common import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Check system health."""
    settings = get_settings()
    manager = request.app.state.trigger_manager
    services = {
        "api": "ok",
        "event_bus": "ok" if event_bus.is_running else "stopped",
        "joai_credentials": "ok" if settings.JOAI_API_KEY else "missing",
        "active_triggers": str(len(manager.list_active())),
    }

    return HealthResponse(
        status="ok" if services["event_bus"] == "ok" and settings.JOAI_API_KEY else "degraded",
        version=settings.VERSION,
        services=services,
    )
