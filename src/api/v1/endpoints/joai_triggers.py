"""JoAi trigger management endpoints."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request

from nodes.models import NodeConfig
from schemas.joai import ActiveTriggerResponse, DeactivateTriggerResponse
from services.joai.trigger_manager import TriggerManager

router = APIRouter()


def get_trigger_manager(request: Request) -> TriggerManager:
    return request.app.state.trigger_manager


@router.get("/triggers", response_model=List[ActiveTriggerResponse])
async def list_triggers(manager: TriggerManager = Depends(get_trigger_manager)):
    """List active JoAi triggers."""
    return manager.list_active()


@router.post("/triggers/{workflow_id}", response_model=ActiveTriggerResponse)
async def activate_trigger(
    workflow_id: str,
    config: NodeConfig,
    manager: TriggerManager = Depends(get_trigger_manager),
):
    """Activate a trigger node, registering its webhook with JoAi when needed."""
    return await manager.activate(workflow_id, config)


@router.delete("/triggers/{workflow_id}/{node_id}", response_model=DeactivateTriggerResponse)
async def deactivate_trigger(
    workflow_id: str,
    node_id: str,
    manager: TriggerManager = Depends(get_trigger_manager),
):
    """Deactivate a trigger node and remove its webhook from JoAi."""
    return await manager.deactivate(workflow_id, node_id)


@router.get("/events")
async def list_webhook_events(
    manager: TriggerManager = Depends(get_trigger_manager),
) -> Dict[str, Any]:
    """Event types a JoAi trigger can subscribe to."""
    return await manager.get_webhook_events()
