"""Inbound JoAi webhook endpoint.

POST /api/v1/joai/webhook/{workflow_id}/{node_id}

The JoAi service calls this URL for every subscribed event. The caller is
authenticated with the X-JoAi-Secret-Token header; events that are malformed
or filtered out are acknowledged with 200 so they are not redelivered.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from services.joai.trigger_manager import TriggerManager
from .joai_triggers import get_trigger_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook/{workflow_id}/{node_id}")
async def joai_webhook(
    workflow_id: str,
    node_id: str,
    request: Request,
    manager: TriggerManager = Depends(get_trigger_manager),
):
    """Receive one JoAi event for a trigger node."""
    raw_body = await request.body()
    try:
        body = json.loads(raw_body) if raw_body else None
    except ValueError:
        logger.debug(f"Non-JSON webhook body for node {node_id} in workflow {workflow_id}")
        body = None

    result = await manager.handle_inbound(workflow_id, node_id, dict(request.headers), body)

    if result.status_code != 200:
        return JSONResponse(status_code=result.status_code, content=result.body or {})
    if result.accepted:
        return {"message": "Workflow was started"}
    return {"message": "Event ignored"}
