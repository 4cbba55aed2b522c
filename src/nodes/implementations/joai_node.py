"""JoAi action node: send messages to and from JoAi agents."""

import logging
from typing import Any, Dict, List, Optional

from ..base_node import BaseNode
from ..models import NodeConfig
from ..template_utils import resolve_templates
from core.exceptions import NodeOperationError
from credentials.joai_api import JoaiApiCredentials
from services.joai.client import JoaiApiClient


logger = logging.getLogger(__name__)

OPERATION_SEND_AS_USER = "send_message_as_user"
OPERATION_SEND_AS_AGENT = "send_message_as_agent"


class JoaiNode(BaseNode):
    """Interact with JoAi agents.

    Operations:
    - send_message_as_user: POST /agents/{agent_id}/execute
    - send_message_as_agent: POST /agents/{agent_id}/execute/as-agent

    Every input item is processed on its own; parameters may reference item
    fields with ``{{path}}`` templates. With ``continue_on_fail`` a failing
    item yields ``{"error": ...}`` instead of aborting the batch.
    """

    def __init__(self, config: NodeConfig, client: Optional[JoaiApiClient] = None):
        super().__init__(config)
        self._client = client

    @property
    def client(self) -> JoaiApiClient:
        if self._client is None:
            try:
                credentials = JoaiApiCredentials.from_settings()
            except ValueError as e:
                raise NodeOperationError(self.config.name, str(e)) from e
            self._client = JoaiApiClient(credentials)
        return self._client

    async def execute(self, input_data: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """Run the configured operation once per input item."""
        items = input_data.get("items")
        if not isinstance(items, list) or not items:
            items = [input_data]

        continue_on_fail = bool(self.config.parameters.get("continue_on_fail", False))
        results: List[Dict[str, Any]] = []

        for index, item in enumerate(items):
            try:
                result = await self._execute_item(item if isinstance(item, dict) else {"value": item})
                results.append(result if isinstance(result, dict) else {"result": result})
            except Exception as e:
                if continue_on_fail:
                    logger.warning(f"JoAi node {self.config.name} item {index} failed: {e}")
                    results.append({"error": str(e) or "Unknown error"})
                    continue
                raise

        return {"items": results, "count": len(results)}

    def _item_parameters(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return resolve_templates(self.config.parameters, {**item, "json": item})

    async def _execute_item(self, item: Dict[str, Any]) -> Any:
        params = self._item_parameters(item)
        operation = params.get("operation", OPERATION_SEND_AS_USER)

        agent_id = params.get("agent_id")
        if not agent_id:
            raise NodeOperationError(self.config.name, "Agent ID is required")
        message = params.get("message")
        if message is None or message == "":
            raise NodeOperationError(self.config.name, "Message is required")
        room = params.get("room") or ""

        if operation == OPERATION_SEND_AS_USER:
            return await self.client.send_message_as_user(str(agent_id), str(message), str(room))
        elif operation == OPERATION_SEND_AS_AGENT:
            return await self.client.send_message_as_agent(str(agent_id), str(message), str(room))

        raise NodeOperationError(
            self.config.name,
            f"Unknown operation: {operation}",
            details={"supported": [OPERATION_SEND_AS_USER, OPERATION_SEND_AS_AGENT]}
        )
