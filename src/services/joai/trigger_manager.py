"""Host-side orchestration of JoAi trigger nodes."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from core.config import Settings, get_settings
from core.exceptions import NodeOperationError, NotFoundError
from credentials.joai_api import JoaiApiCredentials
from events.event_bus import TRIGGER_FIRED, EventBus, event_bus
from nodes.context import HookContext
from nodes.implementations.joai_trigger_node import JoaiTriggerNode
from nodes.models import NodeConfig
from nodes.registry import NodeRegistry, node_registry
from nodes.state_manager import StaticDataStore
from schemas.joai import (
    DEFAULT_WEBHOOK_EVENTS,
    ActiveTriggerResponse,
    DeactivateTriggerResponse,
    WebhookResponseData,
)
from .client import JoaiApiClient, WebhookDirectory

logger = logging.getLogger(__name__)


@dataclass
class ActiveTrigger:
    workflow_id: str
    node: JoaiTriggerNode
    webhook_url: str

    @property
    def config(self) -> NodeConfig:
        return self.node.config


class TriggerManager:
    """Activates, deactivates and dispatches to JoAi trigger nodes.

    Owns the static data slot of every trigger node instance and the table of
    active triggers, keyed by (workflow id, node id).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Optional[Callable[[], WebhookDirectory]] = None,
        store: Optional[StaticDataStore] = None,
        bus: Optional[EventBus] = None,
        registry: Optional[NodeRegistry] = None
    ):
        self.settings = settings or get_settings()
        self._client_factory = client_factory
        self.store = store or StaticDataStore()
        self.bus = bus or event_bus
        self.registry = registry or node_registry
        self._active: Dict[Tuple[str, str], ActiveTrigger] = {}

    def webhook_url(self, workflow_id: str, node_id: str) -> str:
        """Public URL the JoAi service calls back for a trigger node."""
        base = self.settings.JOAI_WEBHOOK_BASE_URL.rstrip("/")
        return f"{base}{self.settings.API_V1_STR}/joai/webhook/{workflow_id}/{node_id}"

    def _client(self) -> WebhookDirectory:
        if self._client_factory is not None:
            return self._client_factory()
        return JoaiApiClient(
            JoaiApiCredentials.from_settings(self.settings),
            timeout=self.settings.JOAI_REQUEST_TIMEOUT,
        )

    def _create_trigger_node(self, config: NodeConfig) -> JoaiTriggerNode:
        try:
            node_class = self.registry.get_node_class(config)
        except ValueError as e:
            raise NodeOperationError(config.name, str(e)) from e
        if not issubclass(node_class, JoaiTriggerNode):
            raise NodeOperationError(config.name, f"{node_class.__name__} is not a JoAi trigger node")

        client = self._client_factory() if self._client_factory is not None else None
        return node_class(config, client=client, settings=self.settings)

    def _context(self, workflow_id: str, node: JoaiTriggerNode, webhook_url: str) -> HookContext:
        return HookContext(
            workflow_id=workflow_id,
            node=node.config,
            webhook_url=webhook_url,
            static_data=self.store.get(workflow_id, node.config.id),
        )

    def _get_active(self, workflow_id: str, node_id: str) -> ActiveTrigger:
        active = self._active.get((workflow_id, node_id))
        if active is None:
            raise NotFoundError(
                f"No active JoAi trigger for node {node_id} in workflow {workflow_id}",
                details={"workflow_id": workflow_id, "node_id": node_id}
            )
        return active

    async def activate(self, workflow_id: str, config: NodeConfig) -> ActiveTriggerResponse:
        """Make sure the node's remote subscription exists and start routing to it."""
        node = self._create_trigger_node(config)
        url = self.webhook_url(workflow_id, config.id)
        ctx = self._context(workflow_id, node, url)

        logger.info(f"Activating JoAi trigger {config.name} ({config.id}) in workflow {workflow_id}")
        created = False
        if not await node.check_exists(ctx):
            await node.create(ctx)
            created = True

        self._active[(workflow_id, config.id)] = ActiveTrigger(workflow_id, node, url)
        return ActiveTriggerResponse(
            workflow_id=workflow_id,
            node_id=config.id,
            node_name=config.name,
            webhook_url=url,
            agent_id=ctx.static_data.agent_id,
            webhook_id=ctx.static_data.webhook_id,
            created=created,
        )

    async def deactivate(self, workflow_id: str, node_id: str) -> DeactivateTriggerResponse:
        """Tear down the node's remote subscription. Never fails on remote errors."""
        active = self._get_active(workflow_id, node_id)
        ctx = self._context(workflow_id, active.node, active.webhook_url)

        report = await active.node.delete(ctx)
        del self._active[(workflow_id, node_id)]
        self.store.clear(workflow_id, node_id)

        logger.info(
            f"Deactivated JoAi trigger {node_id} in workflow {workflow_id}: "
            f"{len(report.deleted)} deleted, {report.failure_count} failure(s)"
        )
        return DeactivateTriggerResponse(workflow_id=workflow_id, node_id=node_id, report=report)

    async def handle_inbound(
        self,
        workflow_id: str,
        node_id: str,
        headers: Mapping[str, str],
        body: Any
    ) -> WebhookResponseData:
        """Route one inbound callback; accepted items are published on the event bus."""
        active = self._get_active(workflow_id, node_id)
        ctx = self._context(workflow_id, active.node, active.webhook_url)

        response = active.node.webhook(ctx, headers, body)
        if response.accepted:
            await self.bus.publish(
                TRIGGER_FIRED,
                {
                    "workflow_id": workflow_id,
                    "node_id": node_id,
                    "node_name": active.config.name,
                    "items": response.items,
                }
            )
        return response

    def list_active(self) -> List[ActiveTriggerResponse]:
        triggers = []
        for (workflow_id, node_id), active in sorted(self._active.items(), key=lambda kv: kv[0]):
            static_data = self.store.get(workflow_id, node_id)
            triggers.append(ActiveTriggerResponse(
                workflow_id=workflow_id,
                node_id=node_id,
                node_name=active.config.name,
                webhook_url=active.webhook_url,
                agent_id=static_data.agent_id,
                webhook_id=static_data.webhook_id,
            ))
        return triggers

    async def get_webhook_events(self) -> Dict[str, Any]:
        """Event types a trigger can subscribe to."""
        try:
            client = self._client()
        except ValueError as e:
            logger.info(f"Using default webhook events: {e}")
            return dict(DEFAULT_WEBHOOK_EVENTS)
        return await client.get_webhook_events()
