"""JoAi trigger node: starts workflows from JoAi webhook events."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..base_node import BaseNode
from ..context import HookContext
from ..models import NodeConfig
from core.config import Settings, get_settings
from core.exceptions import NodeOperationError
from credentials.joai_api import JoaiApiCredentials
from schemas.joai import DeleteReport, EventType, TriggerFilters, WebhookResponseData
from services.joai.client import JoaiApiClient, WebhookDirectory
from services.joai.identity import SubscriptionIdentity, resolve_secret_token
from services.joai.inbound import InboundWebhookRouter
from services.joai.reconciler import WebhookReconciler


logger = logging.getLogger(__name__)


class JoaiTriggerNode(BaseNode):
    """Trigger node that receives JoAi webhook events.

    Parameters:
    - agent_id: agent whose events are subscribed to (required)
    - triggers / trigger_type: event types, defaults to agent.message
    - room_filter, message_contains, sender_email: optional filters
    - webhook_name: name of the remote subscription
    """

    def __init__(
        self,
        config: NodeConfig,
        client: Optional[WebhookDirectory] = None,
        settings: Optional[Settings] = None
    ):
        super().__init__(config)
        self._client = client
        self.settings = settings or get_settings()

    @property
    def client(self) -> WebhookDirectory:
        if self._client is None:
            try:
                credentials = JoaiApiCredentials.from_settings(self.settings)
            except ValueError as e:
                raise NodeOperationError(self.config.name, str(e)) from e
            self._client = JoaiApiClient(credentials, timeout=self.settings.JOAI_REQUEST_TIMEOUT)
        return self._client

    # -- parameters -------------------------------------------------------

    def get_agent_id(self, ctx: HookContext) -> str:
        agent_id = ctx.get_node_parameter("agent_id")
        if not agent_id:
            raise NodeOperationError(self.config.name, "Agent ID is required")
        return str(agent_id)

    def get_triggers(self, ctx: HookContext) -> List[str]:
        triggers = ctx.get_node_parameter("triggers")
        if isinstance(triggers, str):
            triggers = [triggers]
        if triggers:
            return sorted({str(t) for t in triggers if t})
        return [str(ctx.get_node_parameter("trigger_type", EventType.AGENT_MESSAGE.value))]

    def get_filters(self, ctx: HookContext) -> TriggerFilters:
        return TriggerFilters(
            room=ctx.get_node_parameter("room_filter"),
            message_contains=ctx.get_node_parameter("message_contains"),
            sender_email=ctx.get_node_parameter("sender_email"),
        )

    def secret_token(self, ctx: HookContext, generate: bool = False) -> Optional[str]:
        return resolve_secret_token(
            ctx.workflow_id,
            ctx.node_id,
            ctx.static_data,
            mode=self.settings.JOAI_WEBHOOK_SECRET_MODE,
            generate=generate,
        )

    def build_identity(self, ctx: HookContext, generate: bool = False) -> SubscriptionIdentity:
        return SubscriptionIdentity.build(
            agent_id=self.get_agent_id(ctx),
            target_url=ctx.webhook_url,
            secret_token=self.secret_token(ctx, generate=generate) or "",
            triggers=self.get_triggers(ctx),
            name=ctx.get_node_parameter("webhook_name", self.settings.JOAI_WEBHOOK_NAME),
            description=self.settings.JOAI_WEBHOOK_DESCRIPTION,
        )

    def _reconciler(self, ctx: HookContext, generate: bool = False) -> WebhookReconciler:
        return WebhookReconciler(
            self.client,
            self.build_identity(ctx, generate=generate),
            ctx.static_data,
            self.settings,
        )

    # -- webhook lifecycle ------------------------------------------------

    async def check_exists(self, ctx: HookContext) -> bool:
        return await self._reconciler(ctx).check_exists()

    async def create(self, ctx: HookContext) -> bool:
        await self._reconciler(ctx, generate=True).create()
        return True

    async def delete(self, ctx: HookContext) -> DeleteReport:
        return await self._reconciler(ctx).delete()

    def webhook(
        self,
        ctx: HookContext,
        headers: Mapping[str, str],
        body: Any
    ) -> WebhookResponseData:
        """Verify and route one inbound callback."""
        router = InboundWebhookRouter(
            expected_secret=self.secret_token(ctx),
            triggers=self.get_triggers(ctx),
            filters=self.get_filters(ctx),
            require_secret=self.settings.JOAI_REQUIRE_WEBHOOK_SECRET,
        )
        return router.handle(headers, body)

    async def execute(self, input_data: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """Pass the trigger items on to the next node."""
        items = input_data.get("items")
        if not isinstance(items, list):
            items = [input_data] if input_data else []
        return {"items": items, "count": len(items)}
