"""Inbound webhook verification and routing."""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import ValidationError

from schemas.joai import EventEnvelope, TriggerFilters, WebhookResponseData
from .identity import received_secret_token, secrets_match

logger = logging.getLogger(__name__)

INVALID_SECRET_BODY = {"message": "Invalid webhook secret"}

# Payload fields copied to the top level of the item when present.
ALIAS_FIELDS = ("message_id", "content", "message", "sender", "room", "user")


def build_item(envelope: EventEnvelope, body: Mapping[str, Any]) -> Dict[str, Any]:
    """Project an accepted envelope into an execution item."""
    if envelope.webhookable is None and envelope.data is None:
        return dict(body)

    item: Dict[str, Any] = {
        "event": envelope.event,
        "timestamp": envelope.timestamp,
    }
    if envelope.webhookable is not None:
        item["agent"] = {
            "type": envelope.webhookable.type,
            "uuid": envelope.webhookable.uuid,
            "name": envelope.webhookable.name,
            "description": envelope.webhookable.description,
        }
    if envelope.webhook is not None:
        item["webhook"] = envelope.webhook

    raw_data = body.get("data") if isinstance(body.get("data"), dict) else {}
    item["data"] = dict(raw_data)

    for field in ALIAS_FIELDS:
        if field == "message_id":
            value = envelope.data.resolved_message_id if envelope.data else None
        else:
            value = raw_data.get(field)
        if value is not None:
            item[field] = value
    return item


class InboundWebhookRouter:
    """Decides whether one inbound callback is genuine and relevant.

    Authentication runs first; a wrong secret yields a 403 no matter what the
    body looks like. An absent or empty secret header counts as no secret.
    Everything else that fails (shape, event type, filters)
    is suppressed with a plain 200 so the remote service does not retry.
    """

    def __init__(
        self,
        expected_secret: Optional[str],
        triggers: Iterable[str],
        filters: Optional[TriggerFilters] = None,
        require_secret: bool = False
    ):
        self.expected_secret = expected_secret
        self.triggers = frozenset(triggers)
        self.filters = filters or TriggerFilters()
        self.require_secret = require_secret

    def authenticate(self, headers: Mapping[str, str]) -> bool:
        received = received_secret_token(headers)
        if not received:
            return not self.require_secret
        if not self.expected_secret:
            return False
        return secrets_match(self.expected_secret, received)

    def parse(self, body: Any) -> Optional[EventEnvelope]:
        if not isinstance(body, dict):
            return None
        try:
            return EventEnvelope.model_validate(body)
        except ValidationError as e:
            logger.debug(f"Malformed webhook payload: {e.error_count()} validation error(s)")
            return None

    def passes_filters(self, envelope: EventEnvelope) -> bool:
        filters = self.filters
        payload = envelope.data

        if filters.room is not None:
            if payload is None or payload.room_id != filters.room:
                return False

        if filters.message_contains is not None:
            text = payload.text if payload else None
            if text is None or filters.message_contains.lower() not in text.lower():
                return False

        if filters.sender_email is not None:
            if payload is None or payload.sender_email != filters.sender_email:
                return False

        return True

    def handle(self, headers: Mapping[str, str], body: Any) -> WebhookResponseData:
        if not self.authenticate(headers):
            logger.warning("Rejected webhook call with invalid secret token")
            return WebhookResponseData(accepted=False, status_code=403, body=dict(INVALID_SECRET_BODY))

        envelope = self.parse(body)
        if envelope is None:
            return WebhookResponseData(accepted=False)

        if envelope.event not in self.triggers:
            logger.debug(f"Ignoring event {envelope.event}, subscribed to {sorted(self.triggers)}")
            return WebhookResponseData(accepted=False)

        if not self.passes_filters(envelope):
            logger.debug(f"Event {envelope.event} suppressed by filters")
            return WebhookResponseData(accepted=False)

        return WebhookResponseData(accepted=True, items=[build_item(envelope, body)])
