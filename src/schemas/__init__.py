"""Pydantic schemas."""

from .common import ErrorResponse, HealthResponse
from .joai import (
    SECRET_TOKEN_HEADER,
    DEFAULT_WEBHOOK_EVENTS,
    EventType,
    WebhookRecord,
    WebhookRecordRequest,
    DeleteReport,
    Webhookable,
    EventPayload,
    EventEnvelope,
    TriggerFilters,
    WebhookResponseData,
    NodeStaticData,
    ActiveTriggerResponse,
    DeactivateTriggerResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "SECRET_TOKEN_HEADER",
    "DEFAULT_WEBHOOK_EVENTS",
    "EventType",
    "WebhookRecord",
    "WebhookRecordRequest",
    "DeleteReport",
    "Webhookable",
    "EventPayload",
    "EventEnvelope",
    "TriggerFilters",
    "WebhookResponseData",
    "NodeStaticData",
    "ActiveTriggerResponse",
    "DeactivateTriggerResponse",
]
