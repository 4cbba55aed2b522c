"""JoAi integration services: API client, webhook reconciliation and inbound routing."""

from .client import JoaiApiClient, WebhookDirectory
from .identity import SubscriptionIdentity, derive_secret_token, secrets_match
from .inbound import InboundWebhookRouter
from .reconciler import WebhookReconciler

__all__ = [
    "JoaiApiClient",
    "WebhookDirectory",
    "SubscriptionIdentity",
    "derive_secret_token",
    "secrets_match",
    "InboundWebhookRouter",
    "WebhookReconciler",
]
