"""Core functionality for the JoAi workflow integration."""

from .config import Settings, get_settings
from .exceptions import (
    BaseAPIException,
    JoaiApiError,
    NodeOperationError,
    WebhookRegistrationError,
)

__all__ = [
    "Settings",
    "get_settings",
    "BaseAPIException",
    "JoaiApiError",
    "NodeOperationError",
    "WebhookRegistrationError",
]
