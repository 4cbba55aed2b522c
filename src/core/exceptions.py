"""Custom exceptions for the application."""

from typing import Any, Dict, Optional


class BaseAPIException(Exception):
    """Base exception for all API exceptions."""

    def __init__(
        self,
        message: str = "An error occurred",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(BaseAPIException):
    """Raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 404, details)


class JoaiApiError(BaseAPIException):
    """Raised when a call to the JoAi API fails.

    Wraps both transport failures (no response, reported as 502) and
    non-2xx answers from the remote service (reported with the remote status).
    """

    def __init__(
        self,
        message: str = "JoAi API request failed",
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, status_code, details)


class WebhookRegistrationError(BaseAPIException):
    """Raised when the remote webhook subscription cannot be created."""

    def __init__(self, message: str = "Failed to create webhook", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 502, details)


class NodeOperationError(BaseAPIException):
    """Raised when a node is misconfigured (missing or invalid parameters)."""

    def __init__(
        self,
        node_name: str,
        message: str = "Node operation failed",
        details: Optional[Dict[str, Any]] = None
    ):
        full_details = details or {}
        full_details["node_name"] = node_name
        super().__init__(message, 422, full_details)
        self.node_name = node_name
