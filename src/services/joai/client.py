"""HTTP client for the JoAi API."""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError

from core.config import get_settings
from core.exceptions import JoaiApiError
from credentials.joai_api import JoaiApiCredentials
from schemas.joai import DEFAULT_WEBHOOK_EVENTS, WebhookRecord, WebhookRecordRequest

logger = logging.getLogger(__name__)


class WebhookDirectory(Protocol):
    """Remote webhook subscriptions of one agent."""

    async def list_webhooks(self, agent_id: str) -> List[WebhookRecord]: ...

    async def create_webhook(
        self,
        agent_id: str,
        request: WebhookRecordRequest
    ) -> Optional[WebhookRecord]: ...

    async def delete_webhook(self, agent_id: str, webhook_id: str) -> None: ...


class JoaiApiClient:
    """Client for the JoAi agent API.

    Covers the webhook directory (list/create/delete), the webhook event
    catalogue and the message execution endpoints. Every call opens its own
    ``httpx.AsyncClient``; failures surface as :class:`JoaiApiError`.
    """

    def __init__(
        self,
        credentials: JoaiApiCredentials,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.credentials = credentials
        self.timeout = timeout if timeout is not None else get_settings().JOAI_REQUEST_TIMEOUT
        self._transport = transport

    async def api_request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Make an authenticated request and return the decoded JSON body."""
        normalized = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        url = f"{self.credentials.base_url}{normalized}"

        logger.info(
            f"JoAi API request: {method} {url} "
            f"(body keys: {sorted(body.keys()) if body else []})"
        )

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    json=body if body else None,
                    params=params or None,
                    headers=self.credentials.auth_headers(),
                    timeout=self.timeout
                )
                response.raise_for_status()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"JoAi API error: {method} {url} returned {status}")
            raise JoaiApiError(
                f"JoAi API returned {status} for {method} {normalized}",
                status_code=status,
                details={"method": method, "url": url, "response": e.response.text[:500]}
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"JoAi API transport error: {method} {url}: {type(e).__name__}: {e}")
            raise JoaiApiError(
                f"JoAi API request failed: {type(e).__name__}: {e}",
                details={"method": method, "url": url}
            ) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    # -- webhook directory ------------------------------------------------

    async def list_webhooks(self, agent_id: str) -> List[WebhookRecord]:
        """List every webhook subscription registered for an agent."""
        response = await self.api_request("GET", f"/agents/{agent_id}/webhooks")
        raw = response.get("data") if isinstance(response, dict) else response
        if not isinstance(raw, list):
            return []

        records = []
        for item in raw:
            try:
                records.append(WebhookRecord.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed webhook record for agent {agent_id}: {e}")
        return records

    async def create_webhook(
        self,
        agent_id: str,
        request: WebhookRecordRequest
    ) -> Optional[WebhookRecord]:
        """Register a webhook subscription.

        Returns the created record, or None when the API acknowledged the
        request without echoing a record id.
        """
        response = await self.api_request(
            "POST",
            f"/agents/{agent_id}/webhooks",
            body=request.to_wire()
        )
        data = response.get("data", response) if isinstance(response, dict) else None
        if not isinstance(data, dict) or data.get("id") in (None, ""):
            return None

        payload = {**request.to_wire(), **data}
        return WebhookRecord.model_validate(payload)

    async def delete_webhook(self, agent_id: str, webhook_id: str) -> None:
        await self.api_request("DELETE", f"/agents/{agent_id}/webhooks/{webhook_id}")

    async def get_webhook_events(self) -> Dict[str, Any]:
        """Event catalogue, falling back to the built-in list."""
        try:
            response = await self.api_request("GET", "/webhooks/events")
        except JoaiApiError as e:
            logger.info(f"Using default webhook events: {e.message}")
            return dict(DEFAULT_WEBHOOK_EVENTS)

        events = None
        if isinstance(response, dict) and isinstance(response.get("data"), dict):
            events = response["data"].get("events")
        return events or dict(DEFAULT_WEBHOOK_EVENTS)

    # -- messaging --------------------------------------------------------

    async def send_message_as_user(self, agent_id: str, message: str, room: str) -> Any:
        """Send a message as a user to an agent."""
        response = await self.api_request(
            "POST",
            f"/agents/{agent_id}/execute",
            body={"message": message, "room": room}
        )
        return _unwrap(response)

    async def send_message_as_agent(self, agent_id: str, message: str, room: str = "") -> Any:
        """Send a message as an agent to a room."""
        response = await self.api_request(
            "POST",
            f"/agents/{agent_id}/execute/as-agent",
            body={"message": message, "room": room}
        )
        return _unwrap(response)


def _unwrap(response: Any) -> Any:
    if isinstance(response, dict) and response.get("data"):
        return response["data"]
    return response
