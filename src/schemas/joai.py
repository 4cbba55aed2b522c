"""JoAi webhook and event schemas."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


SECRET_TOKEN_HEADER = "X-JoAi-Secret-Token"


class EventType(str, Enum):
    """Event types the JoAi service can deliver."""
    AGENT_ACTION = "agent.action"
    AGENT_MESSAGE = "agent.message"
    USER_MESSAGE = "user.message"


DEFAULT_WEBHOOK_EVENTS: Dict[str, Dict[str, str]] = {
    EventType.AGENT_ACTION.value: {"value": EventType.AGENT_ACTION.value, "label": "Agent Action"},
    EventType.AGENT_MESSAGE.value: {"value": EventType.AGENT_MESSAGE.value, "label": "Agent Message"},
    EventType.USER_MESSAGE.value: {"value": EventType.USER_MESSAGE.value, "label": "User Message"},
}


# ---------------------------------------------------------------------------
# Remote webhook directory
# ---------------------------------------------------------------------------

class WebhookRecord(BaseModel):
    """A webhook subscription as the JoAi service reports it.

    Older API revisions carry a single ``trigger``; newer ones a ``triggers``
    list. Both are folded into :attr:`trigger_set`.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    url: str = ""
    name: Optional[str] = None
    trigger: Optional[str] = None
    triggers: Optional[List[str]] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if v is None or v == "":
            raise ValueError("webhook id is required")
        return str(v)

    @field_validator("headers", mode="before")
    @classmethod
    def coerce_headers(cls, v):
        if not v:
            return {}
        return {str(k): str(val) for k, val in dict(v).items()}

    @property
    def trigger_set(self) -> frozenset:
        events = set(self.triggers or [])
        if self.trigger:
            events.add(self.trigger)
        return frozenset(events)

    @property
    def secret_token(self) -> Optional[str]:
        """Value of the secret token header, looked up case-insensitively."""
        wanted = SECRET_TOKEN_HEADER.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class WebhookRecordRequest(BaseModel):
    """Body for creating a webhook subscription."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    triggers: List[str] = Field(..., min_length=1)
    headers: Dict[str, str] = Field(default_factory=dict)
    active: bool = True
    description: Optional[str] = None
    verify_ssl: bool = Field(True, alias="verifySsl")
    timeout: int = Field(30, ge=1, le=300)
    max_retries: int = Field(3, alias="maxRetries", ge=0, le=10)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the remote API.

        A single event is sent as ``trigger`` (the shape every API revision
        accepts), several as ``triggers``.
        """
        body = self.model_dump(by_alias=True, exclude={"triggers"}, exclude_none=True)
        if len(self.triggers) == 1:
            body["trigger"] = self.triggers[0]
        else:
            body["triggers"] = sorted(self.triggers)
        return body


class DeleteReport(BaseModel):
    """Outcome of a best-effort teardown pass."""
    listed: int = 0
    matched: int = 0
    deleted: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    list_error: Optional[str] = None

    @property
    def failure_count(self) -> int:
        return len(self.failed) + (1 if self.list_error else 0)

    @property
    def ok(self) -> bool:
        return self.failure_count == 0


# ---------------------------------------------------------------------------
# Inbound events
# ---------------------------------------------------------------------------

class Webhookable(BaseModel):
    """The entity (usually the agent) that emitted the event."""
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    uuid: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class EventPayload(BaseModel):
    """Event specific data. Every field is optional; unknown keys are kept."""
    model_config = ConfigDict(extra="allow")

    id: Optional[Any] = None
    message_id: Optional[Any] = None
    content: Optional[Any] = None
    message: Optional[Any] = None
    room: Optional[Any] = None
    sender: Optional[Any] = None
    user: Optional[Any] = None

    @property
    def room_id(self) -> Optional[str]:
        if isinstance(self.room, dict):
            value = self.room.get("uuid") or self.room.get("id")
            return str(value) if value is not None else None
        if self.room is None:
            return None
        return str(self.room)

    @property
    def text(self) -> Optional[str]:
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.message, str):
            return self.message
        if isinstance(self.message, dict):
            value = self.message.get("content") or self.message.get("text")
            return value if isinstance(value, str) else None
        return None

    @property
    def sender_email(self) -> Optional[str]:
        for candidate in (self.sender, self.user):
            if isinstance(candidate, dict) and candidate.get("email"):
                return str(candidate["email"])
        if isinstance(self.sender, str) and "@" in self.sender:
            return self.sender
        return None

    @property
    def resolved_message_id(self) -> Optional[Any]:
        if self.message_id is not None:
            return self.message_id
        if isinstance(self.message, dict) and self.message.get("id") is not None:
            return self.message["id"]
        return self.id


class EventEnvelope(BaseModel):
    """Inbound JSON body of a webhook callback."""
    model_config = ConfigDict(extra="allow")

    event: str = Field(..., min_length=1)
    timestamp: Optional[Any] = None
    webhookable: Optional[Webhookable] = None
    webhook: Optional[Any] = None
    data: Optional[EventPayload] = None

    @field_validator("event")
    @classmethod
    def event_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("event must not be blank")
        return v


class TriggerFilters(BaseModel):
    """Optional predicates an event must satisfy. Unset means "match all"."""
    room: Optional[str] = None
    message_contains: Optional[str] = None
    sender_email: Optional[str] = None

    @field_validator("room", "message_contains", "sender_email", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class WebhookResponseData(BaseModel):
    """What a trigger hands back to the host for one inbound call."""
    accepted: bool
    items: List[Dict[str, Any]] = Field(default_factory=list)
    status_code: int = 200
    body: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Node-instance storage and trigger management
# ---------------------------------------------------------------------------

class NodeStaticData(BaseModel):
    """Node-instance scoped storage slot offered by the host."""
    webhook_id: Optional[str] = None
    agent_id: Optional[str] = None
    secret_token: Optional[str] = None


class ActiveTriggerResponse(BaseModel):
    """An activated trigger node."""
    workflow_id: str
    node_id: str
    node_name: str
    webhook_url: str
    agent_id: Optional[str] = None
    webhook_id: Optional[str] = None
    created: bool = False


class DeactivateTriggerResponse(BaseModel):
    """Result of deactivating a trigger node."""
    workflow_id: str
    node_id: str
    report: DeleteReport
