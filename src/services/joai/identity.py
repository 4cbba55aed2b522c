"""Subscription identity and shared-secret handling for JoAi trigger webhooks.

The secret token a trigger embeds in its remote subscription is, by default,
derived from the (workflow, node) pair: ``joai_{workflow_id}_{node_id}``. It
needs no storage and survives restarts, but anyone who knows both ids can
forge it. ``random`` mode instead generates a high-entropy secret on first
registration and keeps it in the node's static data.
"""

import hmac
import secrets
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Mapping, Optional

from schemas.joai import SECRET_TOKEN_HEADER, NodeStaticData

logger = logging.getLogger(__name__)

SECRET_MODE_DERIVED = "derived"
SECRET_MODE_RANDOM = "random"


def derive_secret_token(workflow_id: str, node_id: str) -> str:
    """Deterministic secret for a (workflow, node) pair."""
    return f"joai_{workflow_id}_{node_id}"


def generate_secret_token() -> str:
    """Random secret used in ``random`` mode."""
    return f"joai_{secrets.token_urlsafe(32)}"


def resolve_secret_token(
    workflow_id: str,
    node_id: str,
    static_data: Optional[NodeStaticData] = None,
    mode: str = SECRET_MODE_DERIVED,
    generate: bool = False
) -> Optional[str]:
    """Secret token for a trigger node under the configured mode.

    In ``random`` mode the stored secret is returned; when none is stored yet
    and ``generate`` is set (registration time) a new one is created and
    written into ``static_data``.
    """
    if mode != SECRET_MODE_RANDOM:
        return derive_secret_token(workflow_id, node_id)

    if static_data is None:
        raise ValueError("random secret mode requires node static data")
    if not static_data.secret_token and generate:
        static_data.secret_token = generate_secret_token()
        logger.info(f"Generated webhook secret for node {node_id} in workflow {workflow_id}")
    return static_data.secret_token


def secrets_match(expected: str, received: str) -> bool:
    """Compare two secrets in constant time with respect to their content.

    Both values are encoded and passed whole to ``hmac.compare_digest``,
    which inspects every byte of equal-length inputs.
    """
    expected_bytes = expected.encode("utf-8")
    received_bytes = str(received).encode("utf-8")
    return hmac.compare_digest(expected_bytes, received_bytes)


def get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def received_secret_token(headers: Mapping[str, str]) -> Optional[str]:
    return get_header(headers, SECRET_TOKEN_HEADER)


@dataclass(frozen=True)
class SubscriptionIdentity:
    """The webhook subscription one trigger node instance wants to exist."""
    owner_agent_id: str
    target_url: str
    secret_token: str
    triggers: FrozenSet[str] = field(default_factory=frozenset)
    name: str = "Workflow Webhook"
    description: Optional[str] = None

    @classmethod
    def build(
        cls,
        agent_id: str,
        target_url: str,
        secret_token: str,
        triggers: Iterable[str] = (),
        name: str = "Workflow Webhook",
        description: Optional[str] = None
    ) -> "SubscriptionIdentity":
        return cls(
            owner_agent_id=agent_id,
            target_url=target_url,
            secret_token=secret_token,
            triggers=frozenset(triggers),
            name=name,
            description=description,
        )

    @property
    def secret_headers(self) -> dict:
        return {SECRET_TOKEN_HEADER: self.secret_token}
