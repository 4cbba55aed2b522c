"""Pytest configuration for tests."""

import os
import sys
from typing import Dict, Iterable, List, Optional

import pytest

# Packages live under src/ (package_dir={"": "src"})
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

# Set test environment
os.environ["ENVIRONMENT"] = "test"

from core.config import Settings  # noqa: E402
from core.exceptions import JoaiApiError  # noqa: E402
from schemas.joai import SECRET_TOKEN_HEADER, WebhookRecord, WebhookRecordRequest  # noqa: E402


WORKFLOW_ID = "wf1"
NODE_ID = "node1"
AGENT_ID = "agent-1"
TARGET_URL = "https://hooks.example.com/api/v1/joai/webhook/wf1/node1"
OLD_URL = "https://old-tunnel.example.com/api/v1/joai/webhook/wf1/node1"
NODE_SECRET = "joai_wf1_node1"


def make_record(
    record_id: str,
    url: str,
    secret: Optional[str] = None,
    trigger: str = "agent.message"
) -> WebhookRecord:
    headers = {SECRET_TOKEN_HEADER: secret} if secret else {}
    return WebhookRecord(id=record_id, url=url, trigger=trigger, headers=headers, name="Workflow Webhook")


class FakeDirectory:
    """In-memory stand-in for the remote JoAi webhook directory."""

    def __init__(
        self,
        records: Optional[List[WebhookRecord]] = None,
        fail_list: bool = False,
        fail_create: bool = False,
        fail_delete_ids: Iterable[str] = ()
    ):
        self.records = list(records or [])
        self.fail_list = fail_list
        self.fail_create = fail_create
        self.fail_delete_ids = set(fail_delete_ids)
        self.created: List[WebhookRecordRequest] = []
        self.delete_attempts: List[str] = []
        self.list_calls = 0
        self._next_id = 1

    async def list_webhooks(self, agent_id: str) -> List[WebhookRecord]:
        self.list_calls += 1
        if self.fail_list:
            raise JoaiApiError("JoAi API request failed: ConnectError: unreachable")
        return list(self.records)

    async def create_webhook(self, agent_id: str, request: WebhookRecordRequest) -> WebhookRecord:
        if self.fail_create:
            raise JoaiApiError("JoAi API returned 400 for POST /agents/agent-1/webhooks", status_code=400)
        self.created.append(request)
        record = WebhookRecord.model_validate({"id": f"wh_{self._next_id}", **request.to_wire()})
        self._next_id += 1
        self.records.append(record)
        return record

    async def delete_webhook(self, agent_id: str, webhook_id: str) -> None:
        self.delete_attempts.append(webhook_id)
        if webhook_id in self.fail_delete_ids:
            raise JoaiApiError(f"JoAi API returned 500 for DELETE /agents/{agent_id}/webhooks/{webhook_id}", status_code=500)
        self.records = [r for r in self.records if r.id != webhook_id]

    async def get_webhook_events(self) -> Dict[str, Dict[str, str]]:
        return {"agent.message": {"value": "agent.message", "label": "Agent Message"}}


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        JOAI_API_KEY="test-key",
        JOAI_BASE_URL="https://api.joai.test",
        JOAI_WEBHOOK_BASE_URL="https://hooks.example.com",
    )


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()
