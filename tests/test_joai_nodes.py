"""Tests for the JoAi nodes and trigger management."""

from unittest.mock import AsyncMock

import pytest

from core.exceptions import JoaiApiError, NodeOperationError, NotFoundError
from events.event_bus import TRIGGER_FIRED, EventBus
from nodes.context import HookContext
from nodes.implementations.joai_node import JoaiNode
from nodes.implementations.joai_trigger_node import JoaiTriggerNode
from nodes.models import NodeConfig, NodeInstance, NodeStatus, NodeType
from nodes.registry import node_registry
from nodes.template_utils import resolve_templates
from services.joai.trigger_manager import TriggerManager

from conftest import AGENT_ID, NODE_ID, NODE_SECRET, OLD_URL, TARGET_URL, WORKFLOW_ID, FakeDirectory, make_record


def send_config(**parameters) -> NodeConfig:
    params = {"operation": "send_message_as_user", "agent_id": AGENT_ID, "message": "hello", "room": "r1"}
    params.update(parameters)
    return NodeConfig(name="Send to JoAi", type=NodeType.JOAI, parameters=params)


def trigger_config(**parameters) -> NodeConfig:
    params = {"agent_id": AGENT_ID}
    params.update(parameters)
    return NodeConfig(id=NODE_ID, name="JoAi Trigger", type=NodeType.JOAI_TRIGGER, parameters=params)


@pytest.fixture
def client():
    mock = AsyncMock()
    mock.send_message_as_user.return_value = {"id": "run-1"}
    mock.send_message_as_agent.return_value = {"id": "run-2"}
    return mock


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def manager(settings, directory, bus) -> TriggerManager:
    return TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus)


class TestTemplates:
    """Test parameter template resolution"""

    def test_whole_placeholder_keeps_type(self):
        assert resolve_templates("{{count}}", {"count": 3}) == 3

    def test_embedded_placeholder(self):
        assert resolve_templates("Hi {{user.name}}!", {"user": {"name": "Ada"}}) == "Hi Ada!"

    def test_unresolved_left_as_is(self):
        assert resolve_templates({"a": ["{{missing}}"]}, {}) == {"a": ["{{missing}}"]}


class TestJoaiNode:
    """Test the send-message node"""

    @pytest.mark.asyncio
    async def test_send_as_user(self, client):
        node = JoaiNode(send_config(), client=client)

        output = await node.execute({}, {})

        client.send_message_as_user.assert_awaited_once_with(AGENT_ID, "hello", "r1")
        assert output == {"items": [{"id": "run-1"}], "count": 1}

    @pytest.mark.asyncio
    async def test_send_as_agent(self, client):
        node = JoaiNode(send_config(operation="send_message_as_agent", room=None), client=client)

        output = await node.execute({}, {})

        client.send_message_as_agent.assert_awaited_once_with(AGENT_ID, "hello", "")
        assert output["items"] == [{"id": "run-2"}]

    @pytest.mark.asyncio
    async def test_parameters_resolved_per_item(self, client):
        node = JoaiNode(send_config(message="{{text}}", room="{{room.id}}"), client=client)

        await node.execute({"items": [
            {"text": "first", "room": {"id": "r1"}},
            {"text": "second", "room": {"id": "r2"}},
        ]}, {})

        calls = [call.args for call in client.send_message_as_user.await_args_list]
        assert calls == [(AGENT_ID, "first", "r1"), (AGENT_ID, "second", "r2")]

    @pytest.mark.asyncio
    async def test_continue_on_fail_reports_per_item(self, client):
        client.send_message_as_user.side_effect = [JoaiApiError("JoAi API returned 500"), {"id": "run-3"}]
        node = JoaiNode(send_config(continue_on_fail=True), client=client)

        output = await node.execute({"items": [{}, {}]}, {})

        assert output["items"] == [{"error": "JoAi API returned 500"}, {"id": "run-3"}]
        assert output["count"] == 2

    @pytest.mark.asyncio
    async def test_failure_propagates_without_continue_on_fail(self, client):
        client.send_message_as_user.side_effect = JoaiApiError("JoAi API returned 500")
        node = JoaiNode(send_config(), client=client)

        with pytest.raises(JoaiApiError):
            await node.execute({"items": [{}, {}]}, {})
        assert client.send_message_as_user.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_agent_id(self, client):
        node = JoaiNode(send_config(agent_id=""), client=client)

        with pytest.raises(NodeOperationError, match="Agent ID is required"):
            await node.execute({}, {})

    @pytest.mark.asyncio
    async def test_unknown_operation(self, client):
        node = JoaiNode(send_config(operation="delete_agent"), client=client)

        with pytest.raises(NodeOperationError, match="Unknown operation"):
            await node.execute({}, {})

    @pytest.mark.asyncio
    async def test_run_reports_failure(self, client):
        client.send_message_as_user.side_effect = JoaiApiError("JoAi API returned 503")
        config = send_config()
        node = JoaiNode(config, client=client)
        instance = NodeInstance(node_config=config, workflow_instance_id=WORKFLOW_ID)

        result = await node.run(instance, {})

        assert result.status == NodeStatus.FAILED
        assert "503" in result.error

    @pytest.mark.asyncio
    async def test_run_completes(self, client):
        config = send_config()
        node = JoaiNode(config, client=client)
        instance = NodeInstance(node_config=config, workflow_instance_id=WORKFLOW_ID)

        result = await node.run(instance, {})

        assert result.status == NodeStatus.COMPLETED
        assert result.output_data["count"] == 1


class TestJoaiTriggerNode:
    """Test trigger node parameters and lifecycle"""

    def test_registry_resolves_trigger_node(self):
        assert isinstance(node_registry.create_node(trigger_config()), JoaiTriggerNode)
        assert isinstance(node_registry.create_node(send_config()), JoaiNode)

    def test_default_trigger(self, settings, directory):
        node = JoaiTriggerNode(trigger_config(), client=directory, settings=settings)
        ctx = HookContext(WORKFLOW_ID, node.config, TARGET_URL)
        assert node.get_triggers(ctx) == ["agent.message"]

    def test_trigger_list(self, settings, directory):
        node = JoaiTriggerNode(
            trigger_config(triggers=["user.message", "agent.action"]),
            client=directory,
            settings=settings,
        )
        ctx = HookContext(WORKFLOW_ID, node.config, TARGET_URL)
        assert node.get_triggers(ctx) == ["agent.action", "user.message"]

    @pytest.mark.asyncio
    async def test_missing_agent_id(self, settings, directory):
        node = JoaiTriggerNode(trigger_config(agent_id=""), client=directory, settings=settings)
        ctx = HookContext(WORKFLOW_ID, node.config, TARGET_URL)

        with pytest.raises(NodeOperationError, match="Agent ID is required"):
            await node.check_exists(ctx)
        assert directory.list_calls == 0

    @pytest.mark.asyncio
    async def test_lifecycle(self, settings, directory):
        node = JoaiTriggerNode(trigger_config(), client=directory, settings=settings)
        ctx = HookContext(WORKFLOW_ID, node.config, TARGET_URL)

        assert await node.check_exists(ctx) is False
        assert await node.create(ctx) is True
        assert await node.check_exists(ctx) is True

        report = await node.delete(ctx)

        assert report.deleted == ["wh_1"]
        assert directory.records == []

    def test_webhook_uses_node_filters(self, settings, directory):
        node = JoaiTriggerNode(trigger_config(room_filter="r1"), client=directory, settings=settings)
        ctx = HookContext(WORKFLOW_ID, node.config, TARGET_URL)
        headers = {"X-JoAi-Secret-Token": NODE_SECRET}

        accepted = node.webhook(ctx, headers, {"event": "agent.message", "data": {"message": "hi", "room": "r1"}})
        ignored = node.webhook(ctx, headers, {"event": "agent.message", "data": {"message": "hi", "room": "r2"}})

        assert accepted.accepted is True
        assert ignored.accepted is False


class TestTriggerManager:
    """Test trigger activation, inbound dispatch and deactivation"""

    def test_webhook_url(self, manager):
        assert manager.webhook_url(WORKFLOW_ID, NODE_ID) == TARGET_URL

    @pytest.mark.asyncio
    async def test_activate_creates_webhook(self, manager, directory):
        result = await manager.activate(WORKFLOW_ID, trigger_config())

        assert result.created is True
        assert result.webhook_id == "wh_1"
        assert result.webhook_url == TARGET_URL
        assert directory.created[0].headers == {"X-JoAi-Secret-Token": NODE_SECRET}
        assert [t.node_id for t in manager.list_active()] == [NODE_ID]

    @pytest.mark.asyncio
    async def test_activate_is_idempotent(self, settings, directory, bus):
        await TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus).activate(
            WORKFLOW_ID, trigger_config()
        )

        result = await TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus).activate(
            WORKFLOW_ID, trigger_config()
        )

        assert result.created is False
        assert result.webhook_id == "wh_1"
        assert len(directory.created) == 1

    @pytest.mark.asyncio
    async def test_activate_replaces_drifted_webhook(self, settings, bus):
        directory = FakeDirectory([make_record("old", OLD_URL, secret=NODE_SECRET)])
        manager = TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus)

        result = await manager.activate(WORKFLOW_ID, trigger_config())

        assert result.created is True
        assert directory.delete_attempts == ["old"]
        assert [r.url for r in directory.records] == [TARGET_URL]

    @pytest.mark.asyncio
    async def test_activate_rejects_action_node(self, manager):
        with pytest.raises(NodeOperationError):
            await manager.activate(WORKFLOW_ID, send_config())

    @pytest.mark.asyncio
    async def test_inbound_publishes_trigger_event(self, manager, bus):
        received = []
        bus.subscribe(TRIGGER_FIRED, lambda name, data: received.append(data))
        await manager.activate(WORKFLOW_ID, trigger_config())

        result = await manager.handle_inbound(
            WORKFLOW_ID,
            NODE_ID,
            {"x-joai-secret-token": NODE_SECRET},
            {"event": "agent.message", "data": {"message": "hi", "room": "r1"}},
        )

        assert result.accepted is True
        assert len(received) == 1
        assert received[0]["workflow_id"] == WORKFLOW_ID
        assert received[0]["items"][0]["message"] == "hi"

    @pytest.mark.asyncio
    async def test_rejected_inbound_publishes_nothing(self, manager, bus):
        received = []
        bus.subscribe(TRIGGER_FIRED, lambda name, data: received.append(data))
        await manager.activate(WORKFLOW_ID, trigger_config())

        result = await manager.handle_inbound(WORKFLOW_ID, NODE_ID, {"X-JoAi-Secret-Token": "forged"}, {})

        assert result.status_code == 403
        assert received == []

    @pytest.mark.asyncio
    async def test_unknown_trigger(self, manager):
        with pytest.raises(NotFoundError):
            await manager.handle_inbound(WORKFLOW_ID, "nope", {}, {})
        with pytest.raises(NotFoundError):
            await manager.deactivate(WORKFLOW_ID, "nope")

    @pytest.mark.asyncio
    async def test_deactivate(self, manager, directory):
        await manager.activate(WORKFLOW_ID, trigger_config())

        result = await manager.deactivate(WORKFLOW_ID, NODE_ID)

        assert result.report.deleted == ["wh_1"]
        assert directory.records == []
        assert manager.list_active() == []
        assert manager.store.peek(WORKFLOW_ID, NODE_ID) is None

    @pytest.mark.asyncio
    async def test_deactivate_survives_remote_failure(self, manager, directory):
        await manager.activate(WORKFLOW_ID, trigger_config())
        directory.fail_list = True

        result = await manager.deactivate(WORKFLOW_ID, NODE_ID)

        assert result.report.ok is False
        assert manager.list_active() == []

    @pytest.mark.asyncio
    async def test_random_secret_mode(self, settings, directory, bus):
        settings.JOAI_WEBHOOK_SECRET_MODE = "random"
        manager = TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus)
        await manager.activate(WORKFLOW_ID, trigger_config())

        secret = directory.created[0].headers["X-JoAi-Secret-Token"]
        body = {"event": "agent.message", "data": {"message": "hi"}}

        assert secret != NODE_SECRET
        assert manager.store.get(WORKFLOW_ID, NODE_ID).secret_token == secret
        forged = await manager.handle_inbound(WORKFLOW_ID, NODE_ID, {"X-JoAi-Secret-Token": NODE_SECRET}, body)
        genuine = await manager.handle_inbound(WORKFLOW_ID, NODE_ID, {"X-JoAi-Secret-Token": secret}, body)
        assert forged.status_code == 403
        assert genuine.accepted is True

    @pytest.mark.asyncio
    async def test_random_secret_survives_restart(self, settings, directory, bus):
        """A fresh manager reactivating the node keeps accepting the registered secret"""
        settings.JOAI_WEBHOOK_SECRET_MODE = "random"
        await TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus).activate(
            WORKFLOW_ID, trigger_config()
        )
        secret = directory.created[0].headers["X-JoAi-Secret-Token"]

        restarted = TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus)
        result = await restarted.activate(WORKFLOW_ID, trigger_config())
        response = await restarted.handle_inbound(
            WORKFLOW_ID,
            NODE_ID,
            {"X-JoAi-Secret-Token": secret},
            {"event": "agent.message", "data": {"message": "hi"}},
        )

        assert result.created is False
        assert len(directory.records) == 1
        assert restarted.store.get(WORKFLOW_ID, NODE_ID).secret_token == secret
        assert response.accepted is True

    @pytest.mark.asyncio
    async def test_random_secret_replaces_record_without_secret(self, settings, bus):
        settings.JOAI_WEBHOOK_SECRET_MODE = "random"
        directory = FakeDirectory([make_record("old", TARGET_URL)])
        manager = TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus)

        result = await manager.activate(WORKFLOW_ID, trigger_config())

        secret = manager.store.get(WORKFLOW_ID, NODE_ID).secret_token
        assert result.created is True
        assert directory.delete_attempts == ["old"]
        assert [r.secret_token for r in directory.records] == [secret]

    @pytest.mark.asyncio
    async def test_random_secret_lifecycle(self, settings, directory, bus):
        """Deactivation drops the secret; reactivation registers a new one"""
        settings.JOAI_WEBHOOK_SECRET_MODE = "random"
        manager = TriggerManager(settings=settings, client_factory=lambda: directory, bus=bus)
        await manager.activate(WORKFLOW_ID, trigger_config())
        first = directory.created[0].headers["X-JoAi-Secret-Token"]

        await manager.deactivate(WORKFLOW_ID, NODE_ID)
        await manager.activate(WORKFLOW_ID, trigger_config())
        second = directory.created[1].headers["X-JoAi-Secret-Token"]
        body = {"event": "agent.message", "data": {"message": "hi"}}

        old = await manager.handle_inbound(WORKFLOW_ID, NODE_ID, {"X-JoAi-Secret-Token": first}, body)
        new = await manager.handle_inbound(WORKFLOW_ID, NODE_ID, {"X-JoAi-Secret-Token": second}, body)

        assert second != first
        assert [r.id for r in directory.records] == ["wh_2"]
        assert old.status_code == 403
        assert new.accepted is True

    @pytest.mark.asyncio
    async def test_webhook_events(self, manager):
        events = await manager.get_webhook_events()
        assert "agent.message" in events
