"""Lifecycle context handed to trigger nodes."""

from dataclasses import dataclass, field
from typing import Any

from schemas.joai import NodeStaticData
from .models import NodeConfig


@dataclass
class HookContext:
    """What the host offers a trigger node during activation, deactivation and inbound calls."""
    workflow_id: str
    node: NodeConfig
    webhook_url: str
    static_data: NodeStaticData = field(default_factory=NodeStaticData)

    @property
    def node_id(self) -> str:
        return self.node.id

    def get_node_parameter(self, name: str, default: Any = None) -> Any:
        value = self.node.parameters.get(name, default)
        if value is None or (isinstance(value, str) and value == ""):
            return default
        return value
