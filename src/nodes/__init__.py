"""Workflow node engine and the JoAi plugin nodes."""

from .context import HookContext
from .models import NodeConfig, NodeExecutionResult, NodeInstance, NodeStatus, NodeType
from .registry import NodeRegistry, node_registry

__all__ = [
    "HookContext",
    "NodeConfig",
    "NodeExecutionResult",
    "NodeInstance",
    "NodeStatus",
    "NodeType",
    "NodeRegistry",
    "node_registry",
]
