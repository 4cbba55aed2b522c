"""Node registry for managing node types."""

import logging
from typing import Dict, Type

from .base_node import BaseNode
from .models import NodeType, NodeConfig
from .implementations import JoaiNode, JoaiTriggerNode


logger = logging.getLogger(__name__)


class NodeRegistry:
    """Registry for node types and implementations."""

    def __init__(self):
        self._node_classes: Dict[NodeType, Type[BaseNode]] = {}
        self._register_default_nodes()

    def _register_default_nodes(self):
        """Register default node implementations."""
        self.register_node_class(NodeType.JOAI, JoaiNode)
        self.register_node_class(NodeType.JOAI_TRIGGER, JoaiTriggerNode)

        logger.info("Default node types registered")

    def register_node_class(
        self,
        node_type: NodeType,
        node_class: Type[BaseNode]
    ):
        """Register a node class for a node type."""
        if not issubclass(node_class, BaseNode):
            raise ValueError(f"{node_class} must be a subclass of BaseNode")

        self._node_classes[node_type] = node_class
        logger.debug(f"Registered node class {node_class.__name__} for type {node_type}")

    def get_node_class(self, config: NodeConfig) -> Type[BaseNode]:
        node_class = self._node_classes.get(config.type)
        if not node_class:
            raise ValueError(f"No implementation for node type: {config.type}")
        return node_class

    def create_node(self, config: NodeConfig, **kwargs) -> BaseNode:
        """Create a node instance from configuration."""
        return self.get_node_class(config)(config, **kwargs)


# Global node registry
node_registry = NodeRegistry()
