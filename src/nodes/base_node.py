"""Base node class for workflow nodes."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict
import time

from .models import NodeConfig, NodeStatus, NodeInstance, NodeExecutionResult
from events.event_bus import event_bus


logger = logging.getLogger(__name__)


class BaseNode(ABC):
    """Base class for all workflow nodes."""

    def __init__(self, config: NodeConfig):
        self.config = config
        self.status = NodeStatus.PENDING
        self._lock = asyncio.Lock()

    @abstractmethod
    async def execute(
        self,
        input_data: Dict[str, Any],
        context: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Execute the node logic. Must be implemented by subclasses."""
        pass

    async def run(
        self,
        instance: NodeInstance,
        workflow_variables: Dict[str, Any]
    ) -> NodeExecutionResult:
        """Run the node with full lifecycle management."""
        start_time = time.time()

        async with self._lock:
            try:
                instance.status = NodeStatus.RUNNING
                instance.started_at = datetime.utcnow()
                instance.attempt_number += 1

                context = {
                    **instance.context,
                    "workflow_id": instance.workflow_instance_id,
                    "node_id": self.config.id,
                    "node_name": self.config.name,
                    "attempt": instance.attempt_number,
                    "workflow_variables": workflow_variables,
                }

                # Execute with timeout
                output_data = await asyncio.wait_for(
                    self.execute(instance.input_data, context),
                    timeout=self.config.timeout_seconds
                )

                instance.output_data = output_data
                instance.status = NodeStatus.COMPLETED
                instance.completed_at = datetime.utcnow()
                instance.duration_ms = (time.time() - start_time) * 1000

                await event_bus.publish(
                    "node.completed",
                    {
                        "node_id": self.config.id,
                        "node_name": self.config.name,
                        "node_type": self.type_name,
                        "workflow_id": instance.workflow_instance_id,
                        "duration_ms": instance.duration_ms
                    }
                )

                return NodeExecutionResult(
                    node_instance_id=instance.id,
                    status=NodeStatus.COMPLETED,
                    output_data=output_data,
                    duration_ms=instance.duration_ms,
                    next_node_ids=instance.next_nodes
                )

            except asyncio.TimeoutError:
                error = f"Node execution timed out after {self.config.timeout_seconds}s"
                return await self._handle_error(instance, error, start_time)

            except Exception as e:
                return await self._handle_error(instance, str(e), start_time)

    async def _handle_error(
        self,
        instance: NodeInstance,
        error: str,
        start_time: float
    ) -> NodeExecutionResult:
        """Handle node execution error."""
        instance.status = NodeStatus.FAILED
        instance.last_error = error
        instance.completed_at = datetime.utcnow()
        instance.duration_ms = (time.time() - start_time) * 1000

        logger.error(f"Node {self.config.name} failed: {error}")

        await event_bus.publish(
            "node.failed",
            {
                "node_id": self.config.id,
                "node_name": self.config.name,
                "node_type": self.type_name,
                "workflow_id": instance.workflow_instance_id,
                "error": error,
                "attempt": instance.attempt_number
            }
        )

        # Check if retry is needed
        if instance.attempt_number < self.config.retry_count:
            instance.status = NodeStatus.PENDING  # Will be retried
            return NodeExecutionResult(
                node_instance_id=instance.id,
                status=NodeStatus.PENDING,
                error=error,
                duration_ms=instance.duration_ms,
                next_node_ids=[]
            )

        next_nodes = []
        if self.config.error_handler_node_id:
            next_nodes = [self.config.error_handler_node_id]

        return NodeExecutionResult(
            node_instance_id=instance.id,
            status=NodeStatus.FAILED,
            error=error,
            duration_ms=instance.duration_ms,
            next_node_ids=next_nodes
        )

    @property
    def type_name(self) -> str:
        return self.config.type.value
