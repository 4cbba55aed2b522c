"""Node system models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
import uuid


class NodeType(str, Enum):
    """Types of nodes in workflows."""
    JOAI = "joai"
    JOAI_TRIGGER = "joaiTrigger"


class NodeStatus(str, Enum):
    """Node execution status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    WAITING = "waiting"


class NodeConfig(BaseModel):
    """Configuration for a node."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: NodeType
    description: Optional[str] = None

    # Node behavior
    parameters: Dict[str, Any] = {}

    # Execution settings
    timeout_seconds: int = 300
    retry_count: int = 0

    # Error handling
    error_handler_node_id: Optional[str] = None


class NodeInstance(BaseModel):
    """Runtime instance of a node."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    node_config: NodeConfig
    workflow_instance_id: str

    # Status
    status: NodeStatus = NodeStatus.PENDING
    status_message: Optional[str] = None

    # Execution tracking
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None

    # Retry tracking
    attempt_number: int = 0
    last_error: Optional[str] = None

    # Data
    input_data: Dict[str, Any] = {}
    output_data: Dict[str, Any] = {}
    context: Dict[str, Any] = {}

    next_nodes: List[str] = []  # Node instance IDs


class NodeExecutionResult(BaseModel):
    """Result of node execution."""
    node_instance_id: str
    status: NodeStatus
    output_data: Dict[str, Any] = {}
    error: Optional[str] = None
    duration_ms: float

    # Next nodes to execute
    next_node_ids: List[str] = []
