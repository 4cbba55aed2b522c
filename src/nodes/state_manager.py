"""In-memory node-instance static data.

Trigger nodes get one small storage slot per (workflow, node) pair to remember
the remote webhook id between activation and deactivation. State is lost when
the process restarts.
"""

import logging
from typing import Dict, Optional

from schemas.joai import NodeStaticData


logger = logging.getLogger(__name__)


class StaticDataStore:
    """Static data slots keyed by workflow id and node id."""

    def __init__(self):
        self._slots: Dict[str, NodeStaticData] = {}

    @staticmethod
    def _make_key(workflow_id: str, node_id: str) -> str:
        return f"node:{workflow_id}:{node_id}"

    def get(self, workflow_id: str, node_id: str) -> NodeStaticData:
        """Slot for a node, created empty on first access."""
        key = self._make_key(workflow_id, node_id)
        if key not in self._slots:
            self._slots[key] = NodeStaticData()
        return self._slots[key]

    def peek(self, workflow_id: str, node_id: str) -> Optional[NodeStaticData]:
        return self._slots.get(self._make_key(workflow_id, node_id))

    def clear(self, workflow_id: str, node_id: str) -> bool:
        """Drop a node's slot. Returns whether one existed."""
        removed = self._slots.pop(self._make_key(workflow_id, node_id), None)
        if removed is not None:
            logger.debug(f"Cleared static data for node {node_id} in workflow {workflow_id}")
        return removed is not None
