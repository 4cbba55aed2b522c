"""Node implementations."""

from .joai_node import JoaiNode
from .joai_trigger_node import JoaiTriggerNode

__all__ = [
    "JoaiNode",
    "JoaiTriggerNode",
]
