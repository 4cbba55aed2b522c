"""Event bus for node and trigger events."""

from .event_bus import TRIGGER_FIRED, EventBus, event_bus

__all__ = ["TRIGGER_FIRED", "EventBus", "event_bus"]
