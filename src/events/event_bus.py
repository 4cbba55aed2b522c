"""Event bus for node and trigger events."""

import asyncio
import logging
from typing import Dict, List, Callable, Any, Optional
from datetime import datetime
import json

logger = logging.getLogger(__name__)

TRIGGER_FIRED = "joai.trigger.fired"


class EventBus:
    """Simple event bus for publishing and subscribing to events."""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}
        self._event_queue: Optional[asyncio.Queue] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def queue(self) -> asyncio.Queue:
        if self._event_queue is None:
            self._event_queue = asyncio.Queue()
        return self._event_queue

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the event bus processor."""
        if self._running:
            return

        self._running = True
        self._event_queue = asyncio.Queue()
        self._task = asyncio.create_task(self._process_events())
        logger.info("Event bus started")

    async def stop(self):
        """Stop the event bus processor."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Event bus stopped")

    async def _process_events(self):
        """Process events from the queue."""
        while self._running:
            try:
                event = await asyncio.wait_for(self.queue.get(), timeout=1.0)
                await self.dispatch(event["name"], event["data"])

            except asyncio.TimeoutError:
                continue
            except Exception as e:
                logger.error(f"Error processing event: {e}")

    def _matching_subscribers(self, event_name: str) -> List[Callable]:
        subscribers = list(self._subscribers.get(event_name, []))

        # Wildcard subscribers: "*", "joai.*", "joai.trigger.*"
        parts = event_name.split(".")
        patterns = ["*"] + [".".join(parts[:i]) + ".*" for i in range(1, len(parts))]
        for pattern in patterns:
            for handler in self._subscribers.get(pattern, []):
                if handler not in subscribers:
                    subscribers.append(handler)
        return subscribers

    async def dispatch(self, event_name: str, data: Any):
        """Dispatch event to all subscribers."""
        for subscriber in self._matching_subscribers(event_name):
            try:
                if asyncio.iscoroutinefunction(subscriber):
                    await subscriber(event_name, data)
                else:
                    subscriber(event_name, data)
            except Exception as e:
                logger.error(f"Error in event subscriber for {event_name}: {e}")

    def subscribe(self, event_pattern: str, handler: Callable):
        """Subscribe to events matching a pattern.

        Args:
            event_pattern: Event name or pattern (supports wildcards like "joai.*")
            handler: Callback receiving ``(event_name, data)``
        """
        if event_pattern not in self._subscribers:
            self._subscribers[event_pattern] = []

        if handler not in self._subscribers[event_pattern]:
            self._subscribers[event_pattern].append(handler)
            logger.debug(f"Subscribed to {event_pattern}")

    async def publish(self, event_name: str, data: Any):
        """Publish an event.

        Queued for the background processor when the bus is running,
        dispatched inline otherwise.
        """
        if not self._running:
            await self.dispatch(event_name, data)
            logger.debug(f"Dispatched event inline: {event_name}")
            return

        event = {
            "name": event_name,
            "data": data,
            "timestamp": datetime.utcnow().isoformat()
        }
        await self.queue.put(event)
        logger.debug(f"Published event: {event_name}")


# Global event bus instance
event_bus = EventBus()


async def log_trigger_events(event_name: str, data: Any):
    """Log fired JoAi triggers."""
    logger.info(
        f"Trigger event: {event_name} - workflow {data.get('workflow_id')} "
        f"node {data.get('node_id')} ({len(data.get('items', []))} item(s))"
    )


async def log_node_failures(event_name: str, data: Any):
    """Log failed node executions."""
    logger.error(f"Node event: {event_name} - {json.dumps(data, default=str)}")


# Subscribe default handlers
event_bus.subscribe("joai.trigger.*", log_trigger_events)
event_bus.subscribe("node.failed", log_node_failures)
