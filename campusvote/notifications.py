# campusvote/notifications.py
import asyncio
import logging
from typing import Any, Dict, Set

from campusvote.config import EVENT_QUEUE_SIZE

logger = logging.getLogger(__name__)

VOTE_CAST = "vote_cast"
VOTES_RESET = "votes_reset"


class EventBus:
    """Fan-out of change signals to dashboard subscribers.

    ``publish`` never awaits and never raises, so a slow or broken
    subscriber cannot hold up or fail the request that produced the event.
    """

    def __init__(self, queue_size: int = EVENT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event_type: str, payload: Dict[str, Any]) -> int:
        message = {"type": event_type, "data": payload}
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Subscriber queue full, dropped '{event_type}' event")
        return delivered


def notify(bus: EventBus, event_type: str, payload: Dict[str, Any]) -> None:
    """Fire-and-forget publish; failures are logged only."""
    try:
        bus.publish(event_type, payload)
    except Exception as e:
        logger.warning(f"Failed to publish '{event_type}' event: {e}")
