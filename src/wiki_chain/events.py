import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
from collections import defaultdict
from pydantic import BaseModel, Field

class SearchEvent(BaseModel):
    """Progress or diagnostic event emitted during a chain search."""
    type: str = Field(..., min_length=1, description="Event type identifier (e.g., 'node_expanded', 'edge_blacklisted')")
    session_id: str = Field(..., min_length=1, description="Identifier of the search session")
    data: Dict[str, Any] = Field(default_factory=dict, description="Event payload")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the event was created")

class EventBus:
    """
    One-way notification channel from the search core to observers.

    Supports async event handlers with error isolation - if one handler fails,
    others continue to run and the search is never interrupted.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[SearchEvent], Awaitable[None]]]] = defaultdict(list)
        self.logger = logging.getLogger(__name__)

    def subscribe(self, event_type: str, handler: Callable[[SearchEvent], Awaitable[None]]):
        """Subscribe a handler to an event type."""
        self._subscribers[event_type].append(handler)
        self.logger.debug(f"Subscribed handler to {event_type}")

    async def publish(self, event: SearchEvent):
        """Publish an event to all subscribers."""
        handlers = self._subscribers[event.type]
        if not handlers:
            return

        results = await asyncio.gather(
            *[self._safe_handle(handler, event) for handler in handlers],
            return_exceptions=True
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                self.logger.error(f"Event handler {i} failed for {event.type}: {result}")

    async def _safe_handle(self, handler: Callable, event: SearchEvent):
        try:
            await handler(event)
        except Exception as e:
            self.logger.error(f"Handler {getattr(handler, '__name__', handler)} failed: {e}", exc_info=True)
            raise  # Re-raise so gather() can catch it as exception

    def get_subscriber_count(self, event_type: str) -> int:
        """Get number of subscribers for an event type (useful for testing)."""
        return len(self._subscribers[event_type])


async def notify(event_bus: Optional[EventBus], event_type: str, session_id: str, **data: Any) -> None:
    """Publish an event if a bus is attached."""
    if event_bus is None:
        return
    await event_bus.publish(SearchEvent(type=event_type, session_id=session_id, data=data))
