"""
Event Bus - in-process notifications from the daemon

The daemon publishes lifecycle and memory events here (started, stage
activated, health issues, chat backed up...). Middleware sees every
event first; embedders subscribe to react without the daemon knowing
who listens.
"""

import asyncio
from typing import Callable, List, Dict, Optional
from dataclasses import dataclass
from models.events import Event, EventType
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.EVENT)


@dataclass
class EventHandler:
    """Event handler registration"""
    handler: Callable[[Event], None]
    priority: int


class EventBus:
    """
    Pub-sub bus for daemon events

    Handlers run highest priority first, sync or async. A failing handler
    is logged and the remaining ones still run.

    Example:
        bus = EventBus()
        bus.add_middleware(log_middleware)
        bus.subscribe(EventType.HEALTH_ISSUES, alert_operator, priority=10)

        await bus.publish(HealthIssuesEvent(["vector_database offline"]))
    """

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._middleware: List[Callable[[Event], Optional[Event]]] = []

    def subscribe(
        self,
        event_type: EventType,
        handler: Callable[[Event], None],
        priority: int = 0,
    ) -> None:
        """
        Subscribe to event type

        Args:
            event_type: Which events to listen for
            handler: Function to call (can be async or sync)
            priority: Execution priority (higher = called first, default: 0)
        """
        handlers = self._handlers.setdefault(event_type, [])
        handlers.append(EventHandler(handler, priority))
        handlers.sort(key=lambda h: h.priority, reverse=True)

        log.debug(
            "Event handler subscribed",
            event_type=event_type.name,
            handler=getattr(handler, "__name__", repr(handler)),
            priority=priority
        )

    def add_middleware(self, middleware: Callable[[Event], Optional[Event]]) -> None:
        """Middleware returns the (possibly replaced) event, or None to drop it."""
        self._middleware.append(middleware)
        log.debug("Middleware registered", middleware=middleware.__name__)

    async def publish(self, event: Event) -> None:
        for middleware in self._middleware:
            event = middleware(event)
            if event is None:
                return

        for entry in self._handlers.get(event.type, []):
            name = getattr(entry.handler, "__name__", repr(entry.handler))
            try:
                if asyncio.iscoroutinefunction(entry.handler):
                    await entry.handler(event)
                else:
                    entry.handler(event)
            except Exception as e:
                log.error(
                    f"Event handler failed: {name} for {event.type.name}",
                    exception=f"{type(e).__name__}: {e}"
                )
