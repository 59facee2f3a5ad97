"""Async event bus announcing search and replace activity."""

import asyncio
from typing import Dict, List, Callable, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
from collections import defaultdict
from loguru import logger


# Event types emitted by the engine
SEARCH_COMPLETED = "search.completed"
REPLACE_APPLIED = "replace.applied"
REPLACE_ABANDONED = "replace.abandoned"

Handler = Callable[["Event"], Any]


@dataclass
class Event:
    """Base event class."""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: Optional[str] = None


class EventBus:
    """
    In-process pub/sub.

    Event types follow `category.action`. Subscriptions may use `category.*`
    or `*`. Events are queued by `emit` and delivered by the processor task
    started with `start`; `drain` delivers whatever is queued without one.
    """

    def __init__(self, maxsize: int = 1000):
        self._subscribers: Dict[str, List[Handler]] = defaultdict(list)
        self._event_queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._running = False
        self._processor_task: Optional[asyncio.Task] = None
        self._stats = defaultdict(int)

    def subscribe(self, event_pattern: str, handler: Handler) -> None:
        self._subscribers[event_pattern].append(handler)
        logger.debug(f"Subscribed handler to pattern: {event_pattern}")

    def unsubscribe(self, event_pattern: str, handler: Handler) -> None:
        self._subscribers[event_pattern] = [
            h for h in self._subscribers[event_pattern] if h != handler
        ]

    async def emit(self, event: Event) -> None:
        """Queue an event; dropped with a warning when the queue is full."""
        try:
            self._event_queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping event: {event.type}")
            self._stats['dropped'] += 1
            return
        self._stats['emitted'] += 1
        logger.debug(f"Emitted event: {event.type}")

    async def start(self) -> None:
        if self._running:
            logger.warning("Event bus already running")
            return
        self._running = True
        self._processor_task = asyncio.create_task(self._process_events())
        logger.debug("Event bus started")

    async def stop(self) -> None:
        self._running = False
        if self._processor_task:
            await self._processor_task
            self._processor_task = None
        await self.drain()
        logger.debug("Event bus stopped")

    async def drain(self) -> None:
        """Deliver every queued event now."""
        while not self._event_queue.empty():
            await self._dispatch(self._event_queue.get_nowait())

    async def _process_events(self) -> None:
        while self._running:
            try:
                # Short timeout so the _running flag is re-checked
                event = await asyncio.wait_for(self._event_queue.get(), timeout=0.1)
            except asyncio.TimeoutError:
                continue
            await self._dispatch(event)

    async def _dispatch(self, event: Event) -> None:
        handlers = [
            handler
            for pattern, registered in list(self._subscribers.items())
            if self._matches_pattern(event.type, pattern)
            for handler in registered
        ]

        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Handler error for event {event.type}: {e}")
                self._stats['handler_errors'] += 1

        self._stats['processed'] += 1

    def _matches_pattern(self, event_type: str, pattern: str) -> bool:
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            return event_type.startswith(pattern[:-1])
        return event_type == pattern

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)


# Global event bus instance
_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus
