"""
In-process event delivery for telemetry consumers.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

from common.interface import EventSink
from common.logger import get_logger

logger = get_logger("events")

Handler = Callable[[Any], None]


class EventBus(EventSink):
    """Dispatch emitted events to handlers subscribed by topic."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> None:
        self._handlers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        handlers = self._handlers.get(topic)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, topic: str, payload: Any) -> None:
        for handler in list(self._handlers.get(topic, ())):
            try:
                handler(payload)
            except Exception as exc:
                # No acknowledgement contract: a failing consumer must not stall the core.
                logger.warning(f"Handler for '{topic}' failed: {exc}")


__all__ = ["EventBus"]
