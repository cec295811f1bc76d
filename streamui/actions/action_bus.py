"""
Fan-out of action events to in-process subscribers and to named-event
listeners that sit outside the module graph (e.g. a page-level
``kumo-action`` event).
"""

import logging
from typing import Any, Callable, Dict, List

from streamui.actions.models import ActionEvent
from streamui.utils.exception_logging import log_exception_with_details
from streamui.vars import ACTION_EVENT_NAME

logger = logging.getLogger("streamui")

ActionSubscriber = Callable[[ActionEvent], Any]
NamedEventListener = Callable[[str, Dict[str, Any]], Any]


class ActionBus:
    def __init__(self, event_name: str = ACTION_EVENT_NAME):
        self.event_name = event_name
        self._subscribers: List[ActionSubscriber] = []
        self._listeners: List[NamedEventListener] = []

    def subscribe(self, handler: ActionSubscriber) -> Callable[[], None]:
        self._subscribers.append(handler)
        return lambda: self._discard(self._subscribers, handler)

    def add_event_listener(self, listener: NamedEventListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._discard(self._listeners, listener)

    def dispatch(self, event: ActionEvent) -> None:
        """Deliver to every subscriber, then broadcast the named event."""
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception as e:
                log_exception_with_details(logger, "[ActionBus] Subscriber failed", e)

        payload = event.to_payload()
        for listener in list(self._listeners):
            try:
                listener(self.event_name, payload)
            except Exception as e:
                log_exception_with_details(logger, "[ActionBus] Listener failed", e)

    def clear(self) -> None:
        self._subscribers.clear()
        self._listeners.clear()

    @staticmethod
    def _discard(items: list, item) -> None:
        if item in items:
            items.remove(item)
