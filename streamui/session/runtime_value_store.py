"""
Per-session store of user-entered values keyed by element key.

Lets the rendering layer collect input values without controlling every
widget, and records which keys were touched by the user so form submission
can default to touched-only values.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from streamui.utils.exception_logging import log_exception_with_details

logger = logging.getLogger("streamui")

Listener = Callable[[], Any]


class RuntimeValueStore:
    def __init__(self):
        self._values: Dict[str, Any] = {}
        self._touched: Set[str] = set()
        self._listeners: List[Listener] = []

    def set_value(self, element_key: str, value: Any, touched: bool = True) -> None:
        """Store the latest value. ``touched=False`` records without marking."""
        self._values[element_key] = value
        if touched:
            self._touched.add(element_key)
        self._notify()

    def get_value(self, element_key: str) -> Optional[Any]:
        return self._values.get(element_key)

    def is_touched(self, element_key: str) -> bool:
        return element_key in self._touched

    def snapshot_touched(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in self._values.items()
            if key in self._touched and value is not None
        }

    def snapshot_all(self) -> Dict[str, Any]:
        return {key: value for key, value in self._values.items() if value is not None}

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        """Drop values and touched state. Subscribers stay registered."""
        self._values.clear()
        self._touched.clear()
        self._notify()

    def __len__(self) -> int:
        return len(self._values)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                log_exception_with_details(
                    logger, "[RuntimeValueStore] Listener failed", e
                )
