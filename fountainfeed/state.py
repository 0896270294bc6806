"""
StateContainer: a minimal observable value.

Holds the latest published value and pushes every new one to subscribers.
Subscribers receive the current value immediately on subscribe(). Pure
Python, no event-loop dependency: listeners run synchronously inside
publish().
"""
from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class StateContainer(Generic[T]):
    """Latest-value publish/subscribe primitive."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[Callable[[T], None]] = []

    def get_snapshot(self) -> T:
        return self._value

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """
        Register listener and call it with the current value.

        Returns a function that removes the listener; calling it twice is harmless.
        """
        self._listeners.append(listener)
        self._notify(listener, self._value)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, value: T) -> None:
        self._value = value
        # Iterate over a copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            self._notify(listener, value)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    @staticmethod
    def _notify(listener: Callable[[T], None], value: T) -> None:
        try:
            listener(value)
        except Exception:  # noqa: BLE001
            _LOGGER.exception("State listener %r failed", listener)
