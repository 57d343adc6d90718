"""Observable value: one writer replaces the value, any number of readers subscribe.

Subscribers are plain callables receiving the new value. A failing subscriber
is logged and skipped so the other readers still see the update.
"""
from __future__ import annotations
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ObservableValue(Generic[T]):
    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for cb in list(self._subscribers):
            try:
                cb(value)
            except Exception as e:
                logger.error(f"Observer {cb!r} failed: {e}")

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a reader; returns a callable that removes it again."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def _unsubscribe():
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass
        return _unsubscribe


__all__ = ['ObservableValue']
