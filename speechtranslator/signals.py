from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_log = logging.getLogger("speechtranslator.signals")


class Signal(Generic[T]):
    """
    Minimal observer channel. Listeners run on the emitting thread, in
    subscription order. A failing listener is logged and skipped.
    """

    def __init__(self, name: str = "signal") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Callable[[T], None]) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return

    def emit(self, value: T) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                _log.exception("signal_listener_failed", extra={"signal": self.name})

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
