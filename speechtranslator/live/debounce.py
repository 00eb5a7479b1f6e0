from __future__ import annotations

import threading
from typing import Any, Callable, Optional

TimerFactory = Callable[..., Any]


class Debouncer:
    """
    Trailing-edge debounce. Each schedule() cancels the pending timer and
    starts a new one; only the last one fires. The callback receives the
    generation token of the schedule that armed it, so a consumer can tell a
    fire that raced with cancel() from a current one.
    """

    def __init__(
        self,
        delay_sec: float,
        callback: Callable[[int], None],
        *,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        if delay_sec < 0:
            raise ValueError("delay_sec must be >= 0")
        self.delay_sec = float(delay_sec)
        self.callback = callback
        self.timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self) -> int:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            gen = self._generation
            timer = self.timer_factory(self.delay_sec, self._fire, args=(gen,))
            timer.daemon = True
            self._timer = timer
        timer.start()
        return gen

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def is_current(self, gen: int) -> bool:
        return gen == self._generation

    def _fire(self, gen: int) -> None:
        with self._lock:
            if gen != self._generation:
                return
            self._timer = None
        self.callback(gen)
