from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from typing import Any, Callable, Optional

_STOP = object()

_log = logging.getLogger("speechtranslator.mailbox")


class SerialMailbox:
    """
    Runs posted callables one at a time, in posting order.

    After start() a dedicated thread drains the queue. Before start() (or
    when constructed with threaded=False) the posting thread drains it
    inline; a thread that finds another thread already draining only
    enqueues, so ordering is preserved either way.
    """

    def __init__(
        self,
        *,
        name: str = "speechtranslator-mailbox",
        threaded: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.name = name
        self.threaded = threaded
        self.logger = logger or _log
        self._q: "queue.Queue[Any]" = queue.Queue()
        self._inline: "deque[Callable[[], None]]" = deque()
        self._drain_lock = threading.Lock()
        self._drainer: Optional[threading.Thread] = None
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if not self.threaded or self._thread is not None or self._closed:
            return
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def on_mailbox_thread(self) -> bool:
        current = threading.current_thread()
        return current is self._thread or current is self._drainer

    def post(self, fn: Callable[[], None]) -> None:
        if self._closed:
            return
        if self.running:
            self._q.put(fn)
            return
        self._inline.append(fn)
        self._drain_inline()

    def call(self, fn: Callable[[], Any], timeout: Optional[float] = None) -> Any:
        """Run `fn` on the mailbox and wait; returns its result or re-raises its error."""
        if self._closed:
            return None
        if self.on_mailbox_thread():
            return fn()

        done = threading.Event()
        box: dict[str, Any] = {}

        def _job() -> None:
            try:
                box["value"] = fn()
            except BaseException as e:
                box["error"] = e
            finally:
                done.set()

        self.post(_job)
        if not done.wait(timeout):
            raise TimeoutError(f"{self.name} did not run the call within {timeout}s")
        if "error" in box:
            raise box["error"]
        return box.get("value")

    def close(self, timeout: float = 2.0) -> None:
        if self._closed:
            return
        self._closed = True
        thread = self._thread
        if thread is None:
            return
        self._q.put(_STOP)
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self, fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception:
            self.logger.exception("mailbox_job_failed", extra={"mailbox": self.name})

    def _drain_inline(self) -> None:
        while self._inline:
            if not self._drain_lock.acquire(blocking=False):
                return
            self._drainer = threading.current_thread()
            try:
                while self._inline:
                    self._run(self._inline.popleft())
            finally:
                self._drainer = None
                self._drain_lock.release()

    def _loop(self) -> None:
        while True:
            item = self._q.get()
            if item is _STOP:
                return
            self._run(item)
