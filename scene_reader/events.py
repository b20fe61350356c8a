"""Cooperative event queue: engine threads post, the host thread runs."""

import queue
import time
from typing import Callable

from scene_reader.constants import EVENT_POLL_SECONDS


class EventQueue:
    """
    Hands callables from worker threads to the thread that drains the queue.

    Engine callbacks are posted here so that the session controller only ever
    runs on the host's thread, interleaved with user commands.
    """

    def __init__(self):
        self._queue: "queue.Queue[tuple[Callable, tuple]]" = queue.Queue()

    def post(self, fn: Callable, *args) -> None:
        """Queue fn(*args). Safe to call from any thread."""
        self._queue.put((fn, args))

    def drain(self) -> int:
        """Run everything queued so far on the calling thread. Returns the count run."""
        count = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            fn(*args)
            count += 1

    def run_until(
        self,
        predicate: Callable[[], bool],
        timeout: float | None = None,
        poll: float = EVENT_POLL_SECONDS,
    ) -> bool:
        """Drain repeatedly until predicate() holds. Returns False if timeout lapses first."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self.drain()
            if predicate():
                return True
            if deadline is not None and time.monotonic() >= deadline:
                return False
            try:
                fn, args = self._queue.get(timeout=poll)
            except queue.Empty:
                continue
            fn(*args)
