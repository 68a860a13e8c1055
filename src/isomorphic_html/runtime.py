"""Host runtime primitives handed to evaluated code: timers and console."""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)
console_logger = logging.getLogger("isomorphic_html.console")

TimerCallback = Callable[..., Any]


class Timers:
    """Registry backing ``set_timeout``/``set_interval`` for one scope.

    Callbacks run on the current asyncio loop when one is running, otherwise
    on a daemon :class:`threading.Timer`. Delays are in milliseconds.
    """

    def __init__(self) -> None:
        self._handles: dict[int, asyncio.TimerHandle | threading.Timer] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._handles)

    def set_timeout(self, callback: TimerCallback, delay_ms: float = 0, *args: Any) -> int:
        timer_id = next(self._ids)
        self._schedule(timer_id, _seconds(delay_ms), callback, args, repeat=False)
        return timer_id

    def set_interval(self, callback: TimerCallback, delay_ms: float = 0, *args: Any) -> int:
        timer_id = next(self._ids)
        self._schedule(timer_id, _seconds(delay_ms), callback, args, repeat=True)
        return timer_id

    def clear_timeout(self, timer_id: int | None) -> None:
        if timer_id is None:
            return
        with self._lock:
            handle = self._handles.pop(timer_id, None)
        if handle is not None:
            handle.cancel()

    clear_interval = clear_timeout

    def close(self) -> None:
        """Cancel every pending timer."""

        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.cancel()

    def _schedule(
        self,
        timer_id: int,
        delay: float,
        callback: TimerCallback,
        args: tuple[Any, ...],
        *,
        repeat: bool,
    ) -> None:
        def fire() -> None:
            with self._lock:
                if timer_id not in self._handles:
                    return
                if not repeat:
                    del self._handles[timer_id]
            try:
                callback(*args)
            except Exception:  # noqa: BLE001
                logger.exception("timer %d callback failed", timer_id)
            if repeat:
                with self._lock:
                    active = timer_id in self._handles
                if active:
                    self._schedule(timer_id, delay, callback, args, repeat=True)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            thread_timer = threading.Timer(delay, fire)
            thread_timer.daemon = True
            with self._lock:
                self._handles[timer_id] = thread_timer
            thread_timer.start()
        else:
            with self._lock:
                self._handles[timer_id] = loop.call_later(delay, fire)


def _seconds(delay_ms: float) -> float:
    return max(float(delay_ms or 0), 0.0) / 1000.0


class Console:
    """Browser-style console forwarding to the ``isomorphic_html.console`` logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or console_logger

    def _emit(self, level: int, args: tuple[Any, ...]) -> None:
        self._log.log(level, " ".join(str(arg) for arg in args))

    def log(self, *args: Any) -> None:
        self._emit(logging.INFO, args)

    info = log

    def debug(self, *args: Any) -> None:
        self._emit(logging.DEBUG, args)

    def warn(self, *args: Any) -> None:
        self._emit(logging.WARNING, args)

    warning = warn

    def error(self, *args: Any) -> None:
        self._emit(logging.ERROR, args)
