"""
Background event loop for agent work.

Each agent owns one asyncio loop running on a daemon thread. Periodic tasks
(metric flushing, breakpoint polling) and fire-and-forget units of work
(threshold flushes, registrations, snapshot submissions) all run there, so
nothing on the instrumented call path waits on network I/O.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable, Coroutine
from concurrent.futures import Future
from typing import Any, TypeVar

from tracekit.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class BackgroundLoop:
    """Dedicated asyncio loop on a daemon thread."""

    def __init__(self, name: str = "tracekit-agent") -> None:
        self.name = name
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._ready = threading.Event()
        self._state_lock = threading.Lock()
        self._started = False
        self._closed = False
        self._tasks: set[Future] = set()
        self._log = logger.bind(loop=name)

    @property
    def is_running(self) -> bool:
        return self._started and not self._closed

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def start(self) -> None:
        """Start the loop thread and wait until it accepts work."""
        with self._state_lock:
            if self._started:
                return
            self._started = True
        self._thread.start()
        self._ready.wait()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._ready.set)
        try:
            self._loop.run_forever()
        finally:
            # Abandon whatever fire-and-forget work is still pending
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            if pending:
                self._loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            self._loop.close()

    def submit(self, coro: Coroutine[Any, Any, Any], *, name: str = "task") -> Future | None:
        """
        Schedule ``coro`` without waiting for it.

        Failures are logged, never raised to the caller. Returns None when the
        loop is not running; the coroutine is then discarded.
        """
        if not self.is_running:
            coro.close()
            self._log.debug("Background loop not running; dropping work", data={"task": name})
            return None

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(lambda f: _log_failure(f, name))
        return future

    def run_sync(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run ``coro`` on the loop and block until it finishes."""
        if not self.is_running:
            coro.close()
            raise RuntimeError(f"Background loop '{self.name}' is not running")
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str = "task") -> Future | None:
        """Schedule a long-lived task that is cancelled on stop()."""
        future = self.submit(coro, name=name)
        if future is not None:
            with self._state_lock:
                self._tasks.add(future)
            future.add_done_callback(self._forget)
        return future

    def every(
        self,
        interval: float,
        func: Callable[[], Awaitable[Any]],
        *,
        name: str = "periodic",
        initial_delay: float | None = None,
    ) -> Future | None:
        """Run ``func`` every ``interval`` seconds until stopped."""

        async def _periodic() -> None:
            await asyncio.sleep(interval if initial_delay is None else initial_delay)
            while True:
                try:
                    await func()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.warning(
                        "Periodic task failed",
                        data={"task": name, "error": str(exc)},
                    )
                await asyncio.sleep(interval)

        return self.spawn(_periodic(), name=name)

    def cancel(self, future: Future | None) -> None:
        """Cancel a task returned by spawn() or every()."""
        if future is not None:
            future.cancel()

    def _forget(self, future: Future) -> None:
        with self._state_lock:
            self._tasks.discard(future)

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel periodic tasks, stop the loop, and join its thread."""
        with self._state_lock:
            if self._closed:
                return
            if not self._started:
                self._closed = True
                self._loop.close()
                return
            self._closed = True
            tasks = list(self._tasks)
            self._tasks.clear()

        for future in tasks:
            future.cancel()
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        if self._thread.is_alive():
            self._log.warning("Background loop did not stop in time")


def _log_failure(future: Future, name: str) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning(
            "Background task failed",
            data={"task": name, "error": str(exc), "type": type(exc).__name__},
        )
