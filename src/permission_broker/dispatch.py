"""Run prompt callables on the thread that owns user interaction."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
import logging
import queue
import threading
from typing import Any, Protocol, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Dispatcher(Protocol):
    def submit(self, fn: Callable[[], T]) -> Future[T]: ...


def _run_into(future: Future[Any], fn: Callable[[], Any]) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        result = fn()
    except BaseException as exc:  # noqa: BLE001 - forwarded to the waiting caller.
        future.set_exception(exc)
    else:
        future.set_result(result)


class InteractionDispatcher:
    """Queue of callables drained by a single owning thread.

    Other threads ``submit`` work and receive a future; the owning thread
    calls ``run`` (usually the main thread, so a terminal UI can take over
    the screen there).
    """

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._queue: queue.Queue[tuple[Future[Any], Callable[[], Any]]] = queue.Queue()
        self._poll_interval = poll_interval

    def submit(self, fn: Callable[[], T]) -> Future[T]:
        future: Future[T] = Future()
        self._queue.put((future, fn))
        return future

    def pending(self) -> int:
        return self._queue.qsize()

    def run_pending(self) -> int:
        """Run every queued callable on the calling thread."""
        handled = 0
        while True:
            try:
                future, fn = self._queue.get_nowait()
            except queue.Empty:
                return handled
            _run_into(future, fn)
            handled += 1

    def run(self, stop_event: threading.Event) -> None:
        """Drain the queue on the calling thread until ``stop_event`` is set."""
        while not stop_event.is_set():
            try:
                future, fn = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            _run_into(future, fn)
        # Callables still queued will never run; their waiters time out.
        while True:
            try:
                future, _ = self._queue.get_nowait()
            except queue.Empty:
                break
            future.cancel()


class ThreadDispatcher:
    """Run each submitted callable on its own daemon thread."""

    THREAD_NAME = "PermissionPrompt"

    def submit(self, fn: Callable[[], T]) -> Future[T]:
        future: Future[T] = Future()
        thread = threading.Thread(
            target=_run_into, args=(future, fn), name=self.THREAD_NAME, daemon=True
        )
        thread.start()
        return future


class InlineDispatcher:
    """Run submitted callables immediately on the submitting thread.

    Used when the scanning thread also owns the terminal; the prompt timeout
    cannot interrupt a dialog run this way.
    """

    def submit(self, fn: Callable[[], T]) -> Future[T]:
        future: Future[T] = Future()
        _run_into(future, fn)
        return future
