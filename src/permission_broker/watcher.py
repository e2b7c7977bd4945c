"""Polling watcher that hands each request artifact to the engine once."""

from __future__ import annotations

from collections.abc import Callable
import logging
from pathlib import Path
import threading
import time
from typing import Protocol

from .store import RequestStore

LOGGER = logging.getLogger(__name__)


class Release(Protocol):
    """Ends a claim. With ``retain`` the name stays claimed until its file is gone."""

    def __call__(self, retain: bool = False) -> None: ...


RequestHandler = Callable[[Path, Release], None]


class RequestWatcher:
    """Scan the shared directory on a background thread.

    Artifact names are claimed in a processing set before dispatch. A claim
    lasts until the handler calls the ``release`` callback it was given,
    which may happen after an asynchronous resolution on another thread.
    A retained claim (an artifact that cannot be processed) is dropped by the
    first scan that no longer lists the file.
    """

    THREAD_NAME = "PermissionWatcher"

    def __init__(
        self,
        store: RequestStore,
        handler: RequestHandler,
        *,
        poll_interval: float = 0.5,
        settle_delay: float = 0.1,
        join_timeout: float = 1.0,
        error_backoff: float = 1.0,
    ) -> None:
        self._store = store
        self._handler = handler
        self._poll_interval = poll_interval
        self._settle_delay = settle_delay
        self._join_timeout = join_timeout
        self._error_backoff = error_backoff
        self._lock = threading.Lock()
        self._processing: set[str] = set()
        self._retained: set[str] = set()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """Begin polling; calling it while already running does nothing."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name=self.THREAD_NAME, daemon=True
        )
        self._thread.start()
        LOGGER.info(
            "watcher.started",
            extra={
                "event": "watcher.started",
                "directory": str(self._store.directory),
                "poll_interval": self._poll_interval,
            },
        )

    def stop(self) -> None:
        """Stop polling and join the loop thread with a bounded wait."""
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is None:
            return
        if thread is not threading.current_thread():
            thread.join(self._join_timeout)
        if thread.is_alive():
            LOGGER.warning(
                "watcher.stop.join_timeout",
                extra={"event": "watcher.stop.join_timeout", "timeout": self._join_timeout},
            )
        else:
            LOGGER.info("watcher.stopped", extra={"event": "watcher.stopped"})

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.scan_once()
            except Exception as exc:  # noqa: BLE001 - the loop must survive any scan.
                LOGGER.exception(
                    "watcher.scan.failed",
                    extra={"event": "watcher.scan.failed", "error": str(exc)},
                )
                self._stop_event.wait(self._error_backoff)
                continue
            self._stop_event.wait(self._poll_interval)

    def scan_once(self) -> int:
        """Run one discovery pass; return how many artifacts were dispatched."""
        if not self._store.ensure_directory():
            return 0
        dispatched = 0
        paths = self._store.list_requests()
        self._drop_retained({path.name for path in paths})
        for path in paths:
            if not path.exists():
                continue
            if self.process(path):
                dispatched += 1
        return dispatched

    def claim(self, name: str) -> bool:
        """Mark an artifact as in flight; False means someone else has it."""
        with self._lock:
            if name in self._processing:
                return False
            self._processing.add(name)
            return True

    def _drop_retained(self, present: set[str]) -> None:
        with self._lock:
            gone = self._retained - present
            self._retained -= gone
            self._processing -= gone
        for name in sorted(gone):
            LOGGER.debug(
                "watcher.request.forgotten",
                extra={"event": "watcher.request.forgotten", "artifact": name},
            )

    def in_flight(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._processing)

    def process(self, path: Path) -> bool:
        """Claim and dispatch a single artifact; False when it was skipped."""
        name = path.name
        if not self.claim(name):
            LOGGER.debug(
                "watcher.request.skipped",
                extra={"event": "watcher.request.skipped", "artifact": name},
            )
            return False
        release = self._releaser(name)
        LOGGER.info(
            "watcher.request.found",
            extra={"event": "watcher.request.found", "artifact": name},
        )
        try:
            if self._settle_delay > 0:
                # Writers may create the file before filling it.
                time.sleep(self._settle_delay)
            self._handler(path, release)
        except Exception as exc:  # noqa: BLE001 - one request must not stop the scan.
            LOGGER.exception(
                "watcher.request.handler_failed",
                extra={
                    "event": "watcher.request.handler_failed",
                    "artifact": name,
                    "error": str(exc),
                },
            )
            release()
        return True

    def _releaser(self, name: str) -> Release:
        released = threading.Event()
        guard = threading.Lock()

        def release(retain: bool = False) -> None:
            with guard:
                if released.is_set():
                    return
                released.set()
            with self._lock:
                if retain:
                    self._retained.add(name)
                else:
                    self._processing.discard(name)

        return release
