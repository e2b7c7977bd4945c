"""Arbitration of discovered permission requests.

Per request the engine walks::

    Discovered -> MemoryCheck -> ToolMemory | ScopedMemory | NeedsAuthority
    NeedsAuthority -> AwaitingAuthority -> Resolved | Failed

Memory hits write the response and remove the request artifact before
returning. The deferred (asynchronous) authority path removes the request
artifact first and writes the response when the prompt completes, since the
processing claim is the only thing stopping a rescan once control goes back
to the scan loop. The blocking authority path removes the request artifact
after the response is written.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
import logging
from pathlib import Path
import threading

from .exceptions import MalformedRequestError
from .gateway import DecisionAuthorityGateway
from .memory import DecisionMemory
from .responses import ResponseWriter
from .store import RequestStore
from .verdict import Decision, PermissionRequest, Verdict
from .watcher import Release

LOGGER = logging.getLogger(__name__)

DecisionListener = Callable[[Decision], None]


class DecisionEngine:
    """Resolve requests from memory or the authority gateway."""

    def __init__(
        self,
        memory: DecisionMemory,
        gateway: DecisionAuthorityGateway,
        store: RequestStore,
        writer: ResponseWriter,
    ) -> None:
        self._memory = memory
        self._gateway = gateway
        self._store = store
        self._writer = writer
        self._listener_lock = threading.Lock()
        self._listener: DecisionListener | None = None

    def set_listener(self, listener: DecisionListener | None) -> None:
        with self._listener_lock:
            self._listener = listener

    def handle(self, path: Path, release: Release) -> None:
        """Process one claimed artifact; ``release`` runs once processing ends."""
        owns_release = True
        try:
            try:
                request = self._read(path)
            except MalformedRequestError:
                # Stays claimed until the caller removes it, so it is reported once.
                owns_release = False
                release(retain=True)
                return
            if request is None:
                return
            if self._resolve_from_memory(path, request):
                return
            prompt = self._gateway.select()
            if prompt.deferred:
                owns_release = False
                self._resolve_deferred(path, request, prompt.resolve, release)
            else:
                self._resolve_blocking(path, request, prompt.resolve)
        except Exception as exc:  # noqa: BLE001 - one request must not stop the scan.
            LOGGER.exception(
                "permission.failed",
                extra={
                    "event": "permission.failed",
                    "artifact": path.name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
        finally:
            if owns_release:
                release()

    def _read(self, path: Path) -> PermissionRequest | None:
        try:
            request = self._store.read_request(path)
        except MalformedRequestError as exc:
            # Left in place; the caller times out on its own.
            LOGGER.warning(
                "permission.request.malformed",
                extra={
                    "event": "permission.request.malformed",
                    "artifact": path.name,
                    "reason": exc.reason,
                },
            )
            raise
        except OSError as exc:
            LOGGER.warning(
                "permission.request.unreadable",
                extra={
                    "event": "permission.request.unreadable",
                    "artifact": path.name,
                    "error": str(exc),
                },
            )
            return None
        LOGGER.info(
            "permission.request.received",
            extra={
                "event": "permission.request.received",
                "request_id": request.request_id,
                "tool_name": request.tool_name,
            },
        )
        return request

    def _resolve_from_memory(self, path: Path, request: PermissionRequest) -> bool:
        tool_allow = self._memory.lookup_tool_level(request.tool_name)
        if tool_allow is not None:
            verdict = Verdict.ALLOW_ALWAYS if tool_allow else Verdict.DENY
            self._finish_from_memory(path, request, verdict, source="tool")
            return True

        remembered = self._memory.lookup_scoped(request.tool_name, request.inputs)
        if remembered is not None:
            self._finish_from_memory(path, request, remembered, source="scoped")
            return True
        return False

    def _finish_from_memory(
        self, path: Path, request: PermissionRequest, verdict: Verdict, source: str
    ) -> None:
        LOGGER.info(
            "permission.memory.hit",
            extra={
                "event": "permission.memory.hit",
                "request_id": request.request_id,
                "tool_name": request.tool_name,
                "source": source,
                "verdict": verdict.name,
            },
        )
        self._writer.write(request.request_id, verdict.is_allow)
        self._notify(request, verdict)
        self._store.remove_request(path)

    def _resolve_blocking(
        self,
        path: Path,
        request: PermissionRequest,
        resolve: Callable[[str, dict], Future[Verdict]],
    ) -> None:
        LOGGER.info(
            "permission.authority.sync",
            extra={
                "event": "permission.authority.sync",
                "request_id": request.request_id,
                "tool_name": request.tool_name,
            },
        )
        try:
            verdict = resolve(request.tool_name, request.inputs).result()
        except Exception as exc:  # noqa: BLE001 - authority failures deny.
            self._log_authority_failure(request, exc)
            verdict = Verdict.DENY
        self._apply(request, verdict)
        self._store.remove_request(path)

    def _resolve_deferred(
        self,
        path: Path,
        request: PermissionRequest,
        resolve: Callable[[str, dict], Future[Verdict]],
        release: Release,
    ) -> None:
        LOGGER.info(
            "permission.authority.async",
            extra={
                "event": "permission.authority.async",
                "request_id": request.request_id,
                "tool_name": request.tool_name,
            },
        )
        self._store.remove_request(path)
        try:
            pending = resolve(request.tool_name, request.inputs)
        except Exception:
            release()
            raise

        def _on_done(done: Future[Verdict]) -> None:
            try:
                exc = done.exception() if not done.cancelled() else None
                if done.cancelled() or exc is not None:
                    self._log_authority_failure(request, exc)
                    self._writer.write(request.request_id, False)
                    self._notify(request, Verdict.DENY)
                else:
                    self._apply(request, done.result())
            except Exception as error:  # noqa: BLE001 - runs on a foreign thread.
                LOGGER.exception(
                    "permission.async.completion_failed",
                    extra={
                        "event": "permission.async.completion_failed",
                        "request_id": request.request_id,
                        "error": str(error),
                    },
                )
            finally:
                release()

        pending.add_done_callback(_on_done)

    def _apply(self, request: PermissionRequest, verdict: Verdict) -> None:
        if verdict is Verdict.ALLOW_ALWAYS:
            # Always means this tool from now on, whatever the inputs.
            self._memory.remember_tool_level(request.tool_name, True)
        LOGGER.info(
            "permission.resolved",
            extra={
                "event": "permission.resolved",
                "request_id": request.request_id,
                "tool_name": request.tool_name,
                "verdict": verdict.name,
            },
        )
        self._notify(request, verdict)
        self._writer.write(request.request_id, verdict.is_allow)

    def _log_authority_failure(
        self, request: PermissionRequest, exc: BaseException | None
    ) -> None:
        LOGGER.warning(
            "permission.authority.failed",
            extra={
                "event": "permission.authority.failed",
                "request_id": request.request_id,
                "tool_name": request.tool_name,
                "error_type": type(exc).__name__ if exc is not None else "CancelledError",
                "error": str(exc) if exc is not None else "cancelled",
            },
        )

    def _notify(self, request: PermissionRequest, verdict: Verdict) -> None:
        with self._listener_lock:
            listener = self._listener
        if listener is None:
            return
        try:
            listener(Decision(request.tool_name, dict(request.inputs), verdict))
        except Exception as exc:  # noqa: BLE001 - observers never affect delivery.
            LOGGER.warning(
                "permission.listener.failed",
                extra={
                    "event": "permission.listener.failed",
                    "tool_name": request.tool_name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
