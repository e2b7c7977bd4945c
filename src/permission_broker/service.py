"""Permission service: wires the watcher, engine and gateway together."""

from __future__ import annotations

import logging
from pathlib import Path
import threading
from types import TracebackType
from typing import Any

from .config import DEFAULT_CONFIG
from .dispatch import Dispatcher, InteractionDispatcher, ThreadDispatcher
from .engine import DecisionEngine, DecisionListener
from .exceptions import PermissionBrokerError
from .gateway import AsyncPromptProvider, DecisionAuthorityGateway, DialogFunction, SyncPrompt
from .memory import DecisionMemory
from .responses import ResponseWriter
from .store import RequestStore, default_directory
from .watcher import RequestWatcher

LOGGER = logging.getLogger(__name__)


def _default_dialog() -> DialogFunction:
    from .screens import TextualPrompt

    return TextualPrompt()


class PermissionService:
    """One broker instance, created at startup and passed to collaborators.

    Without ``show_dialog`` the Textual dialog is used. It needs the main
    thread, so prompts are queued on an :class:`InteractionDispatcher` that
    the owner drains with :meth:`serve_prompts`.

    Example:
        service = PermissionService(show_dialog=my_dialog)
        service.set_decision_listener(print)
        service.start()
        ...
        service.stop()
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        directory: Path | None = None,
        show_dialog: DialogFunction | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        broker = dict((config or DEFAULT_CONFIG)["broker"])
        target = directory or default_directory(
            broker["base_directory"], broker["directory_name"]
        )

        if show_dialog is None:
            if dispatcher is None:
                dispatcher = InteractionDispatcher()
            elif isinstance(dispatcher, ThreadDispatcher):
                raise PermissionBrokerError(
                    "The terminal prompt must run on the main thread; "
                    "use an InteractionDispatcher or InlineDispatcher."
                )
            show_dialog = _default_dialog()
        self.dispatcher: Dispatcher = dispatcher or ThreadDispatcher()

        self.memory = DecisionMemory()
        self.store = RequestStore(Path(target))
        self.writer = ResponseWriter(self.store)
        self.gateway = DecisionAuthorityGateway(
            SyncPrompt(
                show_dialog,
                self.dispatcher,
                timeout=float(broker["prompt_timeout_seconds"]),
            )
        )
        self.engine = DecisionEngine(self.memory, self.gateway, self.store, self.writer)
        self.watcher = RequestWatcher(
            self.store,
            self.engine.handle,
            poll_interval=float(broker["poll_interval_seconds"]),
            settle_delay=float(broker["settle_delay_seconds"]),
            join_timeout=float(broker["shutdown_join_seconds"]),
        )
        self.store.ensure_directory()

    @property
    def directory(self) -> Path:
        return self.store.directory

    @property
    def running(self) -> bool:
        return self.watcher.running

    def start(self) -> None:
        """Begin polling for requests; idempotent."""
        if self.running:
            return
        self.watcher.start()
        LOGGER.info(
            "service.started",
            extra={"event": "service.started", "directory": str(self.directory)},
        )

    def stop(self) -> None:
        """Stop polling; in-flight asynchronous prompts may still complete."""
        was_running = self.running
        self.watcher.stop()
        if was_running:
            LOGGER.info("service.stopped", extra={"event": "service.stopped"})

    def serve_prompts(self, stop_event: threading.Event) -> None:
        """Show queued prompts on the calling thread until ``stop_event`` is set."""
        if not isinstance(self.dispatcher, InteractionDispatcher):
            raise PermissionBrokerError(
                "serve_prompts needs the service to use an InteractionDispatcher."
            )
        self.dispatcher.run(stop_event)

    def scan_once(self) -> int:
        """Process the requests currently in the directory a single time."""
        return self.watcher.scan_once()

    def register_prompt_provider(self, provider: AsyncPromptProvider) -> None:
        self.gateway.register_provider(provider)

    def unregister_prompt_provider(self) -> None:
        self.gateway.unregister_provider()

    def set_decision_listener(self, listener: DecisionListener | None) -> None:
        self.engine.set_listener(listener)

    def clear_decision_listener(self) -> None:
        self.engine.set_listener(None)

    def __enter__(self) -> PermissionService:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.stop()
