"""Decision authority: an external asynchronous prompt or a local blocking one.

Both modes implement the same capability, ``resolve(tool_name, inputs)``,
returning a future of a :class:`Verdict`. The gateway picks exactly one mode
per request: the registered external provider when there is one, otherwise
the synchronous fallback prompt.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
import json
import logging
import threading
from typing import Any, Protocol, runtime_checkable

from .dispatch import Dispatcher, ThreadDispatcher
from .exceptions import AuthorityError
from .verdict import Verdict

LOGGER = logging.getLogger(__name__)

AsyncPromptProvider = Callable[[str, dict[str, Any]], "Future[int]"]
DialogFunction = Callable[[str, dict[str, Any]], int]

DEFAULT_PROMPT_TIMEOUT_SECONDS = 30.0
PRIORITY_INPUT_KEYS = ("file_path", "path", "command", "content", "text", "message")
MAX_SUMMARY_INPUTS = 5
MAX_SUMMARY_VALUE_CHARS = 200


class Prompt(Protocol):
    """A way of obtaining a verdict for one request."""

    deferred: bool

    def resolve(self, tool_name: str, inputs: dict[str, Any]) -> Future[Verdict]: ...


@runtime_checkable
class ClosableDialog(Protocol):
    """A dialog function that can be dismissed while it is showing."""

    def __call__(self, tool_name: str, inputs: dict[str, Any]) -> int: ...

    def close(self) -> bool: ...


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        text = value
    elif isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)
    if len(text) > MAX_SUMMARY_VALUE_CHARS:
        text = text[: MAX_SUMMARY_VALUE_CHARS - 3] + "..."
    return text


def important_inputs(inputs: dict[str, Any]) -> list[tuple[str, str]]:
    """Pick the most safety-relevant inputs for display, priority keys first."""
    picked: list[tuple[str, str]] = [
        (key, _format_value(inputs[key])) for key in PRIORITY_INPUT_KEYS if key in inputs
    ][:MAX_SUMMARY_INPUTS]
    for key, value in inputs.items():
        if len(picked) >= MAX_SUMMARY_INPUTS:
            break
        if key not in PRIORITY_INPUT_KEYS:
            picked.append((key, _format_value(value)))
    return picked


def summarize_request(tool_name: str, inputs: dict[str, Any]) -> str:
    """Build the text shown by the synchronous prompt."""
    lines = ["The agent requests permission to run:", "", f"Tool: {tool_name}"]
    lines.extend(f"{key}: {value}" for key, value in important_inputs(inputs))
    lines.extend(["", "Allow this operation?"])
    return "\n".join(lines)


class AsyncPrompt:
    """Delegate to an external prompt provider without blocking."""

    deferred = True

    def __init__(self, provider: AsyncPromptProvider) -> None:
        self._provider = provider

    def resolve(self, tool_name: str, inputs: dict[str, Any]) -> Future[Verdict]:
        outcome: Future[Verdict] = Future()
        try:
            pending = self._provider(tool_name, inputs)
            pending.add_done_callback(lambda done: self._complete(done, outcome))
        except Exception as exc:  # noqa: BLE001 - provider failures become denials.
            error = AuthorityError(f"Prompt provider failed: {exc}")
            error.__cause__ = exc
            outcome.set_exception(error)
        return outcome

    @staticmethod
    def _complete(done: Future[int], outcome: Future[Verdict]) -> None:
        if done.cancelled():
            outcome.set_exception(AuthorityError("Prompt was cancelled."))
            return
        exc = done.exception()
        if exc is not None:
            error = AuthorityError(f"Prompt failed: {exc}")
            error.__cause__ = exc
            outcome.set_exception(error)
            return
        outcome.set_result(Verdict.from_code(done.result()))


class SyncPrompt:
    """Show a blocking allow/deny dialog and wait a bounded time for it."""

    deferred = False

    def __init__(
        self,
        show_dialog: DialogFunction,
        dispatcher: Dispatcher | None = None,
        timeout: float = DEFAULT_PROMPT_TIMEOUT_SECONDS,
    ) -> None:
        self._show_dialog = show_dialog
        self._dispatcher: Dispatcher = dispatcher or ThreadDispatcher()
        self._timeout = timeout

    def resolve(self, tool_name: str, inputs: dict[str, Any]) -> Future[Verdict]:
        outcome: Future[Verdict] = Future()
        outcome.set_result(self._ask(tool_name, inputs))
        return outcome

    def _ask(self, tool_name: str, inputs: dict[str, Any]) -> Verdict:
        pending = self._dispatcher.submit(lambda: self._show_dialog(tool_name, inputs))
        try:
            code = pending.result(timeout=self._timeout)
        except TimeoutError:
            if not pending.cancel():
                self._close_dialog(tool_name)
            LOGGER.warning(
                "gateway.sync.timeout",
                extra={
                    "event": "gateway.sync.timeout",
                    "tool_name": tool_name,
                    "timeout": self._timeout,
                },
            )
            return Verdict.DENY
        except Exception as exc:  # noqa: BLE001 - a broken dialog denies.
            LOGGER.warning(
                "gateway.sync.failed",
                extra={
                    "event": "gateway.sync.failed",
                    "tool_name": tool_name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return Verdict.DENY
        return Verdict.from_code(code)

    def _close_dialog(self, tool_name: str) -> None:
        # Already on screen; a denial has been decided, so take it down.
        if not isinstance(self._show_dialog, ClosableDialog):
            return
        if self._show_dialog.close():
            LOGGER.info(
                "gateway.sync.dialog_closed",
                extra={"event": "gateway.sync.dialog_closed", "tool_name": tool_name},
            )


class DecisionAuthorityGateway:
    """Hold the registered external provider and choose a prompt per request."""

    def __init__(self, fallback: SyncPrompt) -> None:
        self._fallback = fallback
        self._lock = threading.Lock()
        self._provider: AsyncPromptProvider | None = None

    def register_provider(self, provider: AsyncPromptProvider) -> None:
        with self._lock:
            self._provider = provider
        LOGGER.info(
            "gateway.provider.registered",
            extra={"event": "gateway.provider.registered"},
        )

    def unregister_provider(self) -> None:
        with self._lock:
            self._provider = None
        LOGGER.info(
            "gateway.provider.unregistered",
            extra={"event": "gateway.provider.unregistered"},
        )

    @property
    def has_provider(self) -> bool:
        with self._lock:
            return self._provider is not None

    def select(self) -> Prompt:
        """Return the single prompt to use for the next request."""
        with self._lock:
            provider = self._provider
        if provider is not None:
            return AsyncPrompt(provider)
        return self._fallback
