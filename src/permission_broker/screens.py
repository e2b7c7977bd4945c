"""Textual dialog used as the local, blocking permission prompt."""

from __future__ import annotations

import threading
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from .gateway import summarize_request
from .verdict import Verdict


class PermissionPromptScreen(ModalScreen[int]):
    """Modal with the request summary and an allow/deny choice."""

    CSS = """
    PermissionPromptScreen {
        align: center middle;
    }

    #permission-dialog {
        width: 80;
        max-width: 120;
        height: auto;
        max-height: 30;
        padding: 1 2;
        border: round $warning;
        background: $surface;
    }

    #permission-title {
        padding-bottom: 1;
        text-style: bold;
    }

    #permission-actions {
        height: 3;
        align: right middle;
    }

    #permission-help {
        padding-top: 1;
        color: $text-muted;
    }
    """

    def __init__(self, tool_name: str, inputs: dict[str, Any]) -> None:
        super().__init__()
        self._tool_name = tool_name
        self._inputs = inputs

    def compose(self) -> ComposeResult:
        with Container(id="permission-dialog"):
            yield Static(
                f"Permission request - {self._tool_name}",
                id="permission-title",
                markup=False,
            )
            # Inputs come from the agent; never interpret them as markup.
            yield Static(
                summarize_request(self._tool_name, self._inputs),
                id="permission-body",
                markup=False,
            )
            with Horizontal(id="permission-actions"):
                yield Button("Allow", id="permission-allow", variant="success")
                yield Button("Deny", id="permission-deny", variant="error")
            yield Static("1/y allow | 3/n/Esc deny", id="permission-help")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "permission-allow":
            self.dismiss(Verdict.ALLOW.code)
        else:
            self.dismiss(Verdict.DENY.code)

    def on_key(self, event: Any) -> None:  # noqa: ANN401
        key = str(getattr(event, "key", "")).lower()
        if key in {"1", "y"}:
            self.dismiss(Verdict.ALLOW.code)
        elif key in {"3", "n", "escape"}:
            self.dismiss(Verdict.DENY.code)


class PermissionPromptApp(App[int]):
    """Single-screen app that exits with the chosen verdict code.

    Setting ``close_event`` from any thread closes the dialog with a denial.
    """

    TITLE = "Permission request"
    CLOSE_POLL_SECONDS = 0.1

    def __init__(
        self,
        tool_name: str,
        inputs: dict[str, Any],
        close_event: threading.Event | None = None,
    ) -> None:
        super().__init__()
        self._tool_name = tool_name
        self._inputs = inputs
        self._close_event = close_event or threading.Event()

    @property
    def close_requested(self) -> bool:
        return self._close_event.is_set()

    def request_close(self) -> None:
        self._close_event.set()

    def on_mount(self) -> None:
        self.push_screen(
            PermissionPromptScreen(self._tool_name, self._inputs), self._finish
        )
        self.set_interval(self.CLOSE_POLL_SECONDS, self._check_close)

    def _check_close(self) -> None:
        if self._close_event.is_set():
            self.exit(Verdict.DENY.code)

    def _finish(self, code: int | None) -> None:
        self.exit(code if code is not None else Verdict.DENY.code)


class TextualPrompt:
    """Dialog function for :class:`SyncPrompt` that can be closed from elsewhere.

    ``close`` denies whichever dialog is on screen, so a prompt that timed out
    does not linger and hold up the prompts queued behind it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._app: PermissionPromptApp | None = None

    def __call__(self, tool_name: str, inputs: dict[str, Any]) -> int:
        app = PermissionPromptApp(tool_name, inputs)
        with self._lock:
            self._app = app
        try:
            result = app.run()
        finally:
            with self._lock:
                if self._app is app:
                    self._app = None
        return result if result is not None else Verdict.DENY.code

    def close(self) -> bool:
        """Ask the showing dialog to close; False when none is showing."""
        with self._lock:
            app = self._app
        if app is None:
            return False
        app.request_close()
        return True


def textual_prompt(tool_name: str, inputs: dict[str, Any]) -> int:
    """Show the dialog once in the terminal and return the chosen verdict code."""
    return TextualPrompt()(tool_name, inputs)
