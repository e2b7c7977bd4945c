"""Filesystem contract shared with the caller process."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import tempfile

from pydantic import ValidationError

from .exceptions import MalformedRequestError
from .verdict import PermissionRequest

LOGGER = logging.getLogger(__name__)

DEFAULT_DIRECTORY_NAME = "claude-permission"
REQUEST_PREFIX = "request-"
RESPONSE_PREFIX = "response-"
ARTIFACT_SUFFIX = ".json"


def default_directory(
    base_directory: str = "", directory_name: str = DEFAULT_DIRECTORY_NAME
) -> Path:
    """Resolve the shared directory, defaulting to the OS temp directory."""
    base = Path(base_directory).expanduser() if base_directory else Path(tempfile.gettempdir())
    return base / directory_name


class RequestStore:
    """Discover, decode and remove request artifacts in the shared directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def ensure_directory(self) -> bool:
        """Create the shared directory if needed; return whether it exists."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.warning(
                "store.directory.create_failed",
                extra={
                    "event": "store.directory.create_failed",
                    "directory": str(self.directory),
                    "error": str(exc),
                },
            )
            return False
        return True

    def list_requests(self) -> list[Path]:
        """Return request artifacts currently present, ordered by name."""
        try:
            candidates = [
                entry
                for entry in self.directory.iterdir()
                if entry.name.startswith(REQUEST_PREFIX)
                and entry.name.endswith(ARTIFACT_SUFFIX)
                and entry.is_file()
            ]
        except OSError as exc:
            LOGGER.warning(
                "store.directory.list_failed",
                extra={
                    "event": "store.directory.list_failed",
                    "directory": str(self.directory),
                    "error": str(exc),
                },
            )
            return []
        return sorted(candidates, key=lambda entry: entry.name)

    def read_request(self, path: Path) -> PermissionRequest:
        """Decode a request artifact.

        Raises MalformedRequestError for undecodable content. Read failures
        (for example a file removed by another scan) surface as OSError.
        """
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRequestError(path, "invalid UTF-8") from exc
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as exc:
            raise MalformedRequestError(path, f"invalid JSON: {exc.msg}") from exc
        if not isinstance(payload, dict):
            raise MalformedRequestError(path, "body is not a JSON object")
        try:
            return PermissionRequest.model_validate(payload)
        except ValidationError as exc:
            fields = ", ".join(
                ".".join(str(part) for part in error["loc"]) for error in exc.errors()
            )
            raise MalformedRequestError(path, f"invalid fields: {fields}") from exc

    def remove_request(self, path: Path) -> bool:
        """Delete a request artifact; a missing file counts as removed."""
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning(
                "store.request.remove_failed",
                extra={
                    "event": "store.request.remove_failed",
                    "path": str(path),
                    "error": str(exc),
                },
            )
            return False
        LOGGER.debug(
            "store.request.removed",
            extra={"event": "store.request.removed", "path": str(path)},
        )
        return True

    def response_path(self, request_id: str) -> Path:
        return self.directory / f"{RESPONSE_PREFIX}{request_id}{ARTIFACT_SUFFIX}"
