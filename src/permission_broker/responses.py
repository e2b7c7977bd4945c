"""Response artifacts observed by the waiting caller."""

from __future__ import annotations

import json
import logging

from .store import RequestStore

LOGGER = logging.getLogger(__name__)


class ResponseWriter:
    """Persist ``{"allow": <bool>}`` as ``response-<requestId>.json``.

    Failures are logged and reported through the return value only; a caller
    that never sees a response applies its own timeout.
    """

    def __init__(self, store: RequestStore) -> None:
        self._store = store

    def write(self, request_id: str, allow: bool) -> bool:
        target = self._store.response_path(request_id)
        try:
            target.write_text(json.dumps({"allow": bool(allow)}), encoding="utf-8")
        except OSError as exc:
            LOGGER.warning(
                "response.write_failed",
                extra={
                    "event": "response.write_failed",
                    "request_id": request_id,
                    "path": str(target),
                    "error": str(exc),
                },
            )
            return False
        LOGGER.info(
            "response.written",
            extra={
                "event": "response.written",
                "request_id": request_id,
                "allow": bool(allow),
                "path": str(target),
            },
        )
        return True
