"""In-memory cache of remembered permission verdicts."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import Any

from .verdict import Verdict

LOGGER = logging.getLogger(__name__)


def scoped_key(tool_name: str, inputs: dict[str, Any]) -> str:
    """Return the scoped memory key for a tool and its inputs.

    The digest covers the inputs exactly as serialized, in insertion order.
    Equal inputs written with a different key order produce different keys.
    """
    rendered = json.dumps(
        inputs, ensure_ascii=False, separators=(",", ":"), default=str
    )
    digest = hashlib.sha256(rendered.encode("utf-8")).hexdigest()
    return f"{tool_name}:{digest}"


class DecisionMemory:
    """Process-lifetime verdict cache with tool-level and scoped entries.

    Tool-level entries answer every request for a tool regardless of inputs.
    Scoped entries answer exact repeats of a tool plus inputs. Entries are
    never evicted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tool_level: dict[str, bool] = {}
        self._scoped: dict[str, Verdict] = {}

    def lookup_tool_level(self, tool_name: str) -> bool | None:
        with self._lock:
            return self._tool_level.get(tool_name)

    def lookup_scoped(self, tool_name: str, inputs: dict[str, Any]) -> Verdict | None:
        key = scoped_key(tool_name, inputs)
        with self._lock:
            return self._scoped.get(key)

    def remember_tool_level(self, tool_name: str, allow: bool) -> None:
        with self._lock:
            self._tool_level[tool_name] = allow
        LOGGER.info(
            "memory.tool_level.remembered",
            extra={
                "event": "memory.tool_level.remembered",
                "tool_name": tool_name,
                "allow": allow,
            },
        )

    def remember_scoped(
        self, tool_name: str, inputs: dict[str, Any], verdict: Verdict
    ) -> None:
        key = scoped_key(tool_name, inputs)
        with self._lock:
            self._scoped[key] = verdict
        LOGGER.info(
            "memory.scoped.remembered",
            extra={
                "event": "memory.scoped.remembered",
                "tool_name": tool_name,
                "verdict": verdict.name,
            },
        )

    def snapshot(self) -> dict[str, int]:
        """Return entry counts for diagnostics."""
        with self._lock:
            return {"tool_level": len(self._tool_level), "scoped": len(self._scoped)}
