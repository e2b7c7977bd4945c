"""Permission requests, verdicts and the decisions broadcast to observers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Verdict(IntEnum):
    """Outcome of a permission request; the integer value is the wire code."""

    ALLOW = 1
    ALLOW_ALWAYS = 2
    DENY = 3

    @classmethod
    def from_code(cls, code: Any) -> Verdict:
        """Decode a wire code; anything unrecognized is treated as a denial."""
        if isinstance(code, bool) or not isinstance(code, int):
            return cls.DENY
        try:
            return cls(code)
        except ValueError:
            return cls.DENY

    @property
    def code(self) -> int:
        return int(self)

    @property
    def is_allow(self) -> bool:
        return self in (Verdict.ALLOW, Verdict.ALLOW_ALWAYS)

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    Verdict.ALLOW: "Allow",
    Verdict.ALLOW_ALWAYS: "Allow always",
    Verdict.DENY: "Deny",
}


class PermissionRequest(BaseModel):
    """A pending ask written by the caller as ``request-<opaque>.json``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)
    request_id: str = Field(alias="requestId")
    tool_name: str = Field(alias="toolName")
    inputs: dict[str, Any] = Field(alias="inputs")

    @field_validator("request_id", mode="before")
    @classmethod
    def _validate_request_id(cls, value: Any) -> str:
        # Kept verbatim: it names the response file the caller waits for.
        if not isinstance(value, str):
            raise ValueError("requestId must be a string.")
        if not value.strip():
            raise ValueError("requestId must not be empty.")
        if any(char in value for char in ("/", "\\", "\x00")):
            raise ValueError("requestId must not contain path separators.")
        return value

    @field_validator("tool_name", mode="before")
    @classmethod
    def _validate_tool_name(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("toolName must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("toolName must not be empty.")
        return normalized

    @field_validator("inputs", mode="before")
    @classmethod
    def _validate_inputs(cls, value: Any) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise ValueError("inputs must be a JSON object.")
        return value


@dataclass(frozen=True)
class Decision:
    """Resolution of one request, passed to the registered decision listener."""

    tool_name: str
    inputs: dict[str, Any]
    verdict: Verdict

    @property
    def allowed(self) -> bool:
        return self.verdict.is_allow
