"""Domain exception hierarchy for the permission broker."""

from __future__ import annotations

from pathlib import Path


class PermissionBrokerError(RuntimeError):
    """Base class for all domain-level broker errors."""


class ConfigValidationError(PermissionBrokerError):
    """Raised when configuration cannot be validated safely."""


class MalformedRequestError(PermissionBrokerError):
    """Raised when a request artifact cannot be decoded into a request."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Malformed request artifact {path.name}: {reason}")
        self.path = path
        self.reason = reason


class AuthorityError(PermissionBrokerError):
    """Raised when the external prompt provider fails to produce a verdict."""
