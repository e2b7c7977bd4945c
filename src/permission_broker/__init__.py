"""Top-level package for permission-broker."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import ensure_config_dir, load_config
    from .exceptions import (
        AuthorityError,
        ConfigValidationError,
        MalformedRequestError,
        PermissionBrokerError,
    )
    from .memory import DecisionMemory
    from .service import PermissionService
    from .verdict import Decision, PermissionRequest, Verdict

__all__ = [
    "AuthorityError",
    "ConfigValidationError",
    "Decision",
    "DecisionMemory",
    "MalformedRequestError",
    "PermissionBrokerError",
    "PermissionRequest",
    "PermissionService",
    "Verdict",
    "ensure_config_dir",
    "load_config",
]


def __getattr__(name: str) -> Any:
    """Lazily import symbols so the Textual prompt is only loaded when used."""
    if name == "PermissionService":
        from .service import PermissionService

        return PermissionService
    if name in {"ensure_config_dir", "load_config"}:
        from .config import ensure_config_dir, load_config

        return {"ensure_config_dir": ensure_config_dir, "load_config": load_config}[name]
    if name in {
        "AuthorityError",
        "ConfigValidationError",
        "MalformedRequestError",
        "PermissionBrokerError",
    }:
        from .exceptions import (
            AuthorityError,
            ConfigValidationError,
            MalformedRequestError,
            PermissionBrokerError,
        )

        return {
            "AuthorityError": AuthorityError,
            "ConfigValidationError": ConfigValidationError,
            "MalformedRequestError": MalformedRequestError,
            "PermissionBrokerError": PermissionBrokerError,
        }[name]
    if name in {"Decision", "PermissionRequest", "Verdict"}:
        from .verdict import Decision, PermissionRequest, Verdict

        return {
            "Decision": Decision,
            "PermissionRequest": PermissionRequest,
            "Verdict": Verdict,
        }[name]
    if name == "DecisionMemory":
        from .memory import DecisionMemory

        return DecisionMemory
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
