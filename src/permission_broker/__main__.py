"""CLI entrypoint for the permission broker."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path
import threading

from .config import ensure_config_dir, load_config
from .dispatch import InlineDispatcher
from .logging_utils import configure_logging
from .service import PermissionService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="permission-broker",
        description="Approve or deny agent tool requests exchanged through a shared directory",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument(
        "--directory",
        type=Path,
        default=None,
        help="Shared request directory (overrides the config)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Process pending requests once and exit",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, start the broker and own the prompt UI on this thread."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("permission-broker")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"permission-broker {version}")
        return

    if args.config is None:
        ensure_config_dir()
    config = load_config(config_path=args.config)
    configure_logging(config["logging"])

    if args.once:
        # Prompts run inline: this thread scans and owns the terminal.
        service = PermissionService(
            config, directory=args.directory, dispatcher=InlineDispatcher()
        )
        service.scan_once()
        return

    service = PermissionService(config, directory=args.directory)
    stop_event = threading.Event()
    service.start()
    try:
        service.serve_prompts(stop_event)
    except KeyboardInterrupt:
        stop_event.set()
    finally:
        service.stop()


if __name__ == "__main__":
    main()
