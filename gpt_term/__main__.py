"""CLI entrypoint for gpt-term."""

from __future__ import annotations

import argparse
from importlib import metadata
import logging
import sys
from typing import Sequence

from .config import load_config, require_api_key
from .exceptions import MissingCredentialError, PersistenceError
from .logging_utils import configure_logging
from .persistence import ConversationPersistence

LOGGER = logging.getLogger(__name__)

FALLBACK_VERSION = "1.0.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpt-term", description="Terminal chat that proposes shell commands"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    return parser


def _version() -> str:
    try:
        return metadata.version("gpt-term")
    except metadata.PackageNotFoundError:
        return FALLBACK_VERSION


def main(argv: Sequence[str] | None = None) -> int:
    """Handle CLI flags, check startup requirements, and run the TUI."""
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        print(f"gpt-term version {_version()}")
        return 0

    config = load_config()
    configure_logging(config["logging"])

    try:
        require_api_key(config["assistant"])
    except MissingCredentialError as exc:
        print(f"Error: {exc}")
        return 1

    store = ConversationPersistence(str(config["persistence"]["directory"]))
    try:
        store.ensure_ready()
    except PersistenceError as exc:
        print(f"Error initializing storage: {exc}")
        return 1

    # Imported late so --version and startup errors do not pay for Textual.
    from .app import GptTermApp

    LOGGER.info("app.start", extra={"event": "app.start", "version": _version()})
    GptTermApp(config, store=store).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
