"""Shared plumbing for the mcpack command-line tools."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from pydantic import ValidationError

from mcpack.config import Settings


def configure_logging(debug: bool) -> None:
    """Configure CLI logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stderr,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dir", "-d", default=None, help="Project directory (default: PROJECT_DIR or current)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")


def fail(message: object) -> NoReturn:
    print(f"Error: {message}")
    sys.exit(1)


def load_settings(args: argparse.Namespace) -> Settings:
    """Load settings from the environment, applying ``--dir`` and ``--verbose``."""
    try:
        settings = Settings()
    except ValidationError as exc:
        fail(f"Invalid configuration: {exc}")
    if args.dir is not None:
        settings.project_dir = Path(args.dir)
    if args.verbose:
        settings.debug = True
    configure_logging(settings.debug)
    return settings
