"""Command-line entrypoint: ``python -m ollama_bridge`` / ``ollama-bridge``."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Optional, Sequence

import uvicorn

from .config_loader import load_settings
from .core.exceptions import ConfigurationError
from .logging import setup_logging
from .main import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ollama-bridge",
        description="Serve the Anthropic Messages API on top of an Ollama backend.",
    )
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--host", help="Bind address (default 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Bind port (default 18080)")
    parser.add_argument("--base-url", help="Backend base URL, e.g. http://localhost:11434/v1")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as exc:
        setup_logging()
        logging.getLogger("ollama-bridge").error("Configuration error: %s", exc.message)
        return 1

    overrides = {
        "host": args.host,
        "port": args.port,
        "base_url": args.base_url.rstrip("/") if args.base_url else None,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    settings = dataclasses.replace(
        settings, **{key: value for key, value in overrides.items() if value is not None}
    )

    logger = setup_logging(settings.log_level)
    logger.info("Starting server on %s:%s", settings.host, settings.port)
    logger.info("Proxying to %s", settings.base_url)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
