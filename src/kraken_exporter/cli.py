"""Command line interface for the Kraken exporter."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from kraken_exporter import APP_VERSION
from kraken_exporter.config import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_SECONDS,
    ExporterConfig,
    load_config,
)
from kraken_exporter.main import run

PORT_ENV_VAR = "RUST_API_LISTEN_PORT"
TIMEOUT_ENV_VAR = "RUST_API_TIMEOUT"


def _warn(message: str) -> None:
    print(message, file=sys.stderr)


def parse_port(value: str) -> int:
    """Parse a TCP port, falling back to 8080 with a stderr warning."""

    try:
        port = int(value)
    except (TypeError, ValueError):
        port = -1
    if not 1 <= port <= 65535:
        _warn(f"specified port isn't in a valid range, setting to {DEFAULT_PORT}")
        return DEFAULT_PORT
    return port


def parse_timeout(value: str) -> float:
    """Parse a timeout in seconds, falling back to 60 with a stderr warning."""

    try:
        timeout = float(value)
    except (TypeError, ValueError):
        timeout = -1.0
    if not timeout > 0 or timeout == float("inf"):
        _warn(f"Supplied timeout not in range, defaulting to {int(DEFAULT_TIMEOUT_SECONDS)}")
        return DEFAULT_TIMEOUT_SECONDS
    return timeout


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kraken-exporter",
        description="Prometheus exporter for Kraken public ticker data",
    )
    parser.add_argument(
        "-p",
        "--port",
        help=f"Set port to listen on (env {PORT_ENV_VAR}, default {DEFAULT_PORT})",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        help=f"Set default global timeout in seconds (env {TIMEOUT_ENV_VAR}, default {int(DEFAULT_TIMEOUT_SECONDS)})",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to a YAML config file (defaults to the user config directory)",
    )
    parser.add_argument(
        "--mode",
        choices=["pull", "lazy"],
        help="Refresh tickers on a timer (pull) or on every scrape (lazy)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def resolve_config(
    args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None
) -> ExporterConfig:
    """Apply command line and environment values on top of the config file."""

    environ = os.environ if environ is None else environ
    config = load_config(args.config)

    port_value = args.port if args.port is not None else environ.get(PORT_ENV_VAR)
    if port_value is not None:
        config.port = parse_port(port_value)

    timeout_value = args.timeout if args.timeout is not None else environ.get(TIMEOUT_ENV_VAR)
    if timeout_value is not None:
        config.timeout = parse_timeout(timeout_value)

    if args.mode:
        config.mode = args.mode

    return config


def main(argv: list[str] | None = None) -> int:
    """Entry point for the `kraken-exporter` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    return run(resolve_config(args))


if __name__ == "__main__":
    sys.exit(main())
