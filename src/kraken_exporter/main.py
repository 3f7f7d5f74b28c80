"""Long-running exporter entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from kraken_exporter import APP_VERSION
from kraken_exporter.config import ExporterConfig
from kraken_exporter.context import ExporterContext, build_context
from kraken_exporter.logging_config import configure_logging, structured_log_extra
from kraken_exporter.web.api import create_api

logger = logging.getLogger(__name__)


def _build_server(context: ExporterContext) -> uvicorn.Server:
    app = create_api(context)
    config = uvicorn.Config(
        app,
        host=context.config.host,
        port=context.config.port,
        log_level=context.config.log_level.lower(),
        log_config=None,
    )
    return uvicorn.Server(config)


def _shutdown(context: ExporterContext, *, reason: str) -> None:
    """Stop the cycle runner and release the upstream session."""

    logger.info("Initiating shutdown", extra=structured_log_extra(event="shutdown", reason=reason))
    try:
        context.close()
    except Exception as exc:  # pragma: no cover - defensive logging
        logger.error("Error during shutdown: %s", exc)
    logger.info("Shutdown complete", extra=structured_log_extra(event="shutdown_complete", reason=reason))


def run(config: ExporterConfig) -> int:
    """Serve ``/metrics`` until interrupted; return the process exit code."""

    configure_logging(level=config.log_level)

    try:
        context = build_context(config)
        server = _build_server(context)
    except Exception:
        logger.exception("Failed to initialize exporter", extra=structured_log_extra(event="startup_failed"))
        return 1

    logger.info(
        "Starting Kraken exporter",
        extra=structured_log_extra(
            event="startup",
            app_version=APP_VERSION,
            host=config.host,
            port=config.port,
            mode=config.mode,
            strategy=config.strategy,
            timeout=config.timeout,
        ),
    )

    if config.mode == "pull":
        context.runner.start(config.effective_interval)

    # uvicorn handles SIGINT/SIGTERM and exits via SystemExit(1) when the
    # port cannot be bound.
    exit_code = 0
    try:
        server.run()
    except SystemExit as exc:
        exit_code = exc.code if isinstance(exc.code, int) else 1
    finally:
        _shutdown(context, reason="server_exit")

    if exit_code == 0 and not server.started:
        logger.error("HTTP server did not start", extra=structured_log_extra(event="bind_failed", port=config.port))
        exit_code = 1
    return exit_code


__all__ = ["run"]
