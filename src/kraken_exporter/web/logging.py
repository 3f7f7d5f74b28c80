"""HTTP-specific logging helpers."""

from __future__ import annotations

from starlette.requests import Request

from kraken_exporter.logging_config import structured_log_extra


def build_request_log_extra(
    request: Request | None, event: str | None = None, **kwargs
):
    """Build a structured ``extra`` payload for HTTP logs.

    Every entry carries a ``request_id`` and ``event`` plus the method and
    path of the ``Request`` when one is available.
    """

    request_id = None
    route_metadata = {}

    if request is not None:
        request_id = getattr(request.state, "request_id", None) or request.headers.get(
            "X-Request-ID"
        )
        route_metadata = {"http_method": request.method, "path": request.url.path}

    log_event = kwargs.pop("event", event) or "http_request"

    return structured_log_extra(
        request_id=request_id,
        event=log_event,
        **route_metadata,
        **kwargs,
    )


__all__ = ["build_request_log_extra"]
