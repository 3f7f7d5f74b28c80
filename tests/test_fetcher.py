# tests/test_fetcher.py

import logging
import socket
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from kraken_exporter.connection.exceptions import (
    ForbiddenError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    UnknownStatusError,
)
from kraken_exporter.connection.fetcher import HttpFetcher

URL = "https://api.kraken.com/0/public/AssetPairs"


@pytest.fixture
def fetcher():
    return HttpFetcher(timeout=5)


def _response(status_code: int, content: bytes = b"") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    return response


def test_get_returns_buffered_body(fetcher):
    with patch.object(fetcher.session, "get") as mock_get:
        mock_get.return_value = _response(200, b'{"error": [], "result": {}}')

        body = fetcher.get(URL)

        assert body == b'{"error": [], "result": {}}'
        mock_get.assert_called_once()


def test_timeout_and_tls_verification_forwarded(fetcher):
    with patch.object(fetcher.session, "get") as mock_get:
        mock_get.return_value = _response(200, b"{}")

        fetcher.get(URL, params={"pair": "XXBTZUSD"})

        args, kwargs = mock_get.call_args
        assert args[0] == URL
        assert kwargs["timeout"] == pytest.approx(5)
        assert kwargs["verify"] is True
        assert kwargs["params"] == {"pair": "XXBTZUSD"}


def test_no_auth_headers_are_sent(fetcher):
    assert "API-Key" not in fetcher.session.headers
    assert fetcher.session.headers["User-Agent"].startswith("KrakenExporter/")


@pytest.mark.parametrize(
    "status_code, error_type",
    [
        (404, NotFoundError),
        (403, ForbiddenError),
        (401, UnauthorizedError),
    ],
)
def test_status_codes_map_to_typed_errors(fetcher, status_code, error_type):
    with patch.object(fetcher.session, "get", return_value=_response(status_code)):
        with pytest.raises(error_type):
            fetcher.get(URL)


@pytest.mark.parametrize("status_code", [500, 502, 429, 302])
def test_other_status_codes_are_unknown_and_logged(fetcher, caplog, status_code):
    with patch.object(fetcher.session, "get", return_value=_response(status_code)):
        with caplog.at_level(logging.ERROR, logger="kraken_exporter.connection.fetcher"):
            with pytest.raises(UnknownStatusError) as excinfo:
                fetcher.get(URL)

    assert excinfo.value.status_code == status_code
    assert any(str(status_code) in record.getMessage() for record in caplog.records)
    assert all(record.levelno == logging.ERROR for record in caplog.records)


@pytest.mark.parametrize(
    "exception",
    [
        requests.exceptions.Timeout("timeout"),
        requests.exceptions.ConnectionError("connection reset"),
        requests.exceptions.SSLError("certificate verify failed"),
    ],
)
def test_transport_failures_map_to_transport_error(fetcher, exception):
    with patch.object(fetcher.session, "get", side_effect=exception):
        with pytest.raises(TransportError):
            fetcher.get(URL)


def test_non_positive_timeout_rejected():
    with pytest.raises(ValueError):
        HttpFetcher(timeout=0)


def test_hanging_upstream_returns_transport_error_within_timeout():
    # Accepts connections into the backlog but never answers.
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    host, port = server.getsockname()

    fetcher = HttpFetcher(timeout=1)
    fetcher.session.trust_env = False
    try:
        start = time.monotonic()
        with pytest.raises(TransportError):
            fetcher.get(f"http://{host}:{port}/0/public/AssetPairs")
        elapsed = time.monotonic() - start
    finally:
        fetcher.close()
        server.close()

    assert elapsed <= 1.25
