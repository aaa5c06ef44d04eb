"""Unit tests for the request timing middleware."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from starlette.responses import Response

from indaba.server.middleware.logfire_middleware import SLOW_REQUEST_MS, LogfireMiddleware

MODULE = "indaba.server.middleware.logfire_middleware"


def _mock_request(method: str = "GET", path: str = "/api/v1/test") -> AsyncMock:
    request = AsyncMock(spec=Request)
    request.method = method
    request.url.path = path
    request.state = MagicMock()
    return request


class TestLogfireMiddlewareDispatch:
    """Test LogfireMiddleware.dispatch method."""

    async def test_middleware_processes_successful_request(self):
        async def call_next(request):
            return Response(content="ok", status_code=201)

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch(f"{MODULE}.log_api_request") as mock_log:
            response = await middleware.dispatch(_mock_request("POST", "/api/v1/observations"), call_next)

        assert response.status_code == 201
        mock_log.assert_called_once()
        kwargs = mock_log.call_args[1]
        assert kwargs["method"] == "POST"
        assert kwargs["path"] == "/api/v1/observations"
        assert kwargs["status_code"] == 201
        assert kwargs["duration_ms"] >= 0

    async def test_middleware_adds_process_time_header(self):
        async def call_next(request):
            return Response(content="ok", status_code=200)

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch(f"{MODULE}.log_api_request"):
            response = await middleware.dispatch(_mock_request(), call_next)

        assert float(response.headers["X-Process-Time"]) >= 0

    async def test_middleware_detects_slow_requests(self):
        async def call_next(request):
            return Response(content="ok", status_code=200)

        middleware = LogfireMiddleware(app=AsyncMock())
        start = 1000.0

        with (
            patch(f"{MODULE}.log_api_request"),
            patch(f"{MODULE}.logger") as mock_logger,
            patch(f"{MODULE}.time.perf_counter", side_effect=[start, start + (SLOW_REQUEST_MS + 500) / 1000]),
        ):
            await middleware.dispatch(_mock_request(path="/api/v1/slow"), call_next)

        mock_logger.warning.assert_called_once()
        assert "Slow API request" in mock_logger.warning.call_args[0][0]
        assert mock_logger.warning.call_args[1]["extra"]["path"] == "/api/v1/slow"

    async def test_fast_requests_are_not_flagged(self):
        async def call_next(request):
            return Response(content="ok", status_code=200)

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch(f"{MODULE}.log_api_request"), patch(f"{MODULE}.logger") as mock_logger:
            await middleware.dispatch(_mock_request(), call_next)

        mock_logger.warning.assert_not_called()

    async def test_middleware_logs_and_reraises_errors(self):
        async def call_next(request):
            raise RuntimeError("handler exploded")

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch(f"{MODULE}.log_api_request") as mock_log, patch(f"{MODULE}.logger") as mock_logger:
            with pytest.raises(RuntimeError, match="handler exploded"):
                await middleware.dispatch(_mock_request(), call_next)

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[1]["extra"]["error"] == "handler exploded"
        assert mock_log.call_args[1]["status_code"] == 500


class TestLogfireMiddlewareIntegration:
    """Run the middleware inside a FastAPI application."""

    async def test_header_on_real_response(self):
        app = FastAPI()
        app.add_middleware(LogfireMiddleware)

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        with patch(f"{MODULE}.log_api_request") as mock_log:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.get("/ping")

        assert response.status_code == 200
        assert "x-process-time" in response.headers
        assert mock_log.call_args[1]["path"] == "/ping"
