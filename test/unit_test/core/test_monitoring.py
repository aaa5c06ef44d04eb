"""
Unit tests for the Logfire monitoring module.

This test suite covers:
- Logfire initialization with various configurations
- Feature flag handling
- Logging helpers (API requests, sync replays, AI calls, errors)
- Graceful degradation when Logfire is disabled
"""

from unittest.mock import MagicMock, patch

import pytest

import indaba.core.monitoring as monitoring


@pytest.fixture(autouse=True)
def _reset_configured():
    with patch.object(monitoring, "_logfire_configured", False):
        yield


class TestInitializeLogfire:
    """Test Logfire initialization."""

    def test_disabled_returns_false(self):
        with patch.object(monitoring, "LOGFIRE_ENABLED", False), patch.object(monitoring, "logfire") as mock_logfire:
            assert monitoring.initialize_logfire() is False

        mock_logfire.configure.assert_not_called()
        assert monitoring.is_logfire_configured() is False

    def test_enabled_without_token_returns_false(self):
        with patch.object(monitoring, "LOGFIRE_ENABLED", True), patch.object(monitoring, "LOGFIRE_TOKEN", ""), patch.object(
            monitoring, "logfire"
        ) as mock_logfire:
            assert monitoring.initialize_logfire() is False

        mock_logfire.configure.assert_not_called()

    def test_enabled_configures_and_instruments(self):
        app = MagicMock()
        with patch.object(monitoring, "LOGFIRE_ENABLED", True), patch.object(
            monitoring, "LOGFIRE_TOKEN", "token-123"
        ), patch.object(monitoring, "logfire") as mock_logfire:
            assert monitoring.initialize_logfire(app) is True
            assert monitoring.is_logfire_configured() is True

        mock_logfire.configure.assert_called_once()
        assert mock_logfire.configure.call_args.kwargs["token"] == "token-123"
        mock_logfire.instrument_pydantic_ai.assert_called_once()
        mock_logfire.instrument_sqlalchemy.assert_called_once()
        mock_logfire.instrument_httpx.assert_called_once()
        mock_logfire.instrument_fastapi.assert_called_once_with(app=app)

    def test_fastapi_instrumentation_skipped_without_app(self):
        with patch.object(monitoring, "LOGFIRE_ENABLED", True), patch.object(
            monitoring, "LOGFIRE_TOKEN", "token-123"
        ), patch.object(monitoring, "logfire") as mock_logfire:
            monitoring.initialize_logfire()

        mock_logfire.instrument_fastapi.assert_not_called()

    def test_feature_flags_disable_instrumentation(self):
        with patch.object(monitoring, "LOGFIRE_ENABLED", True), patch.object(
            monitoring, "LOGFIRE_TOKEN", "token-123"
        ), patch.object(monitoring, "LOGFIRE_TRACE_SQLALCHEMY", False), patch.object(
            monitoring, "LOGFIRE_TRACE_HTTPX", False
        ), patch.object(monitoring, "logfire") as mock_logfire:
            monitoring.initialize_logfire()

        mock_logfire.instrument_sqlalchemy.assert_not_called()
        mock_logfire.instrument_httpx.assert_not_called()
        mock_logfire.instrument_pydantic_ai.assert_called_once()

    def test_configure_failure_returns_false(self):
        with patch.object(monitoring, "LOGFIRE_ENABLED", True), patch.object(
            monitoring, "LOGFIRE_TOKEN", "token-123"
        ), patch.object(monitoring, "logfire") as mock_logfire:
            mock_logfire.configure.side_effect = RuntimeError("boom")
            assert monitoring.initialize_logfire() is False

        assert monitoring.is_logfire_configured() is False

    def test_instrumentation_failure_is_not_fatal(self):
        with patch.object(monitoring, "LOGFIRE_ENABLED", True), patch.object(
            monitoring, "LOGFIRE_TOKEN", "token-123"
        ), patch.object(monitoring, "logfire") as mock_logfire:
            mock_logfire.instrument_sqlalchemy.side_effect = RuntimeError("not installed")
            assert monitoring.initialize_logfire() is True


class TestLoggingHelpers:
    """Helpers send to Logfire only when it is configured."""

    def test_helpers_skip_logfire_when_not_configured(self):
        with patch.object(monitoring, "logfire") as mock_logfire:
            monitoring.log_api_request("GET", "/health", 200, 1.5)
            monitoring.log_sync_operation("u1", "CREATE", "Observation", "r1", "Completed")
            monitoring.log_ai_call("observation_tags", "gpt-4o-mini", ok=True, duration_ms=10.0)
            monitoring.log_error("ValueError", "bad", {"path": "/x"})

        mock_logfire.info.assert_not_called()
        mock_logfire.error.assert_not_called()

    def test_log_api_request_when_configured(self):
        with patch.object(monitoring, "_logfire_configured", True), patch.object(monitoring, "logfire") as mock_logfire:
            monitoring.log_api_request("POST", "/api/v1/auth/login", 401, 12.0)

        mock_logfire.info.assert_called_once()
        kwargs = mock_logfire.info.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["status_code"] == 401

    def test_log_sync_operation_when_configured(self):
        with patch.object(monitoring, "_logfire_configured", True), patch.object(monitoring, "logfire") as mock_logfire:
            monitoring.log_sync_operation("u1", "DELETE", "Message", "m1", "Failed")

        assert mock_logfire.info.call_args.kwargs["status"] == "Failed"

    def test_log_ai_call_when_configured(self):
        with patch.object(monitoring, "_logfire_configured", True), patch.object(monitoring, "logfire") as mock_logfire:
            monitoring.log_ai_call("message_summary", "gpt-4o-mini", ok=False, duration_ms=3.0)

        assert mock_logfire.info.call_args.kwargs["ok"] is False

    def test_log_error_when_configured(self):
        with patch.object(monitoring, "_logfire_configured", True), patch.object(monitoring, "logfire") as mock_logfire:
            monitoring.log_error("KeyError", "missing", {"error_id": 1})

        mock_logfire.error.assert_called_once()
        assert mock_logfire.error.call_args.kwargs["error_id"] == 1
