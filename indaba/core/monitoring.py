"""
Pydantic Logfire integration for Indaba Care.

Logfire is opt-in (``LOGFIRE_ENABLED`` plus ``LOGFIRE_TOKEN``). Until it is
configured, the ``log_*`` helpers below write a DEBUG line to the standard
logger instead, so call sites never need to check.
"""

import logging
import os
from typing import Any, Callable, Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


LOGFIRE_ENABLED = _env_flag("LOGFIRE_ENABLED", "false")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_PROJECT_NAME = os.getenv("LOGFIRE_PROJECT_NAME", "indaba")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "indaba-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

LOGFIRE_TRACE_PYDANTIC_AI = _env_flag("LOGFIRE_TRACE_PYDANTIC_AI", "true")
LOGFIRE_TRACE_SQLALCHEMY = _env_flag("LOGFIRE_TRACE_SQLALCHEMY", "true")
LOGFIRE_TRACE_HTTPX = _env_flag("LOGFIRE_TRACE_HTTPX", "true")
LOGFIRE_TRACE_FASTAPI = _env_flag("LOGFIRE_TRACE_FASTAPI", "true")

_logfire_configured = False


def _instrumentations(app: Optional[FastAPI]) -> list[tuple[str, bool, Callable[[], Any]]]:
    return [
        ("Pydantic AI", LOGFIRE_TRACE_PYDANTIC_AI, logfire.instrument_pydantic_ai),
        ("SQLAlchemy", LOGFIRE_TRACE_SQLALCHEMY, logfire.instrument_sqlalchemy),
        ("HTTPX", LOGFIRE_TRACE_HTTPX, logfire.instrument_httpx),
        ("FastAPI", LOGFIRE_TRACE_FASTAPI and app is not None, lambda: logfire.instrument_fastapi(app=app)),
    ]


def initialize_logfire(app: FastAPI | None = None) -> bool:
    """Configure Logfire and switch on the enabled instrumentations.

    A failing instrumentation (usually a missing optional extra) is logged
    and skipped; a failing ``logfire.configure`` leaves monitoring off.

    Returns:
        Whether Logfire is now receiving data.
    """
    global _logfire_configured

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False
    if not LOGFIRE_TOKEN:
        logger.warning("LOGFIRE_ENABLED is set without LOGFIRE_TOKEN; monitoring stays off.")
        return False

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return False
    _logfire_configured = True

    for name, enabled, instrument in _instrumentations(app):
        if not enabled:
            continue
        try:
            instrument()
        except Exception as e:
            logger.warning(f"Logfire: {name} instrumentation failed: {e}")
        else:
            logger.info(f"Logfire: {name} instrumentation enabled")

    logger.info(
        f"Logfire monitoring initialized for {LOGFIRE_SERVICE_NAME} "
        f"(project={LOGFIRE_PROJECT_NAME}, environment={LOGFIRE_ENVIRONMENT})"
    )
    return True


def is_logfire_configured() -> bool:
    return _logfire_configured


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    if not _logfire_configured:
        logger.debug(f"API request: {method} {path} -> {status_code} ({duration_ms:.2f}ms)")
        return
    logfire.info("API request completed", method=method, path=path, status_code=status_code, duration_ms=duration_ms)


def log_sync_operation(user_id: str, operation_type: str, model_name: str, record_id: str, status: str) -> None:
    """Record the outcome (``Completed`` or ``Failed``) of one replayed offline operation."""
    if not _logfire_configured:
        logger.debug(f"Sync {operation_type} {model_name}/{record_id} for user {user_id}: {status}")
        return
    logfire.info(
        "Sync operation replayed",
        user_id=user_id,
        operation_type=operation_type,
        model_name=model_name,
        record_id=record_id,
        status=status,
    )


def log_ai_call(feature: str, model: str, ok: bool, duration_ms: float) -> None:
    """Record an AI helper call.

    Args:
        feature: ``observation_tags``, ``message_summary`` or ``child_summary``.
        model: Model name the call went to.
        ok: False when the rule-based fallback had to answer instead.
        duration_ms: Wall time of the call.
    """
    if not _logfire_configured:
        logger.debug(f"AI call {feature} on {model}: ok={ok} ({duration_ms:.2f}ms)")
        return
    logfire.info("AI call completed", feature=feature, model=model, ok=ok, duration_ms=duration_ms)


def log_error(error_type: str, error_message: str, context: Optional[dict[str, Any]] = None) -> None:
    if not _logfire_configured:
        logger.debug(f"{error_type}: {error_message} {context or {}}")
        return
    logfire.error("{error_type}: {error_message}", error_type=error_type, error_message=error_message, **(context or {}))
