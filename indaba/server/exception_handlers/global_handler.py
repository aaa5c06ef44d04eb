"""
Error-to-response mapping for the Indaba Care API.

``IndabaError`` subclasses carry their own status code, so routers and
services simply raise them. Anything else escaping a route is a bug: it is
logged with an ``error_id`` that the client also receives.
"""

import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from indaba.core.errors import IndabaError
from indaba.core.logging_config import get_logger
from indaba.core.monitoring import log_error

logger = get_logger(__name__)


def _error_body(exc: Exception, detail: str, **extra) -> dict:
    return {"detail": detail, "error_type": type(exc).__name__, **extra}


async def indaba_error_handler(request: Request, exc: IndabaError) -> JSONResponse:
    summary = f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.message}"
    # 4xx are expected client mistakes; only server-side domain errors are alarming.
    if exc.status_code >= 500:
        logger.error(summary)
    else:
        logger.info(summary)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc, exc.message))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer an unexpected exception with a 500 and an ``error_id`` for support requests."""
    error_id = id(exc)
    path = request.url.path
    context = {
        "error_id": error_id,
        "method": request.method,
        "path": path,
        "query_params": dict(request.query_params),
        "client": request.client.host if request.client else "unknown",
        "error_type": type(exc).__name__,
    }
    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {path}: {exc}",
        exc_info=True,
        extra={**context, "traceback": traceback.format_exc()},
    )
    log_error(type(exc).__name__, str(exc), {"error_id": error_id, "path": path})
    return JSONResponse(status_code=500, content=_error_body(exc, "Internal server error", error_id=error_id))


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IndabaError, indaba_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered")
