"""Request timing middleware feeding ``log_api_request`` and the ``X-Process-Time`` header."""

import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from indaba.core.logging_config import get_logger
from indaba.core.monitoring import log_api_request

logger = get_logger(__name__)

# Sync replays and report exports are the usual offenders.
SLOW_REQUEST_MS = 1000


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class LogfireMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        request.state.start_time = started
        context = {"method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = _elapsed_ms(started)
            log_api_request(status_code=500, duration_ms=duration_ms, **context)
            logger.error(
                f"Unhandled error serving {context['method']} {context['path']}",
                exc_info=True,
                extra={**context, "duration_ms": duration_ms, "error": str(exc)},
            )
            raise

        duration_ms = _elapsed_ms(started)
        log_api_request(status_code=response.status_code, duration_ms=duration_ms, **context)
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"
        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(
                f"Slow API request: {context['method']} {context['path']} took {duration_ms:.2f}ms",
                extra={**context, "duration_ms": duration_ms, "status_code": response.status_code},
            )
        return response
