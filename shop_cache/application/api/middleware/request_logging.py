"""
Request Logging Middleware

Assigns every request an id (taken from X-Request-ID when the client sends
one), binds it to the logging context so every cache, lock and store event
logged while serving the request carries it, echoes it on the response, and
logs method, path, status and duration.
"""

import time
import uuid
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shop_cache.core.config.constants import HEADER_REQUEST_ID
from shop_cache.core.logging.logger import clear_request_id, get_logger, set_request_id

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, log_level: str = "INFO"):
        super().__init__(app)
        self.log_level = log_level.lower()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {method} {path}",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(time.perf_counter() - start_time, 4),
            )
            raise
        finally:
            clear_request_id()

        getattr(logger, self.log_level)(
            f"Request completed: {method} {path}",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_seconds=round(time.perf_counter() - start_time, 4),
            request_id=request_id,
        )
        response.headers[HEADER_REQUEST_ID] = request_id
        return response


def add_request_logging_middleware(app: FastAPI, log_level: str = "INFO") -> None:
    app.add_middleware(RequestLoggingMiddleware, log_level=log_level)
    logger.info("Request logging middleware registered", log_level=log_level)
