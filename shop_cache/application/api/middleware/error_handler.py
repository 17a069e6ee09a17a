"""
Error Handling

Two layers turn exceptions into responses:

1. One exception handler (`register_exception_handlers`) for the service's
   own hierarchy:
   - LockRetryExhaustedError  -> 503 (sustained rebuild contention)
   - CacheError, StoreError   -> 503 (a collaborator is unavailable)
   - any other ShopCacheError -> 500
   Validation failures never reach it: the shop service returns them as a
   failed Result with HTTP 200.
2. ErrorHandlingMiddleware, a catch-all for anything else, which logs the
   full traceback and returns a generic 500 body.
"""

import traceback
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shop_cache.core.config.constants import HEADER_REQUEST_ID
from shop_cache.core.exceptions import (
    CacheError,
    LockRetryExhaustedError,
    ShopCacheError,
    StoreError,
)
from shop_cache.core.logging.logger import get_logger, get_request_id
from shop_cache.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

UNAVAILABLE_ERRORS = (LockRetryExhaustedError, CacheError, StoreError)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Last line of defense for exceptions no handler claimed.

    Clients get a generic message; the details stay in the server log unless
    include_traceback is set (development only).
    """

    def __init__(self, app, include_traceback: bool = False):
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )
            get_metrics_collector().record_error(error_type, "unhandled_exception")

            error_response = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred while processing your request",
                "error_type": error_type,
            }
            if self.include_traceback:
                error_response["traceback"] = traceback.format_exc()
                error_response["detail"] = str(e)

            return JSONResponse(status_code=500, content=error_response)


async def shop_cache_error_handler(request: Request, exc: ShopCacheError) -> JSONResponse:
    """Map internal failures to 503 or 500."""
    request_id = exc.request_id or get_request_id()
    status_code = 503 if isinstance(exc, UNAVAILABLE_ERRORS) else 500

    logger.error(
        f"Shop cache error: {exc.message}",
        error_type=type(exc).__name__,
        details=exc.details,
        status_code=status_code,
    )
    get_metrics_collector().record_error(type(exc).__name__, "request")

    exc.request_id = request_id
    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict(),
        headers={HEADER_REQUEST_ID: request_id or ""},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopCacheError, shop_cache_error_handler)


def add_error_handling_middleware(app: FastAPI, include_traceback: bool = False) -> None:
    """
    Add the catch-all middleware and the exception handlers.

    The middleware should be registered early so it also covers errors raised
    by other middleware.
    """
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback)
    register_exception_handlers(app)
    logger.info("Error handling middleware registered", include_traceback=include_traceback)
