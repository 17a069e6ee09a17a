"""
Middleware Package

Middleware executes in reverse order of registration (last added runs
first), so the request logger is added last: it assigns the request id
before anything else runs, and the error handler inside it still sees every
unhandled exception.
"""

from fastapi import FastAPI

from shop_cache.core.config.settings import get_settings
from shop_cache.core.logging.logger import get_logger

from .error_handler import add_error_handling_middleware, register_exception_handlers
from .request_logging import add_request_logging_middleware

logger = get_logger(__name__)


def setup_middleware(app: FastAPI) -> None:
    """Register middleware and exception handlers in the correct order."""
    settings = get_settings()

    add_error_handling_middleware(
        app, include_traceback=(settings.app.ENVIRONMENT == "development")
    )
    add_request_logging_middleware(app, log_level="INFO")

    logger.info("All middleware components registered successfully")


__all__ = [
    "setup_middleware",
    "add_error_handling_middleware",
    "add_request_logging_middleware",
    "register_exception_handlers",
]
