"""
Base Exception Class

The base exception every shop cache error inherits from.
Specialized exceptions live in their themed modules.
"""

from typing import Any


class ShopCacheError(Exception):
    """
    Base exception for all shop cache service errors.

    All custom exceptions inherit from this class to enable:
    - Consistent error handling at the HTTP boundary
    - Request ID correlation
    - Structured error logging

    Attributes:
        message: Error message
        request_id: Request ID for correlation (if available)
        details: Additional error details (dict)

    Example:
        raise StoreError(
            "Shop query failed",
            details={"shop_id": 42, "operation": "get_by_id"}
        )
    """

    def __init__(
        self, message: str, request_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.request_id = request_id
        self.details = (details or {}).copy()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging/API responses.

        Returns:
            Dict with error_type, message, request_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "request_id": self.request_id,
            "details": self.details,
        }

    def with_context(self, **context) -> "ShopCacheError":
        """
        Add additional context to the error details.

        Returns:
            Self (for method chaining)
        """
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        request_id_str = f", request_id='{self.request_id}'" if self.request_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{request_id_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        request_id: str | None = None,
        **details
    ) -> "ShopCacheError":
        """
        Create an error from another exception.

        Useful for wrapping driver exceptions (redis, asyncpg) with context.

        Example:
            >>> try:
            ...     await pool.fetchrow(query, shop_id)
            ... except asyncpg.PostgresError as e:
            ...     raise StoreError.from_exception(e, shop_id=shop_id)
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, request_id=request_id, details=error_details)


class ConfigurationError(ShopCacheError):
    """Raised when configuration is invalid or missing."""
    pass
