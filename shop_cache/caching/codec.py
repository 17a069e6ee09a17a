"""
Cache Entry Codec

Serializes shops to and from the string values stored in the cache.

Two layouts share the `cache:shop:` namespace, one per read strategy:

    plain:   {"id": 1, "name": "...", ...}
    wrapped: {"data": {"id": 1, ...}, "expireTime": 1735689600.25}

`expireTime` is epoch seconds. A wrapped entry is logically expired once
`now >= expireTime` but stays readable until it is overwritten. The empty
string is reserved for the null marker and is never a valid entry.
"""

import time
from collections.abc import Callable
from typing import Any

import orjson
from pydantic import ValidationError as PydanticValidationError

from shop_cache.core.config.constants import NULL_MARKER
from shop_cache.core.exceptions import DecodeError
from shop_cache.models import Shop

DATA_FIELD = "data"
EXPIRE_FIELD = "expireTime"


def is_null_marker(raw: str | None) -> bool:
    """True when a cached value records a confirmed-absent shop."""
    return raw is not None and raw == NULL_MARKER


class CacheEntryCodec:
    """
    Encoder/decoder for plain and logically-expiring cache entries.

    The clock is injectable so tests can pin `now` without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def encode(self, shop: Shop) -> str:
        return orjson.dumps(shop.model_dump(mode="json")).decode("utf-8")

    def encode_with_expiry(self, shop: Shop, ttl_seconds: float) -> str:
        """Wrap the shop with expireTime = now + ttl_seconds."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        payload = {
            DATA_FIELD: shop.model_dump(mode="json"),
            EXPIRE_FIELD: self._clock() + ttl_seconds,
        }
        return orjson.dumps(payload).decode("utf-8")

    def decode(self, raw: str) -> Shop:
        """
        Decode a plain entry.

        Raises:
            DecodeError: if raw is not a JSON object describing a shop
        """
        return self._to_shop(self._load_object(raw), raw)

    def decode_wrapped(self, raw: str) -> tuple[Shop, float]:
        """
        Decode a wrapped entry into (shop, expire_at).

        Raises:
            DecodeError: if the wrapper or the embedded shop is malformed
        """
        payload = self._load_object(raw)
        data = payload.get(DATA_FIELD)
        expire_at = payload.get(EXPIRE_FIELD)

        if not isinstance(data, dict):
            raise DecodeError("Wrapped cache entry has no data object", details={"raw": raw[:200]})
        if isinstance(expire_at, bool) or not isinstance(expire_at, (int, float)):
            raise DecodeError("Wrapped cache entry has no numeric expireTime", details={"raw": raw[:200]})

        return self._to_shop(data, raw), float(expire_at)

    def is_expired(self, expire_at: float) -> bool:
        return self._clock() >= expire_at

    @staticmethod
    def _load_object(raw: str) -> dict[str, Any]:
        if not raw:
            raise DecodeError("Empty cache payload")
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise DecodeError.from_exception(e, "Cache payload is not valid JSON", raw=raw[:200]) from e
        if not isinstance(payload, dict):
            raise DecodeError("Cache payload is not a JSON object", details={"raw": raw[:200]})
        return payload

    @staticmethod
    def _to_shop(data: dict[str, Any], raw: str) -> Shop:
        try:
            shop = Shop.model_validate(data)
        except PydanticValidationError as e:
            raise DecodeError.from_exception(e, "Cache payload is not a shop", raw=raw[:200]) from e
        if shop.id is None:
            raise DecodeError("Cached shop has no id", details={"raw": raw[:200]})
        return shop
