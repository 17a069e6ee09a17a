"""
System Constants and Enumerations

Cache key namespaces, TTL defaults and stage identifiers shared by the
read strategies, the rebuild scheduler and the write-invalidation path.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for key prefixes and TTLs
- Type-safe enums for stage labels in structured logs
"""

from enum import Enum

# ============================================================================
# Cache Key Namespaces
# ============================================================================
# Data keys and lock keys live in disjoint namespaces so lock traffic can
# never overwrite a cached entry.

CACHE_SHOP_KEY = "cache:shop:"
LOCK_SHOP_KEY = "lock:shop:"

# Cached value recording "confirmed absent in primary store"
NULL_MARKER = ""

# Arbitrary sentinel stored under a lock key when no ownership token is used
LOCK_SENTINEL = "1"


# ============================================================================
# TTLs (seconds)
# ============================================================================

CACHE_SHOP_TTL = 30 * 60
CACHE_NULL_TTL = 2 * 60
LOCK_SHOP_TTL = 10
LOGICAL_EXPIRE_SECONDS = 20


# ============================================================================
# Mutex Rebuild Retry Policy
# ============================================================================

MUTEX_RETRY_INTERVAL_MS = 50
MUTEX_RETRY_MAX_INTERVAL_MS = 200
MUTEX_MAX_RETRIES = 100


# ============================================================================
# Background Rebuild Pool
# ============================================================================

REBUILD_WORKERS = 10
REBUILD_QUEUE_SIZE = 100
REBUILD_SHUTDOWN_TIMEOUT = 5.0


# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"


class ReadStrategyName(str, Enum):
    """
    Read strategies available to the shop query path.

    Exactly one is configured per process; it is not switched per request.
    """

    PASS_THROUGH = "pass_through"
    MUTEX = "mutex"
    LOGICAL_EXPIRE = "logical_expire"


class CacheOutcome(str, Enum):
    """Outcome label for a single cache lookup."""

    HIT = "hit"
    NULL_HIT = "null_hit"
    MISS = "miss"
    STALE = "stale"
    CORRUPT = "corrupt"


class Stage(str, Enum):
    """
    Stage identifiers attached to every structured log entry.

    Format: {AREA}.{STEP}
    """

    CACHE_HIT = "CACHE.2_HIT"
    CACHE_NULL_HIT = "CACHE.3_NULL_HIT"
    CACHE_MISS = "CACHE.4_MISS"
    CACHE_POPULATE = "CACHE.5_POPULATE"
    CACHE_CORRUPT = "CACHE.6_CORRUPT"
    CACHE_STALE = "CACHE.7_STALE"

    LOCK_ACQUIRED = "LOCK.1_ACQUIRED"
    LOCK_BUSY = "LOCK.2_BUSY"
    LOCK_RELEASED = "LOCK.3_RELEASED"

    STORE_QUERY = "STORE.1_QUERY"
    STORE_UPDATE = "STORE.2_UPDATE"

    REBUILD_LIFECYCLE = "REBUILD.0_LIFECYCLE"
    REBUILD_SUBMITTED = "REBUILD.1_SUBMITTED"
    REBUILD_REJECTED = "REBUILD.2_REJECTED"
    REBUILD_COMPLETED = "REBUILD.3_COMPLETED"
    REBUILD_FAILED = "REBUILD.4_FAILED"

    INVALIDATE = "INVALIDATE.1_DELETE"
    INVALIDATE_FAILED = "INVALIDATE.2_DELETE_FAILED"
