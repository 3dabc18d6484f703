"""
Caching primitives for the mobile API: store, fingerprints, conditional GET and invalidation.
"""

from .cache_store import CacheEntry, CacheStore
from .conditional import CachePolicy, CachedResult, ConditionalResponseBuilder, build_response
from .fingerprint import FingerprintRegistry, default_registry, etags_match, fingerprint
from .invalidation import InvalidationBroadcaster, InvalidationEvent
from .sweeper import CacheSweeper

__all__ = [
    "CacheEntry",
    "CacheStore",
    "CachePolicy",
    "CachedResult",
    "ConditionalResponseBuilder",
    "build_response",
    "FingerprintRegistry",
    "default_registry",
    "etags_match",
    "fingerprint",
    "InvalidationBroadcaster",
    "InvalidationEvent",
    "CacheSweeper",
]
