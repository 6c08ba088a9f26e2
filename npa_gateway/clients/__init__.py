"""HTTP clients for the Netskope API.

All network I/O goes through ApiClient; there is no module-level instance.
"""
from .api_client import ApiClient
from .response_cache import CacheEntry, ResponseCache, make_cache_key

__all__ = [
    "ApiClient",
    "CacheEntry",
    "ResponseCache",
    "make_cache_key",
]
