from .fs_cache import (
    CacheSnapshot,
    CacheStats,
    CheckoutResult,
    ContentCache,
    DownloadResult,
)
from .locks import CheckoutLock

__all__ = [
    "ContentCache",
    "CheckoutResult",
    "DownloadResult",
    "CacheStats",
    "CacheSnapshot",
    "CheckoutLock",
]
