"""
Serving Module
"""
from .cache import CacheResult, DataCache

__all__ = [
    "CacheResult",
    "DataCache",
]
