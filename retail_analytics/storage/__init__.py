"""
Remote Storage Module
"""
from .base import (
    CapacityExceededError,
    ObjectNotFoundError,
    ObjectStore,
    ScanPage,
    StorageError,
    StoredObject,
    TableScanner,
)

__all__ = [
    "CapacityExceededError",
    "ObjectNotFoundError",
    "ObjectStore",
    "ScanPage",
    "StorageError",
    "StoredObject",
    "TableScanner",
]
