"""Storage backends implementing the StorageBackend port."""

from chronicler.adapters.storage.base import StorageBackendBase
from chronicler.adapters.storage.mongo import DocumentBackend
from chronicler.adapters.storage.sqlite import SQLiteBackend

__all__ = [
    "DocumentBackend",
    "SQLiteBackend",
    "StorageBackendBase",
]
