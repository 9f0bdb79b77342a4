"""
Durable storage for service state (learned preference tokens).

Usage:
    from feedguard.storage import get_storage_provider

    storage = get_storage_provider()  # local or s3, from STORAGE_PROVIDER
    storage.upload("preferences/learned_tokens.json", payload)
"""

from feedguard.storage.base import (
    ContentType,
    StorageError,
    StorageMetadata,
    StorageObject,
    StorageProvider,
)
from feedguard.storage.factory import (
    get_storage_provider,
    reset_storage_provider,
    set_storage_provider,
)

__all__ = [
    "ContentType",
    "StorageError",
    "StorageMetadata",
    "StorageObject",
    "StorageProvider",
    "get_storage_provider",
    "reset_storage_provider",
    "set_storage_provider",
]
