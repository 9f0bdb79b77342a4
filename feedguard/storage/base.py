"""
Storage provider interface for durable service state.

Design principles:
- One object per key, written whole: readers see the previous or the new
  version of a record, never a partial one
- Absence of a key is a normal condition (first run), not an error
- Provider failures surface as StorageError so callers can log and continue
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict


class ContentType(str, Enum):
    """Supported content types for stored records."""
    TEXT_PLAIN = "text/plain"
    APPLICATION_JSON = "application/json"


class StorageError(Exception):
    """A read or write against the storage backend failed."""
    pass


@dataclass
class StorageMetadata:
    """Metadata about stored content."""
    uri: str  # Object key/path
    content_hash: str  # SHA256 of content
    content_type: ContentType
    size_bytes: int
    uploaded_at: datetime
    custom_metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class StorageObject:
    """A stored object with content and metadata."""
    content: bytes
    metadata: StorageMetadata


def compute_content_hash(content: bytes) -> str:
    """Compute SHA256 hash of content."""
    return hashlib.sha256(content).hexdigest()


class StorageProvider(ABC):
    """
    Abstract interface for record storage.

    Implementations must handle:
    - Atomic whole-object writes
    - Returning None for missing keys
    - Raising StorageError for backend failures
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 's3', 'local')."""
        pass

    @abstractmethod
    def upload(
        self,
        key: str,
        content: bytes,
        content_type: ContentType = ContentType.APPLICATION_JSON,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StorageMetadata:
        """
        Write content to storage, replacing any previous version atomically.

        Args:
            key: Object key/path (e.g., "preferences/learned_tokens.json")
            content: Raw content bytes
            content_type: MIME type of the content
            metadata: Custom metadata to attach

        Returns:
            StorageMetadata with upload details

        Raises:
            StorageError: If the write failed
        """
        pass

    @abstractmethod
    def download(self, key: str) -> Optional[StorageObject]:
        """
        Read content from storage.

        Returns:
            StorageObject, or None if the key does not exist

        Raises:
            StorageError: If the read failed for any other reason
        """
        pass
