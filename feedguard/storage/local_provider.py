"""
Local filesystem storage provider.

Writes go to a temporary file in the target directory and are moved into place
with os.replace, so a crash mid-write never leaves a torn record behind.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from feedguard.storage.base import (
    ContentType,
    StorageError,
    StorageMetadata,
    StorageObject,
    StorageProvider,
    compute_content_hash,
)

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """
    Local filesystem storage provider.

    Configuration:
    - LOCAL_STORAGE_PATH: Base directory (default: ./storage)
    """

    def __init__(self, base_path: str | None = None):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for storage (or LOCAL_STORAGE_PATH env)

        Raises:
            OSError: If the base directory cannot be created. This is a startup
                misconfiguration and is deliberately not swallowed.
        """
        self._base_path = Path(base_path or os.getenv("LOCAL_STORAGE_PATH", "./storage"))
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._metadata_suffix = ".meta.json"

        logger.info(f"Local storage initialized: {self._base_path}")

    @property
    def name(self) -> str:
        return "local"

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _get_path(self, key: str) -> Path:
        """Get filesystem path for key, with path traversal protection."""
        resolved = (self._base_path / key).resolve()
        if not resolved.is_relative_to(self._base_path.resolve()):
            raise ValueError("Path traversal detected")
        return resolved

    def _get_metadata_path(self, key: str) -> Path:
        """Get metadata file path for key, with path traversal protection."""
        resolved = (self._base_path / f"{key}{self._metadata_suffix}").resolve()
        if not resolved.is_relative_to(self._base_path.resolve()):
            raise ValueError("Path traversal detected")
        return resolved

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def upload(
        self,
        key: str,
        content: bytes,
        content_type: ContentType = ContentType.APPLICATION_JSON,
        metadata: dict[str, str] | None = None,
    ) -> StorageMetadata:
        """Write content to the local filesystem atomically."""
        storage_metadata = StorageMetadata(
            uri=key,
            content_hash=compute_content_hash(content),
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=datetime.now(timezone.utc),
            custom_metadata=metadata or {},
        )
        meta_dict = {
            "uri": storage_metadata.uri,
            "content_hash": storage_metadata.content_hash,
            "content_type": storage_metadata.content_type.value,
            "size_bytes": storage_metadata.size_bytes,
            "uploaded_at": storage_metadata.uploaded_at.isoformat(),
            "custom_metadata": storage_metadata.custom_metadata,
        }

        try:
            self._atomic_write(self._get_path(key), content)
            self._atomic_write(
                self._get_metadata_path(key),
                json.dumps(meta_dict, indent=2).encode("utf-8"),
            )
        except OSError as e:
            raise StorageError(f"Local write failed for {key}: {e}") from e

        logger.debug(f"Uploaded to local: {key}")
        return storage_metadata

    def download(self, key: str) -> StorageObject | None:
        """Read content from the local filesystem."""
        file_path = self._get_path(key)
        if not file_path.exists():
            return None

        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise StorageError(f"Local read failed for {key}: {e}") from e

        metadata = self._load_metadata(key)
        if not metadata:
            # Create minimal metadata if missing
            metadata = StorageMetadata(
                uri=key,
                content_hash=compute_content_hash(content),
                content_type=ContentType.APPLICATION_JSON,
                size_bytes=len(content),
                uploaded_at=datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc),
            )

        return StorageObject(content=content, metadata=metadata)

    def _load_metadata(self, key: str) -> StorageMetadata | None:
        """Load metadata from file."""
        meta_path = self._get_metadata_path(key)
        if not meta_path.exists():
            return None

        try:
            meta_dict = json.loads(meta_path.read_text())
            return StorageMetadata(
                uri=meta_dict["uri"],
                content_hash=meta_dict["content_hash"],
                content_type=ContentType(meta_dict["content_type"]),
                size_bytes=meta_dict["size_bytes"],
                uploaded_at=datetime.fromisoformat(meta_dict["uploaded_at"]),
                custom_metadata=meta_dict.get("custom_metadata", {}),
            )
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(f"Failed to load metadata for {key}: {e}")
            return None
