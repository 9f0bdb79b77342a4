"""Tests for LocalStorageProvider."""

import json
import os
import tempfile
from unittest.mock import patch

import pytest

from feedguard.storage.base import ContentType, StorageError
from feedguard.storage.local_provider import LocalStorageProvider


class TestPathTraversal:
    """Verify _get_path rejects path traversal attempts."""

    def setup_method(self):
        self.tmpdir = os.path.realpath(tempfile.mkdtemp())
        self.provider = LocalStorageProvider(base_path=self.tmpdir)

    def test_traversal_with_dotdot(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.provider._get_path("../../../etc/passwd")

    def test_traversal_with_absolute(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.provider._get_path("/etc/passwd")

    def test_normal_key_succeeds(self):
        path = self.provider._get_path("preferences/learned_tokens.json")
        assert str(path).startswith(self.tmpdir)

    def test_metadata_traversal(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.provider._get_metadata_path("../../../etc/passwd")


class TestReadWrite:

    @pytest.fixture
    def provider(self, tmp_path):
        return LocalStorageProvider(base_path=str(tmp_path))

    def test_creates_base_directory(self, tmp_path):
        base = tmp_path / "nested" / "dir"
        LocalStorageProvider(base_path=str(base))
        assert base.is_dir()

    def test_upload_then_download(self, provider):
        meta = provider.upload("prefs/a.json", b'{"like": []}', content_type=ContentType.APPLICATION_JSON)

        assert meta.size_bytes == 12
        assert len(meta.content_hash) == 64

        obj = provider.download("prefs/a.json")
        assert obj is not None
        assert obj.content == b'{"like": []}'
        assert obj.metadata.content_hash == meta.content_hash
        assert obj.metadata.content_type == ContentType.APPLICATION_JSON

    def test_download_missing_returns_none(self, provider):
        assert provider.download("missing.json") is None

    def test_overwrite_leaves_no_temp_files(self, provider, tmp_path):
        provider.upload("prefs/a.json", b"one")
        provider.upload("prefs/a.json", b"two")

        assert provider.download("prefs/a.json").content == b"two"
        leftovers = [p.name for p in (tmp_path / "prefs").iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_metadata_sidecar_written(self, provider, tmp_path):
        provider.upload("a.json", b"{}")
        meta = json.loads((tmp_path / "a.json.meta.json").read_text())
        assert meta["uri"] == "a.json"
        assert meta["content_type"] == "application/json"

    def test_download_without_sidecar_builds_metadata(self, provider, tmp_path):
        (tmp_path / "raw.json").write_bytes(b"{}")
        obj = provider.download("raw.json")
        assert obj.content == b"{}"
        assert obj.metadata.size_bytes == 2

    def test_write_failure_raises_storage_error(self, provider):
        with patch("feedguard.storage.local_provider.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError, match="disk full"):
                provider.upload("a.json", b"{}")
