# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
import tempfile
from typing import Optional

import pytest

# Set test environment before any feedguard module reads settings
os.environ["COMPLETION_PROVIDER"] = "none"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SHARED_SECRET"] = ""
os.environ["STORAGE_PROVIDER"] = "local"
os.environ["LOCAL_STORAGE_PATH"] = tempfile.mkdtemp(prefix="feedguard-test-")
os.environ["LOG_JSON"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEFAULT_STRICTNESS"] = "moderate"

from feedguard.config import get_settings  # noqa: E402
from feedguard.llm import (  # noqa: E402
    CompletionProvider,
    CompletionRequest,
    CompletionUnavailableError,
    reset_completion_provider,
)
from feedguard.services.preference_store import PreferenceStore, reset_preference_store  # noqa: E402
from feedguard.services.rewrite_orchestrator import reset_rewrite_orchestrator  # noqa: E402
from feedguard.storage import reset_storage_provider, set_storage_provider  # noqa: E402
from feedguard.storage.local_provider import LocalStorageProvider  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "llm: tests requiring live completion API calls (deselect with '-m \"not llm\"')")


class FakeCompletionProvider(CompletionProvider):
    """
    In-memory completion provider.

    Returns `reply` (or `reply_fn(request)`) unless `error` is set, and
    records every request it receives.
    """

    def __init__(self, reply: str = "rewritten", error: Optional[Exception] = None, reply_fn=None):
        self.reply = reply
        self.error = error
        self.reply_fn = reply_fn
        self.requests: list[CompletionRequest] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return "fake-model"

    async def complete(self, request: CompletionRequest) -> str:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.reply_fn is not None:
            return self.reply_fn(request)
        return self.reply

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_singletons():
    """Give every test fresh settings and provider singletons."""
    get_settings.cache_clear()
    reset_storage_provider()
    reset_completion_provider()
    reset_preference_store()
    reset_rewrite_orchestrator()
    yield
    get_settings.cache_clear()
    reset_storage_provider()
    reset_completion_provider()
    reset_preference_store()
    reset_rewrite_orchestrator()


@pytest.fixture
def storage(tmp_path):
    """Local storage rooted in a per-test directory."""
    provider = LocalStorageProvider(base_path=str(tmp_path / "storage"))
    set_storage_provider(provider)
    return provider


@pytest.fixture
def store(storage):
    """Loaded preference store backed by `storage`."""
    preference_store = PreferenceStore(storage=storage, key="preferences/learned_tokens.json")
    preference_store.load()
    return preference_store


@pytest.fixture
def make_provider():
    """Factory for FakeCompletionProvider with custom replies or errors."""
    return FakeCompletionProvider


@pytest.fixture
def fake_provider():
    return FakeCompletionProvider()


@pytest.fixture
def failing_provider():
    return FakeCompletionProvider(error=CompletionUnavailableError("upstream 500", status_code=500))
