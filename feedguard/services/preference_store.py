"""
Preference store: durable liked/disliked token sets.

Tokens accumulate across requests through explicit learn calls and are merged
into every classification. Persistence is batched: mutations only mark the
store dirty, and a background task flushes a full snapshot every few seconds,
so a burst of learn calls costs one write.

Readers never see a half-applied mutation: each set is an immutable frozenset
that mutations replace wholesale under a lock.
"""

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from feedguard.config import get_settings
from feedguard.storage import ContentType, StorageError, StorageProvider, get_storage_provider

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH = 200


@dataclass(frozen=True)
class PreferenceSnapshot:
    """Immutable view of both token sets."""
    like: frozenset[str]
    dislike: frozenset[str]

    def export(self) -> dict[str, list[str]]:
        return {"like": sorted(self.like), "dislike": sorted(self.dislike)}


def normalize_tokens(tokens: Optional[Iterable[Any]], max_batch: Optional[int] = None) -> list[str]:
    """
    Trim and lowercase tokens, dropping empties and non-string entries.

    Numbers are accepted and stringified. Order is preserved and duplicates
    inside the batch are removed. At most `max_batch` raw entries are read.
    """
    if tokens is None or isinstance(tokens, (str, bytes)):
        return []

    out: list[str] = []
    seen: set[str] = set()
    for i, raw in enumerate(tokens):
        if max_batch is not None and i >= max_batch:
            break
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
            continue
        token = str(raw).strip().lower()
        if token and token not in seen:
            seen.add(token)
            out.append(token)
    return out


class PreferenceStore:
    """
    Durable like/dislike token sets with dirty-flag batched persistence.

    Usage:
        store = PreferenceStore(storage=get_storage_provider())
        store.load()
        store.add_dislike(["spoiler"])
        store.flush()   # or let run_periodic_flush do it
    """

    def __init__(
        self,
        storage: StorageProvider,
        key: str = "preferences/learned_tokens.json",
        max_batch: int = DEFAULT_MAX_BATCH,
    ):
        self._storage = storage
        self._key = key
        self._max_batch = max_batch

        self._like: frozenset[str] = frozenset()
        self._dislike: frozenset[str] = frozenset()
        self._dirty = False
        self._saved_at: Optional[str] = None

        # _lock guards the sets and the dirty flag; _flush_lock serializes writes
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()

    @property
    def key(self) -> str:
        return self._key

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def saved_at(self) -> Optional[str]:
        """Timestamp of the last record written or loaded."""
        return self._saved_at

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Read durable state.

        A missing record starts both sets empty and marks the store dirty so an
        empty baseline gets written. An unreadable record is logged and the
        store starts empty without being marked dirty.
        """
        try:
            obj = self._storage.download(self._key)
        except (StorageError, OSError, ValueError) as e:
            logger.error(
                f"Failed to read preferences from {self._key}: {e}",
                extra={"event": "preferences_load_failed", "key": self._key},
            )
            self._replace(frozenset(), frozenset(), dirty=False)
            return

        if obj is None:
            logger.info(
                f"No stored preferences at {self._key}; starting empty",
                extra={"event": "preferences_initialized", "key": self._key},
            )
            self._replace(frozenset(), frozenset(), dirty=True)
            return

        try:
            data = json.loads(obj.content.decode("utf-8"))
            if not isinstance(data, dict):
                raise ValueError("record is not a JSON object")
            like = frozenset(normalize_tokens(data.get("like")))
            dislike = frozenset(normalize_tokens(data.get("dislike")))
        except (UnicodeDecodeError, ValueError) as e:
            logger.error(
                f"Stored preferences at {self._key} are unreadable: {e}",
                extra={"event": "preferences_load_failed", "key": self._key},
            )
            self._replace(frozenset(), frozenset(), dirty=False)
            return

        self._replace(like, dislike, dirty=False)
        self._saved_at = data.get("saved_at")
        logger.info(
            f"Loaded preferences: {len(like)} like, {len(dislike)} dislike",
            extra={"event": "preferences_loaded", "key": self._key},
        )

    def _replace(self, like: frozenset[str], dislike: frozenset[str], dirty: bool) -> None:
        with self._lock:
            self._like = like
            self._dislike = dislike
            self._dirty = dirty

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _bounded(self, tokens: Optional[Iterable[Any]], kind: str) -> list[str]:
        if isinstance(tokens, list) and len(tokens) > self._max_batch:
            logger.warning(
                f"Learn batch for '{kind}' has {len(tokens)} tokens; keeping the first {self._max_batch}"
            )
        return normalize_tokens(tokens, max_batch=self._max_batch)

    def add_like(self, tokens: Optional[Iterable[Any]]) -> int:
        """Union tokens into the like set. Returns how many were new."""
        new = self._bounded(tokens, "like")
        with self._lock:
            added = set(new) - self._like
            if added:
                self._like = self._like | added
                self._dirty = True
        return len(added)

    def add_dislike(self, tokens: Optional[Iterable[Any]]) -> int:
        """Union tokens into the dislike set. Returns how many were new."""
        new = self._bounded(tokens, "dislike")
        with self._lock:
            added = set(new) - self._dislike
            if added:
                self._dislike = self._dislike | added
                self._dirty = True
        return len(added)

    def reset(self) -> bool:
        """Clear both sets and persist immediately. Returns whether the write succeeded."""
        self._replace(frozenset(), frozenset(), dirty=True)
        logger.info("Preferences reset", extra={"event": "preferences_reset", "key": self._key})
        self.flush()
        return not self._dirty

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def snapshot(self) -> PreferenceSnapshot:
        with self._lock:
            return PreferenceSnapshot(like=self._like, dislike=self._dislike)

    def export(self) -> dict[str, list[str]]:
        """Both sets as sorted lists."""
        return self.snapshot().export()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def flush(self) -> bool:
        """
        Persist a full snapshot if dirty.

        Returns True if a record was written. A failed write is logged and the
        store stays dirty so the next flush retries.
        """
        with self._flush_lock:
            with self._lock:
                if not self._dirty:
                    return False
                snapshot = PreferenceSnapshot(like=self._like, dislike=self._dislike)
                # Cleared before the write; a concurrent mutation sets it again
                self._dirty = False

            saved_at = datetime.now(timezone.utc).isoformat()
            payload = dict(snapshot.export(), saved_at=saved_at)
            content = json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")

            try:
                self._storage.upload(self._key, content, content_type=ContentType.APPLICATION_JSON)
            except (StorageError, OSError, ValueError) as e:
                with self._lock:
                    self._dirty = True
                logger.error(
                    f"Failed to persist preferences to {self._key}: {e}",
                    extra={"event": "preferences_flush_failed", "key": self._key},
                )
                return False

            self._saved_at = saved_at
            logger.debug(
                f"Preferences flushed: {len(snapshot.like)} like, {len(snapshot.dislike)} dislike",
                extra={"event": "preferences_flushed", "key": self._key, "size_bytes": len(content)},
            )
            return True


async def run_periodic_flush(store: PreferenceStore, interval_seconds: float) -> None:
    """
    Flush the store every `interval_seconds` until cancelled.

    The write runs on a worker thread so storage I/O never blocks the event loop.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(store.flush)
        except Exception as e:
            # flush() already handles storage errors; anything else must not kill the loop
            logger.exception(f"Unexpected error in preference flush loop: {e}")


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------

_preference_store: Optional[PreferenceStore] = None


def get_preference_store() -> PreferenceStore:
    """Get or create the process-wide preference store (not yet loaded)."""
    global _preference_store

    if _preference_store is None:
        settings = get_settings()
        _preference_store = PreferenceStore(
            storage=get_storage_provider(),
            key=settings.PREFERENCE_KEY,
            max_batch=settings.LEARN_MAX_BATCH,
        )
    return _preference_store


def set_preference_store(store: PreferenceStore) -> None:
    """Set a custom store (useful for testing)."""
    global _preference_store
    _preference_store = store


def reset_preference_store() -> None:
    """Reset the store singleton (for testing)."""
    global _preference_store
    _preference_store = None
