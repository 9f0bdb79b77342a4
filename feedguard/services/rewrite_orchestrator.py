"""
Rewrite orchestrator: remote style rewrite with a guaranteed local fallback.

Flow per item:
1. Empty or whitespace-only text passes through untouched
2. Cached remote rewrite for (style, strength, text), if any
3. Remote completion under the circuit breaker and a per-call timeout
4. On any failure, the local transform for the style family
5. If even that yields nothing, the original text

The orchestrator never raises past the batch boundary: every item gets a
result and a record of which path served it.
"""

import asyncio
import logging
import time
from typing import Iterable, Optional

from cachetools import TTLCache

from feedguard.config import Settings, get_settings
from feedguard.llm import (
    CompletionProvider,
    CompletionRequest,
    CompletionUnavailableError,
    get_completion_provider,
)
from feedguard.llm.prompts import (
    StrengthHint,
    StyleFamily,
    StyleProfile,
    build_rewrite_messages,
    parse_strength,
    resolve_style,
)

from . import local_transform
from .resilience import CircuitBreaker, CircuitOpenError, CompletionTimeoutError, with_timeout
from .types import Item, ItemRewrite, RewriteBatchResult, RewritePath

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = (CompletionUnavailableError, CompletionTimeoutError, CircuitOpenError)


def local_fallback(profile: StyleProfile, text: str) -> str:
    """
    Deterministic rewrite for a style family. Returns the original text when
    the transform fails or produces nothing.
    """
    try:
        if profile.family == StyleFamily.JOKE:
            result = local_transform.stylize(text, add_on_pool=profile.add_ons or None)
        elif profile.family == StyleFamily.DIALECT:
            result = local_transform.soften(text)
            if result == text and profile.closing_remark:
                result = f"{text}{profile.closing_remark}"
        else:
            result = local_transform.soften(text)
    except Exception as e:
        logger.error(f"Local transform failed for style {profile.key}: {e}")
        return text

    if not result or not result.strip():
        return text
    return result


class RewriteOrchestrator:
    """
    Rewrites batches of items into a target style.

    Usage:
        orchestrator = RewriteOrchestrator(provider=get_completion_provider())
        batch = await orchestrator.rewrite(items, "dialect:kansai")
        batch.results["a"]   # rewritten text
        batch.paths["a"]     # RewritePath.REMOTE / LOCAL_FALLBACK / PASSTHROUGH
    """

    def __init__(
        self,
        provider: Optional[CompletionProvider] = None,
        settings: Optional[Settings] = None,
        breaker: Optional[CircuitBreaker] = None,
        cache: Optional[TTLCache] = None,
    ):
        self._settings = settings or get_settings()
        self._provider = provider
        self._breaker = breaker or CircuitBreaker(
            name="completion",
            failure_threshold=self._settings.CIRCUIT_FAILURE_THRESHOLD,
            reset_timeout_seconds=self._settings.CIRCUIT_RESET_SECONDS,
        )
        if cache is None and self._settings.REWRITE_CACHE_TTL_SECONDS > 0:
            cache = TTLCache(
                maxsize=self._settings.REWRITE_CACHE_MAX_ENTRIES,
                ttl=self._settings.REWRITE_CACHE_TTL_SECONDS,
            )
        self._cache = cache

    @property
    def provider(self) -> Optional[CompletionProvider]:
        return self._provider

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def _complete(self, request: CompletionRequest) -> str:
        """One remote call under the configured deadline."""
        text = await with_timeout(
            self._provider.complete(request),
            self._settings.COMPLETION_TIMEOUT_SECONDS,
            "Completion call timed out",
        )
        text = (text or "").strip()
        if not text:
            raise CompletionUnavailableError("Completion returned empty text")
        return text

    async def _remote(self, profile: StyleProfile, strength: StrengthHint, text: str) -> str:
        if self._provider is None:
            raise CompletionUnavailableError("Completion service not configured")

        cache_key = (profile.key, strength.value, text)
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        request = CompletionRequest(
            messages=build_rewrite_messages(profile, text, strength),
            temperature=self._settings.COMPLETION_TEMPERATURE,
            max_tokens=self._settings.COMPLETION_MAX_TOKENS,
            call_type="rewrite",
            metadata={"style": profile.key},
        )
        result = await self._breaker.call(self._complete, request)

        if self._cache is not None:
            self._cache[cache_key] = result
        return result

    async def rewrite_one(
        self,
        item: Item,
        profile: StyleProfile,
        strength: StrengthHint,
        semaphore: asyncio.Semaphore,
    ) -> ItemRewrite:
        """Rewrite a single item. Never raises."""
        if not item.text or not item.text.strip():
            return ItemRewrite(text=item.text, path=RewritePath.PASSTHROUGH)

        try:
            async with semaphore:
                text = await self._remote(profile, strength, item.text)
            return ItemRewrite(text=text, path=RewritePath.REMOTE)
        except SERVICE_UNAVAILABLE as e:
            error = str(e)
            logger.debug(f"Remote rewrite unavailable for {item.id}: {e}")
        except Exception as e:
            error = str(e)
            logger.warning(f"Unexpected error rewriting {item.id}: {e}", exc_info=True)

        return ItemRewrite(
            text=local_fallback(profile, item.text),
            path=RewritePath.LOCAL_FALLBACK,
            error=error,
        )

    async def rewrite(
        self,
        items: Iterable[Item],
        style_spec: Optional[str] = None,
        strength: Optional[str] = None,
    ) -> RewriteBatchResult:
        """
        Rewrite a batch concurrently.

        Args:
            items: Items with unique ids
            style_spec: Bare style keyword or "dialect:<name>"
            strength: Optional "light" / "normal" / "strong"

        Returns:
            RewriteBatchResult with one entry per item id
        """
        start_time = time.time()
        items = list(items)
        profile = resolve_style(style_spec)
        strength_hint = parse_strength(strength)
        semaphore = asyncio.Semaphore(self._settings.REWRITE_MAX_CONCURRENCY)

        outcomes = await asyncio.gather(
            *(self.rewrite_one(item, profile, strength_hint, semaphore) for item in items),
            return_exceptions=True,
        )

        results: dict[str, str] = {}
        paths: dict[str, RewritePath] = {}
        failed = 0
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Rewrite task for {item.id} crashed: {outcome!r}")
                outcome = ItemRewrite(
                    text=local_fallback(profile, item.text) if item.text.strip() else item.text,
                    path=RewritePath.LOCAL_FALLBACK if item.text.strip() else RewritePath.PASSTHROUGH,
                    error=repr(outcome),
                )
            if outcome.error:
                failed += 1
            results[item.id] = outcome.text
            paths[item.id] = outcome.path

        batch = RewriteBatchResult(results=results, paths=paths, style=profile.key)
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Rewrite batch complete: {len(items)} items, style={profile.key} ({duration_ms}ms)",
            extra={
                "event": "rewrite_batch_complete",
                "style": profile.key,
                "items_processed": len(items),
                "items_failed": failed,
                "counts": batch.counts,
                "duration_ms": duration_ms,
            },
        )
        return batch


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------

_orchestrator: Optional[RewriteOrchestrator] = None


def get_rewrite_orchestrator() -> RewriteOrchestrator:
    """Get or create the orchestrator; the breaker and cache live as long as it does."""
    global _orchestrator

    if _orchestrator is None:
        _orchestrator = RewriteOrchestrator(provider=get_completion_provider())
    return _orchestrator


def set_rewrite_orchestrator(orchestrator: RewriteOrchestrator) -> None:
    """Set a custom orchestrator (useful for testing)."""
    global _orchestrator
    _orchestrator = orchestrator


def reset_rewrite_orchestrator() -> None:
    """Reset the orchestrator singleton (for testing)."""
    global _orchestrator
    _orchestrator = None
