"""
Tests for RewriteOrchestrator: remote path, fallback chain, caching, totality.
"""

import asyncio

import pytest

from feedguard.config import get_settings
from feedguard.llm import CompletionUnavailableError
from feedguard.llm.prompts import resolve_style
from feedguard.services.local_transform import DEFAULT_ADD_ONS
from feedguard.services.resilience import CircuitBreaker
from feedguard.services.rewrite_orchestrator import (
    RewriteOrchestrator,
    get_rewrite_orchestrator,
    local_fallback,
)
from feedguard.services.types import Item, RewritePath


def _items(*texts):
    return [Item(id=str(i), text=t) for i, t in enumerate(texts)]


class TestLocalFallback:

    def test_polish_softens(self):
        assert local_fallback(resolve_style("polite_clean"), "死ね") == "やめてほしいです。"

    def test_joke_stylizes_with_profile_pool(self):
        out = local_fallback(resolve_style("american_joke"), "疲れた")
        assert out.startswith("疲れた。 ")
        assert any(out.endswith(tail) for tail in DEFAULT_ADD_ONS)

    def test_dialect_appends_closing_remark_when_unchanged(self):
        text = "今日は忙しいからまた後で連絡するね。"
        out = local_fallback(resolve_style("dialect:kansai"), text)
        assert out == text + "（知らんけど）"

    def test_dialect_softened_text_has_no_remark(self):
        out = local_fallback(resolve_style("dialect:kansai"), "死ね")
        assert out == "やめてほしいです。"

    def test_transform_failure_returns_original(self, monkeypatch):
        def boom(text):
            raise RuntimeError("broken")

        monkeypatch.setattr("feedguard.services.local_transform.soften", boom)
        assert local_fallback(resolve_style("polite_clean"), "死ね") == "死ね"


class TestRewriteWithoutProvider:

    @pytest.fixture
    def orchestrator(self):
        return RewriteOrchestrator(provider=None)

    @pytest.mark.asyncio
    async def test_kansai_fallback_is_softened_and_changed(self, orchestrator):
        text = "今日は忙しいからまた後で連絡するね。"
        batch = await orchestrator.rewrite([Item(id="k", text=text)], "dialect:kansai")

        assert batch.results["k"]
        assert batch.results["k"] != text
        assert batch.paths["k"] == RewritePath.LOCAL_FALLBACK
        assert batch.style == "dialect:kansai"

    @pytest.mark.asyncio
    async def test_every_id_present_and_non_empty(self, orchestrator):
        items = _items("死ね", "hello", "ああああああああ", "@foo #bar https://x")
        batch = await orchestrator.rewrite(items, "polite_clean")

        assert set(batch.results) == {"0", "1", "2", "3"}
        assert all(batch.results[i] for i in batch.results)

    @pytest.mark.asyncio
    async def test_empty_and_whitespace_pass_through(self, orchestrator):
        batch = await orchestrator.rewrite(_items("", "  "), "polite_clean")

        assert batch.results == {"0": "", "1": "  "}
        assert batch.paths == {"0": RewritePath.PASSTHROUGH, "1": RewritePath.PASSTHROUGH}

    @pytest.mark.asyncio
    async def test_counts(self, orchestrator):
        batch = await orchestrator.rewrite(_items("死ね", ""), "polite_clean")
        assert batch.counts == {"remote": 0, "local_fallback": 1, "passthrough": 1}

    @pytest.mark.asyncio
    async def test_unknown_style_uses_default(self, orchestrator):
        batch = await orchestrator.rewrite(_items("死ね"), "dialect:atlantis")
        assert batch.style == "polite_clean"

    @pytest.mark.asyncio
    async def test_empty_batch(self, orchestrator):
        batch = await orchestrator.rewrite([], "polite_clean")
        assert batch.results == {}
        assert batch.paths == {}


class TestRewriteWithProvider:

    @pytest.mark.asyncio
    async def test_remote_success(self, fake_provider):
        fake_provider.reply = "  ほんまに疲れたわ  "
        orchestrator = RewriteOrchestrator(provider=fake_provider)

        batch = await orchestrator.rewrite(_items("今日は本当に疲れた"), "dialect:kansai", "strong")

        assert batch.results["0"] == "ほんまに疲れたわ"
        assert batch.paths["0"] == RewritePath.REMOTE

        request = fake_provider.requests[0]
        assert request.messages[0].role == "system"
        assert "やで" in request.messages[0].content
        assert request.messages[-1].content == "今日は本当に疲れた"
        assert request.metadata["style"] == "dialect:kansai"

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back(self, failing_provider):
        orchestrator = RewriteOrchestrator(provider=failing_provider)

        batch = await orchestrator.rewrite(_items("死ね"), "polite_clean")

        assert batch.results["0"] == "やめてほしいです。"
        assert batch.paths["0"] == RewritePath.LOCAL_FALLBACK

    @pytest.mark.asyncio
    async def test_empty_remote_reply_falls_back(self, make_provider):
        orchestrator = RewriteOrchestrator(provider=make_provider(reply="   "))

        batch = await orchestrator.rewrite(_items("死ね"), "polite_clean")

        assert batch.paths["0"] == RewritePath.LOCAL_FALLBACK

    @pytest.mark.asyncio
    async def test_unexpected_exception_falls_back(self, make_provider):
        orchestrator = RewriteOrchestrator(provider=make_provider(error=KeyError("weird")))

        batch = await orchestrator.rewrite(_items("死ね"), "polite_clean")

        assert batch.results["0"] == "やめてほしいです。"
        assert batch.paths["0"] == RewritePath.LOCAL_FALLBACK

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, make_provider):
        def reply(request):
            text = request.messages[-1].content
            if text == "bad":
                raise CompletionUnavailableError("nope")
            return text.upper()

        orchestrator = RewriteOrchestrator(provider=make_provider(reply_fn=reply))

        batch = await orchestrator.rewrite(_items("good", "bad", "fine"), "polite_clean")

        assert batch.results["0"] == "GOOD"
        assert batch.results["2"] == "FINE"
        assert batch.paths["1"] == RewritePath.LOCAL_FALLBACK
        assert batch.results["1"] == "bad."

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, monkeypatch, make_provider):
        monkeypatch.setenv("COMPLETION_TIMEOUT_SECONDS", "0.1")
        get_settings.cache_clear()

        class SlowProvider(make_provider):
            async def complete(self, request):
                await asyncio.sleep(2)
                return "too late"

        orchestrator = RewriteOrchestrator(provider=SlowProvider())

        batch = await orchestrator.rewrite(_items("死ね"), "polite_clean")

        assert batch.paths["0"] == RewritePath.LOCAL_FALLBACK

    @pytest.mark.asyncio
    async def test_open_circuit_skips_remote(self, failing_provider):
        breaker = CircuitBreaker(name="test", failure_threshold=1, reset_timeout_seconds=60)
        orchestrator = RewriteOrchestrator(provider=failing_provider, breaker=breaker)

        await orchestrator.rewrite(_items("one"), "polite_clean")
        await orchestrator.rewrite(_items("two", "three"), "polite_clean")

        assert len(failing_provider.requests) == 1

    @pytest.mark.asyncio
    async def test_passthrough_makes_no_remote_call(self, fake_provider):
        orchestrator = RewriteOrchestrator(provider=fake_provider)

        await orchestrator.rewrite(_items("", " \n "), "polite_clean")

        assert fake_provider.requests == []

    @pytest.mark.asyncio
    async def test_remote_results_cached(self, fake_provider):
        orchestrator = RewriteOrchestrator(provider=fake_provider)

        await orchestrator.rewrite(_items("same"), "polite_clean")
        batch = await orchestrator.rewrite(_items("same"), "polite_clean")

        assert len(fake_provider.requests) == 1
        assert batch.paths["0"] == RewritePath.REMOTE

    @pytest.mark.asyncio
    async def test_cache_keyed_by_style_and_strength(self, fake_provider):
        orchestrator = RewriteOrchestrator(provider=fake_provider)

        await orchestrator.rewrite(_items("same"), "polite_clean")
        await orchestrator.rewrite(_items("same"), "dialect:kansai")
        await orchestrator.rewrite(_items("same"), "polite_clean", "light")

        assert len(fake_provider.requests) == 3

    @pytest.mark.asyncio
    async def test_cache_disabled(self, monkeypatch, fake_provider):
        monkeypatch.setenv("REWRITE_CACHE_TTL_SECONDS", "0")
        get_settings.cache_clear()
        orchestrator = RewriteOrchestrator(provider=fake_provider)

        await orchestrator.rewrite(_items("same"), "polite_clean")
        await orchestrator.rewrite(_items("same"), "polite_clean")

        assert len(fake_provider.requests) == 2

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, monkeypatch, make_provider):
        monkeypatch.setenv("REWRITE_MAX_CONCURRENCY", "2")
        get_settings.cache_clear()
        in_flight = 0
        peak = 0

        class CountingProvider(make_provider):
            async def complete(self, request):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return "ok"

        orchestrator = RewriteOrchestrator(provider=CountingProvider())
        batch = await orchestrator.rewrite(_items(*[f"t{i}" for i in range(8)]), "polite_clean")

        assert peak <= 2
        assert batch.counts["remote"] == 8


class TestSingleton:

    def test_uses_configured_provider(self, fake_provider):
        from feedguard.llm import set_completion_provider

        set_completion_provider(fake_provider)
        orchestrator = get_rewrite_orchestrator()

        assert orchestrator.provider is fake_provider
        assert get_rewrite_orchestrator() is orchestrator
