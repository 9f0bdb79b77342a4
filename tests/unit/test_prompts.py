"""
Tests for style resolution and rewrite prompt construction.
"""

import pytest

from feedguard.llm.prompts import (
    DIALECT_PROFILES,
    MAX_STYLE_LENGTH,
    StrengthHint,
    StyleFamily,
    build_rewrite_messages,
    build_system_prompt,
    list_bare_styles,
    list_dialects,
    parse_strength,
    resolve_style,
)
from feedguard.services.local_transform import DEFAULT_ADD_ONS


class TestResolveStyle:

    @pytest.mark.parametrize("spec", [None, "", "polite_clean", "POLITE_CLEAN "])
    def test_default(self, spec):
        assert resolve_style(spec).key == "polite_clean"

    def test_bare_keywords(self):
        assert resolve_style("calm_business").family == StyleFamily.POLISH
        assert resolve_style("american_joke").family == StyleFamily.JOKE

    def test_dialect(self):
        profile = resolve_style("dialect:kansai")
        assert profile.key == "dialect:kansai"
        assert profile.family == StyleFamily.DIALECT

    def test_dialect_case_insensitive(self):
        assert resolve_style("Dialect:Hakata").key == "dialect:hakata"

    def test_unknown_dialect_falls_back(self):
        assert resolve_style("dialect:atlantis").key == "polite_clean"

    def test_joke_keyword_resolves_to_american_joke(self):
        assert resolve_style("british_joke").key == "american_joke"

    def test_unknown_keyword_falls_back(self):
        assert resolve_style("shakespearean").key == "polite_clean"

    def test_long_spec_truncated(self):
        assert resolve_style("x" * (MAX_STYLE_LENGTH * 10)).key == "polite_clean"


class TestParseStrength:

    @pytest.mark.parametrize(
        "value,expected",
        [(None, StrengthHint.NORMAL), ("light", StrengthHint.LIGHT), (" STRONG", StrengthHint.STRONG), ("max", StrengthHint.NORMAL)],
    )
    def test_parse(self, value, expected):
        assert parse_strength(value) == expected


class TestPromptConstruction:

    def test_system_prompt_has_constraints(self):
        prompt = build_system_prompt(resolve_style("polite_clean"))
        assert "URLs, @mentions or #hashtags" in prompt
        assert "must not reproduce the input unchanged" in prompt
        assert "Output only the rewritten text" in prompt

    def test_system_prompt_lists_particles(self):
        prompt = build_system_prompt(resolve_style("dialect:kansai"))
        assert "Signature endings: やで, やん, へん, ねん" in prompt

    def test_strength_line(self):
        profile = resolve_style("polite_clean")
        assert "as little as possible" in build_system_prompt(profile, StrengthHint.LIGHT)
        assert "as little as possible" not in build_system_prompt(profile, StrengthHint.NORMAL)

    def test_messages_include_few_shot_pairs(self):
        profile = resolve_style("dialect:kansai")
        messages = build_rewrite_messages(profile, "元の文")

        assert [m.role for m in messages] == ["system", "user", "assistant", "user", "assistant", "user"]
        assert messages[1].content == profile.examples[0][0]
        assert messages[2].content == profile.examples[0][1]
        assert messages[-1].content == "元の文"

    def test_messages_without_examples(self):
        messages = build_rewrite_messages(resolve_style("polite_clean"), "text")
        assert [m.role for m in messages] == ["system", "user"]


class TestListings:

    def test_dialects_sorted_and_complete(self):
        keys = [p.key for p in list_dialects()]
        assert keys == sorted(keys)
        assert len(keys) == len(DIALECT_PROFILES)
        assert "dialect:kansai" in keys

    def test_every_dialect_has_closing_remark(self):
        assert all(p.closing_remark for p in list_dialects())

    def test_bare_styles(self):
        assert [p.key for p in list_bare_styles()] == ["polite_clean", "calm_business", "american_joke"]

    def test_joke_profile_uses_shared_add_on_pool(self):
        assert resolve_style("american_joke").add_ons is DEFAULT_ADD_ONS
