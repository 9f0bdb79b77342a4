# feedguard/llm/prompts.py
"""
Style profiles and prompt construction for rewrites.

A style spec is either a bare keyword ("polite_clean", "american_joke") or a
"dialect:<name>" key. Each resolves to a StyleProfile whose family also decides
which local transform runs when the completion service is unavailable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from feedguard.llm.base import ChatMessage
from feedguard.services.local_transform import DEFAULT_ADD_ONS

logger = logging.getLogger(__name__)

DIALECT_PREFIX = "dialect:"
MAX_STYLE_LENGTH = 200
DEFAULT_STYLE = "polite_clean"


class StyleFamily(str, Enum):
    """Selects the local fallback transform."""
    POLISH = "polish"
    JOKE = "joke"
    DIALECT = "dialect"


class StrengthHint(str, Enum):
    """How far the rewrite may move away from the original wording."""
    LIGHT = "light"
    NORMAL = "normal"
    STRONG = "strong"


@dataclass(frozen=True)
class StyleProfile:
    """A named bundle of style instructions and optional few-shot pairs."""
    key: str
    label: str
    description: str
    family: StyleFamily
    instruction: str
    suffixes: Tuple[str, ...] = ()
    examples: Tuple[Tuple[str, str], ...] = ()
    # Appended by the local fallback when softening left the text unchanged
    closing_remark: Optional[str] = None
    add_ons: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Constraint lines shared by every system prompt
# ---------------------------------------------------------------------------

REWRITE_CONSTRAINTS = """Rules:
- Do not alter URLs, @mentions or #hashtags; copy them exactly.
- You must not reproduce the input unchanged.
- Keep the original meaning. Do not add facts, explanations or quotes.
- Output only the rewritten text in the target language/dialect, nothing else."""

STRENGTH_INSTRUCTIONS = {
    StrengthHint.LIGHT: "Change as little as possible: only soften the harshest words.",
    StrengthHint.NORMAL: "",
    StrengthHint.STRONG: "Rewrite freely; the tone should change clearly.",
}


# ---------------------------------------------------------------------------
# Bare style keywords
# ---------------------------------------------------------------------------

BARE_STYLES: dict[str, StyleProfile] = {
    "polite_clean": StyleProfile(
        key="polite_clean",
        label="丁寧・穏やか",
        description="Polite, calm, natural Japanese with insults and harsh words softened.",
        family=StyleFamily.POLISH,
        instruction=(
            "You rewrite Japanese into polite, calm, natural Japanese while keeping the meaning. "
            "Soften insults and harsh words. Output Japanese only."
        ),
    ),
    "calm_business": StyleProfile(
        key="calm_business",
        label="ビジネス調",
        description="Composed business register suitable for a work chat.",
        family=StyleFamily.POLISH,
        instruction=(
            "You rewrite Japanese into composed, courteous business Japanese (です・ます調). "
            "Remove emotional exaggeration and insults. Output Japanese only."
        ),
    ),
    "american_joke": StyleProfile(
        key="american_joke",
        label="アメリカンジョーク風",
        description="A short witty line with a light American-style joke.",
        family=StyleFamily.JOKE,
        instruction=(
            "You rewrite Japanese into a short witty line with a light American-style joke. "
            "Keep meaning, no extra explanations. Output Japanese only."
        ),
        add_ons=DEFAULT_ADD_ONS,
    ),
}


# ---------------------------------------------------------------------------
# Dialect profiles
# ---------------------------------------------------------------------------

def _dialect_instruction(name: str, description: str, suffixes: Tuple[str, ...]) -> str:
    particles = "、".join(suffixes)
    return (
        f"You rewrite Japanese into natural {name} dialect ({description}). "
        f"Use its typical sentence endings such as {particles} where they fit, "
        "keep the tone friendly, and soften any insults. Output Japanese only."
    )


DIALECT_PROFILES: dict[str, StyleProfile] = {
    "kansai": StyleProfile(
        key="dialect:kansai",
        label="関西弁",
        description="大阪を中心とした関西の話し言葉。ノリが良く親しみやすい。",
        family=StyleFamily.DIALECT,
        instruction=_dialect_instruction("Kansai (Osaka)", "lively, friendly Osaka speech", ("やで", "やん", "へん", "ねん")),
        suffixes=("やで", "やん", "へん", "ねん"),
        examples=(
            ("今日は本当に疲れた。", "今日はほんまに疲れたわ。"),
            ("それは違うと思うよ。", "それはちゃうと思うで。"),
        ),
        closing_remark="（知らんけど）",
    ),
    "kyoto": StyleProfile(
        key="dialect:kyoto",
        label="京都弁",
        description="はんなりとした京言葉。柔らかく上品な言い回し。",
        family=StyleFamily.DIALECT,
        instruction=_dialect_instruction("Kyoto", "soft, elegant old-capital speech", ("どす", "はる", "おす", "え")),
        suffixes=("どす", "はる", "おす", "え"),
        examples=(
            ("ちょっと静かにしてほしい。", "ちょっと静かにしてもろたら、うれしおすえ。"),
        ),
        closing_remark="（ほな、おおきに）",
    ),
    "hakata": StyleProfile(
        key="dialect:hakata",
        label="博多弁",
        description="福岡・博多の話し言葉。語尾の「〜と」「〜けん」が特徴。",
        family=StyleFamily.DIALECT,
        instruction=_dialect_instruction("Hakata (Fukuoka)", "warm Fukuoka speech", ("けん", "と", "ばい", "たい")),
        suffixes=("けん", "と", "ばい", "たい"),
        examples=(
            ("何をしているの？", "なんしよーと？"),
            ("忙しいから後で行くね。", "忙しかけん、後で行くけんね。"),
        ),
        closing_remark="（よかよか）",
    ),
    "hiroshima": StyleProfile(
        key="dialect:hiroshima",
        label="広島弁",
        description="広島の話し言葉。「じゃけぇ」などの語尾が特徴。",
        family=StyleFamily.DIALECT,
        instruction=_dialect_instruction("Hiroshima", "straightforward Hiroshima speech", ("じゃけぇ", "じゃ", "のう")),
        suffixes=("じゃけぇ", "じゃ", "のう"),
        closing_remark="（じゃけぇ、気にせんでええよ）",
    ),
    "nagoya": StyleProfile(
        key="dialect:nagoya",
        label="名古屋弁",
        description="名古屋の話し言葉。「〜だがや」「〜みゃあ」が特徴。",
        family=StyleFamily.DIALECT,
        instruction=_dialect_instruction("Nagoya", "cheerful Nagoya speech", ("だがや", "みゃあ", "がね")),
        suffixes=("だがや", "みゃあ", "がね"),
        closing_remark="（まあええがね）",
    ),
    "tohoku": StyleProfile(
        key="dialect:tohoku",
        label="東北弁",
        description="東北地方の素朴な話し言葉。「〜だべ」「〜っす」が特徴。",
        family=StyleFamily.DIALECT,
        instruction=_dialect_instruction("Tohoku", "gentle, rustic northern speech", ("だべ", "っす", "べさ")),
        suffixes=("だべ", "っす", "べさ"),
        examples=(
            ("明日は雪が降るらしいよ。", "明日は雪降るらしいべ。"),
        ),
        closing_remark="（んだんだ）",
    ),
    "okinawa": StyleProfile(
        key="dialect:okinawa",
        label="沖縄方言",
        description="沖縄のウチナーヤマトグチ。のんびりした語尾「〜さー」が特徴。",
        family=StyleFamily.DIALECT,
        instruction=_dialect_instruction("Okinawan Japanese", "relaxed island speech", ("さー", "やっさー", "ねー")),
        suffixes=("さー", "やっさー", "ねー"),
        closing_remark="（なんくるないさー）",
    ),
}


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve_style(style_spec: Optional[str]) -> StyleProfile:
    """
    Resolve a style spec into a profile.

    Unknown dialects and unknown keywords resolve to polite_clean, except
    keywords mentioning "joke" which resolve to american_joke.
    """
    spec = (style_spec or DEFAULT_STYLE)[:MAX_STYLE_LENGTH].strip().lower()

    if spec.startswith(DIALECT_PREFIX):
        name = spec[len(DIALECT_PREFIX):].strip()
        profile = DIALECT_PROFILES.get(name)
        if profile is None:
            logger.warning(f"Unknown dialect '{name}', using {DEFAULT_STYLE}")
            return BARE_STYLES[DEFAULT_STYLE]
        return profile

    profile = BARE_STYLES.get(spec)
    if profile is not None:
        return profile

    if "joke" in spec:
        return BARE_STYLES["american_joke"]

    logger.warning(f"Unknown style '{spec}', using {DEFAULT_STYLE}")
    return BARE_STYLES[DEFAULT_STYLE]


def parse_strength(value: Optional[str]) -> StrengthHint:
    """Parse a strength hint, defaulting to NORMAL for anything unrecognized."""
    try:
        return StrengthHint((value or StrengthHint.NORMAL.value).lower().strip())
    except ValueError:
        return StrengthHint.NORMAL


def build_system_prompt(profile: StyleProfile, strength: StrengthHint = StrengthHint.NORMAL) -> str:
    """Style instruction, signature particles, shared rules and the strength line."""
    parts = [profile.instruction]
    if profile.suffixes:
        parts.append("Signature endings: " + ", ".join(profile.suffixes))
    parts.append(REWRITE_CONSTRAINTS)
    strength_line = STRENGTH_INSTRUCTIONS.get(strength, "")
    if strength_line:
        parts.append(strength_line)
    return "\n\n".join(parts)


def build_rewrite_messages(
    profile: StyleProfile,
    text: str,
    strength: StrengthHint = StrengthHint.NORMAL,
) -> List[ChatMessage]:
    """System turn, few-shot pairs as user/assistant turns, then the original text."""
    messages = [ChatMessage(role="system", content=build_system_prompt(profile, strength))]
    for original, transformed in profile.examples:
        messages.append(ChatMessage(role="user", content=original))
        messages.append(ChatMessage(role="assistant", content=transformed))
    messages.append(ChatMessage(role="user", content=text))
    return messages


def list_dialects() -> List[StyleProfile]:
    """Dialect profiles in a stable order."""
    return [DIALECT_PROFILES[name] for name in sorted(DIALECT_PROFILES)]


def list_bare_styles() -> List[StyleProfile]:
    return list(BARE_STYLES.values())
