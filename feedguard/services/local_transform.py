"""
Local transform: deterministic text softening used when the completion
service cannot serve a rewrite.

Three levels, each building on the previous one:
- normalize: collapse repeated punctuation, laughter, emoji and symbols
- soften: normalize, then replace insults and calm the sentence endings
- stylize: soften, then append one closing remark from a small pool

URLs, @mentions and #hashtags pass through every transform untouched.
"""

import random
import re
from typing import Callable, Optional, Sequence

# Protected segments are kept verbatim; the capture group keeps them in re.split output
PROTECTED_PATTERN = re.compile(r"((?:https?://|www\.)\S+|[@＠][\w.]+|[#＃]\w+)", re.IGNORECASE)

JAPANESE_SCRIPT = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uff66-\uff9f]")

NORMALIZE_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"([!！?？。]){2,}"), r"\1"),
    (re.compile(r"[wWｗ]{3,}"), "w"),
    (re.compile(r"笑{2,}"), "笑"),
    (re.compile(r"[\U0001F300-\U0001FAFF]{3,}"), "🙂"),
    (re.compile(r"([★☆♪♡♥※…])\1{2,}"), r"\1"),
]

# Most specific entries first: ぶっ殺 must be replaced before 殺す can match inside it
SOFTEN_SUBSTITUTIONS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"ぶっ殺す?"), "強い言葉を使ってしまいそう"),
    (re.compile(r"死ね"), "やめてほしいです"),
    (re.compile(r"殺す"), "本当に困ります"),
    (re.compile(r"バカ(?!ンス)|ばか|馬鹿"), "よくないと思います"),
    (re.compile(r"アホ"), "配慮に欠けています"),
    (re.compile(r"くそ|クソ"), "良くありません"),
    (re.compile(r"きもい|キモい"), "苦手です"),
    (re.compile(r"カス(?!タ|テ|ケ|ト)"), "残念です"),
    (re.compile(r"黙れ"), "少し落ち着きたいです"),
    (re.compile(r"最悪"), "あまり良くないです"),
    (re.compile(r"ゴミ"), "満足できません"),
    (re.compile(r"うざ(?:い)?"), "少し困っています"),
    (re.compile(r"\bshut\s+up\b", re.IGNORECASE), "please give me a moment"),
    (re.compile(r"\bidiot\w*", re.IGNORECASE), "not very considerate"),
    (re.compile(r"\bstupid\b", re.IGNORECASE), "not great"),
    (re.compile(r"\bfuck\w*", re.IGNORECASE), "frustrating"),
    (re.compile(r"\bshit\w*", re.IGNORECASE), "not good"),
]

ENDING_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"だよね$"), "だよね。"),
    (re.compile(r"だよ$"), "だと思います。"),
    (re.compile(r"だ$"), "だと思います。"),
]

EXCLAMATION = re.compile(r"[!！]+")
TERMINAL_MARKS = "。．.！？!?"
CLAUSE_BREAKS = re.compile(r"[。．！？!?\n]|\.(?:\s|$)")

DEFAULT_ADD_ONS: tuple[str, ...] = (
    "…てことで、今日の私には追い風をください。",
    "— でもコーヒーは美味しかったのでチャラです。",
    "（教訓：寝不足に正義なし）",
    "…冗談です。半分だけ本気です。",
)


def calm_mark(text: str) -> str:
    """The terminal mark that fits the script of `text`."""
    return "。" if JAPANESE_SCRIPT.search(text) else "."


def _map_unprotected(text: str, fn: Callable[[str], str]) -> str:
    parts = PROTECTED_PATTERN.split(text)
    # Even indices are free text, odd indices are protected tokens
    return "".join(fn(part) if i % 2 == 0 else part for i, part in enumerate(parts))


def _apply_rules(text: str, rules: Sequence[tuple[re.Pattern, str]]) -> str:
    for pattern, replacement in rules:
        text = pattern.sub(replacement, text)
    return text


def _ends_with_protected(text: str) -> bool:
    parts = PROTECTED_PATTERN.split(text)
    return len(parts) > 1 and parts[-1] == ""


def normalize(text: str) -> str:
    """Collapse repeated punctuation, laughter, emoji and decorative symbols."""
    if not text:
        return ""
    return _map_unprotected(text, lambda part: _apply_rules(part, NORMALIZE_RULES))


def soften(text: str) -> str:
    """
    Turn aggressive text into a calmer, more polite version.

    Steps: normalize, substitute insults, calm a blunt sentence ending,
    replace exclamation marks with the calm mark, and close a single
    unterminated clause with the calm mark.
    """
    if not text:
        return ""
    if not text.strip():
        return text

    mark = calm_mark(text)

    body = text.rstrip()
    trailing = text[len(body):]

    body = normalize(body)
    body = _map_unprotected(body, lambda part: _apply_rules(part, SOFTEN_SUBSTITUTIONS))

    parts = PROTECTED_PATTERN.split(body)
    if parts and len(parts) % 2 == 1:
        parts[-1] = _apply_rules(parts[-1], ENDING_RULES)
    body = "".join(parts)

    body = _map_unprotected(body, lambda part: EXCLAMATION.sub(mark, part))

    if (
        len(body) >= 2
        and body[-1] not in TERMINAL_MARKS
        and not CLAUSE_BREAKS.search(body)
        and not _ends_with_protected(body)
    ):
        body += mark

    return body + trailing


def stylize(
    text: str,
    add_on_pool: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Soften `text` and append one closing remark picked from `add_on_pool`.

    Pass a seeded `rng` for reproducible output.
    """
    if not text or not text.strip():
        return text
    pool = list(add_on_pool or DEFAULT_ADD_ONS)
    tail = (rng or random).choice(pool)
    return f"{soften(text)} {tail}"
