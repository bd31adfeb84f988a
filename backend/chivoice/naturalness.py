# chivoice/naturalness.py
from __future__ import annotations

import re
from typing import List, Optional

# Odd verb-object pairs the template pools and the model have produced before
NATURAL_BAD_PATTERNS: List[re.Pattern] = [
    re.compile(r"\bvisit(ing)? the food\b", re.I),
    re.compile(r"\brepair(ing)? the food\b", re.I),
    re.compile(r"\bfix(ing)? the food\b", re.I),
    re.compile(r"\bteach(ing)? the food\b", re.I),
    re.compile(r"\blearn(ing)? the food\b", re.I),
    re.compile(r"\brepair(ing)? the rice\b", re.I),
    re.compile(r"\bdrink(ing)? the bread\b", re.I),
    re.compile(r"\beat(ing)? the water\b", re.I),
]

WORD_RE = re.compile(r"^[A-Za-z][A-Za-z\-']{1,30}$")
BRACKETS_RE = re.compile(r"[{}\[\]]")
TERMINAL_PUNCT_RE = re.compile(r"[.?!]$")
PRONOUN_RE = re.compile(r"\b(I|We|You|He|She|They|My|Your|Our)\b", re.I)

PHRASE_MIN_TOKENS = 2
PHRASE_MAX_TOKENS = 8
SENTENCE_MIN_TOKENS = 4
SENTENCE_MAX_TOKENS = 14
SENTENCE_MAX_CHARS = 120


def matches_bad_pattern(text: str) -> Optional[str]:
    for r in NATURAL_BAD_PATTERNS:
        if r.search(text or ""):
            return r.pattern
    return None


def unnatural_reason(text: str, category: str) -> Optional[str]:
    """
    Returns why `text` does not read like everyday language for its category,
    or None when it passes.
    """
    t = (text or "").strip()
    if not t:
        return "empty"

    tokens = t.split()

    if category == "word":
        if len(tokens) != 1:
            return "word_not_single_token"
        if not WORD_RE.match(t):
            return "word_not_alphabetic"
        return None

    if category == "phrase":
        if not (PHRASE_MIN_TOKENS <= len(tokens) <= PHRASE_MAX_TOKENS):
            return "phrase_token_count"
        if BRACKETS_RE.search(t):
            return "phrase_brackets"
        if matches_bad_pattern(t):
            return "bad_pattern"
        return None

    if category == "sentence":
        if not (SENTENCE_MIN_TOKENS <= len(tokens) <= SENTENCE_MAX_TOKENS):
            return "sentence_token_count"
        if len(t) > SENTENCE_MAX_CHARS:
            return "sentence_too_long"
        if not TERMINAL_PUNCT_RE.search(t):
            return "sentence_no_terminal_punctuation"
        if not PRONOUN_RE.search(t):
            return "sentence_no_pronoun"
        if matches_bad_pattern(t):
            return "bad_pattern"
        return None

    return "unknown_category"


def is_natural(text: str, category: str) -> bool:
    return unnatural_reason(text, category) is None
