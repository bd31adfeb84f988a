# chivoice/dedup.py
from __future__ import annotations

import re
from typing import Iterable, List, Set

NEAR_DUPLICATE_THRESHOLD = 0.8

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def normalize_text(text: str) -> str:
    return (text or "").strip().casefold()


def tokenize(text: str) -> List[str]:
    s = _NON_ALNUM_RE.sub("", (text or "").lower())
    return [t for t in s.split() if t]


def jaccard(a: str, b: str) -> float:
    ta = set(tokenize(a))
    tb = set(tokenize(b))
    union = ta | tb
    if not union:
        return 0.0
    return len(ta & tb) / len(union)


def used_text_set(texts: Iterable[str]) -> Set[str]:
    """Normalize previously used task texts into the casefolded lookup set."""
    return {normalize_text(t) for t in texts if normalize_text(t)}


def is_exact_duplicate(candidate: str, used: Set[str]) -> bool:
    return normalize_text(candidate) in used


def max_similarity(candidate: str, used: Iterable[str]) -> float:
    best = 0.0
    for t in used:
        score = jaccard(candidate, t)
        if score > best:
            best = score
    return best


def is_too_similar(candidate: str, used: Set[str], threshold: float = NEAR_DUPLICATE_THRESHOLD) -> bool:
    """
    True when the candidate is an exact (trimmed, casefolded) match of a used text,
    or its token-set Jaccard similarity against any used text reaches the threshold.
    """
    if is_exact_duplicate(candidate, used):
        return True
    for t in used:
        if jaccard(candidate, t) >= threshold:
            return True
    return False
