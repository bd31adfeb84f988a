"""
Curated fallback content.
Deterministic template pools used whenever the model is unavailable or its
output is rejected. Every candidate is checked against the deduplication
filter and the naturalness heuristics before it is accepted.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from .dedup import is_exact_duplicate, is_too_similar, max_similarity
from .naturalness import is_natural

DEFAULT_MAX_TRIES = 12

WORDS = [
    "water", "family", "friend", "market", "school", "village", "river", "house",
    "doctor", "music", "morning", "evening", "bread", "money", "phone", "bus",
    "mother", "father", "child", "road", "rain", "sun", "fire", "tree",
]

PHRASES = [
    "How are you?",
    "Please wait a moment.",
    "Can you help me?",
    "I don't understand.",
    "What time is it?",
    "See you tomorrow.",
    "I would like some water.",
    "I'm on my way.",
    "I need a doctor.",
    "Where can I buy food?",
    "Thank you very much.",
    "Good morning, my friend.",
    "Come and eat with us.",
    "How much does this cost?",
    "Please speak more slowly.",
]

PLACES = ["market", "school", "river", "farm", "village", "clinic", "bus station", "store", "house"]
TIMES = ["this morning", "this afternoon", "this evening", "today", "tomorrow", "next week"]
VERBS = ["eat", "cook", "sing", "work", "rest", "walk"]

PHRASE_TEMPLATES = [
    "Where is the {place}?",
    "Let's go to the {place}.",
    "Meet me at the {place}.",
]

SENTENCE_TEMPLATES = [
    "I am going to the {place} {time}.",
    "My house is near the {place}.",
    "We will meet at the {place} {time}.",
    "She is working at the {place} {time}.",
    "He is walking to the {place} now.",
    "They are waiting for us at the {place}.",
    "Our children play near the {place}.",
    "You can find water at the {place}.",
    "I {verb} with my family {time}.",
]

ESTIMATED_MINUTES = {"word": 1, "phrase": 2, "sentence": 3}
LAST_RESORT_TEXT = "Thank you very much."


@dataclass
class FallbackCandidate:
    text: str
    description: str
    estimated_time: int
    category: str


def _fill(template: str, rng: random.Random) -> str:
    return template.format(
        place=rng.choice(PLACES),
        time=rng.choice(TIMES),
        verb=rng.choice(VERBS),
    )


def make_candidate(category: str, language_name: str, used: Set[str], rng: Optional[random.Random] = None) -> FallbackCandidate:
    rng = rng or random.Random()

    if category == "word":
        fresh = [w for w in WORDS if not is_exact_duplicate(w, used)]
        text = rng.choice(fresh or WORDS)
        description = f'Translate the word "{text}" into {language_name}.'
    elif category == "phrase":
        pool = PHRASES + [_fill(t, rng) for t in PHRASE_TEMPLATES]
        fresh = [p for p in pool if not is_too_similar(p, used)]
        text = rng.choice(fresh or pool)
        description = f"Translate this everyday expression into {language_name}."
    else:
        category = "sentence"
        text = _fill(rng.choice(SENTENCE_TEMPLATES), rng)
        description = f"Translate this practical sentence into {language_name}."

    return FallbackCandidate(
        text=text,
        description=description,
        estimated_time=ESTIMATED_MINUTES[category],
        category=category,
    )


def _rank(candidate: FallbackCandidate, used: Set[str]) -> Tuple[int, int, float]:
    # lower is better: natural first, then non-duplicate, then least similar
    return (
        0 if is_natural(candidate.text, candidate.category) else 1,
        1 if is_exact_duplicate(candidate.text, used) else 0,
        max_similarity(candidate.text, used),
    )


def pick_unique_fallback(
    category: str,
    language_name: str,
    used: Set[str],
    *,
    rng: Optional[random.Random] = None,
    max_tries: int = DEFAULT_MAX_TRIES,
) -> FallbackCandidate:
    """
    Draw up to `max_tries` candidates and return the first one that is natural
    and not (near-)duplicate. When none qualifies, return the best candidate
    seen for the same category.
    """
    rng = rng or random.Random()
    seen: List[FallbackCandidate] = []

    for _ in range(max(1, max_tries)):
        c = make_candidate(category, language_name, used, rng)
        if is_natural(c.text, c.category) and not is_too_similar(c.text, used):
            return c
        seen.append(c)

    best = min(seen, key=lambda c: _rank(c, used))
    if is_natural(best.text, best.category):
        return best

    return FallbackCandidate(
        text=LAST_RESORT_TEXT,
        description=f"Translate this everyday expression into {language_name}.",
        estimated_time=ESTIMATED_MINUTES["phrase"],
        category="phrase",
    )
