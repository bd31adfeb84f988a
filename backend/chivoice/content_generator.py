"""
Task content generation.
One pipeline: ask Claude for a candidate, validate it, and fall back to the
curated templates on any failure. The result is a TaskDraft tagged with its
origin; persistence is the caller's job.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .dedup import is_exact_duplicate, normalize_text, used_text_set
from .fallback import DEFAULT_MAX_TRIES, pick_unique_fallback
from .llm_client import log_generation, request_json
from .naturalness import unnatural_reason
from .schemas import DIFFICULTIES

# Bias towards phrases and sentences for everyday usage
CATEGORY_POOL = ["phrase", "sentence", "sentence", "phrase", "word"]

AVOID_LIST_SIZE = 20

SYSTEM_PROMPT = (
    "You are an expert in language learning and indigenous language preservation. "
    "Return only valid JSON objects."
)

JsonWriter = Callable[..., Awaitable[Tuple[Optional[Dict[str, Any]], Optional[str]]]]


@dataclass
class TaskDraft:
    english_text: str
    description: str
    category: str
    difficulty: str
    estimated_time: int
    origin: str  # "ai" | "fallback"
    fallback_reason: Optional[str] = None

    @property
    def created_by_ai(self) -> bool:
        return self.origin == "ai"


def pick_category(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(CATEGORY_POOL)


def pick_difficulty(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(list(DIFFICULTIES))


def clamp_minutes(value: Any, default: int = 2) -> int:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(v):
        return default
    return int(min(5, max(1, round(v))))


def _avoid_lists(used_texts: List[str]) -> Tuple[List[str], List[str]]:
    seen: List[str] = []
    for t in used_texts:
        n = normalize_text(t)
        if n and n not in seen:
            seen.append(n)
    words = [t for t in seen if " " not in t]
    return seen[:AVOID_LIST_SIZE], words[:AVOID_LIST_SIZE]


def build_prompt(*, language_name: str, category: str, difficulty: str, used_texts: List[str]) -> Tuple[str, str]:
    avoid, avoid_words = _avoid_lists(used_texts)
    avoidance = f" Avoid these already used items: {', '.join(avoid)}." if avoid else ""
    avoidance_words = (
        f" Do not use any of these words: {', '.join(avoid_words)}."
        if category == "word" and avoid_words
        else ""
    )

    user = f"""Generate a {difficulty} level English {category} for everyday conversation practice in {language_name}.

Requirements:
- It must sound natural and be commonly used in daily life (avoid odd verb-object pairs like "visit the food").
- Prefer neutral, culturally respectful content for general contexts.
- Keep it short and clear. Words: one token; Phrases: 2-8 words; Sentences: 4-14 words.
- Output MUST be valid JSON only: {{"english_text": string, "description": string, "estimated_time": number}}
- Good examples:
  - Word: "water"
  - Phrase: "Where is the market?"
  - Sentence: "We will visit the market tomorrow."
- Bad examples (do NOT produce):
  - "We will visit the food tomorrow."
  - "Repair the rice now."
{avoidance}{avoidance_words}
Return only the JSON object, without any extra text."""
    return SYSTEM_PROMPT, user


def _rejection_reason(text: str, category: str, used: set) -> Optional[str]:
    if not text:
        return "ai_missing_text"
    if is_exact_duplicate(text, used):
        return "ai_duplicate"
    why = unnatural_reason(text, category)
    if why:
        return f"ai_unnatural:{why}"
    return None


async def generate_task_draft(
    *,
    language_name: str,
    used_texts: List[str],
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    rng: Optional[random.Random] = None,
    writer: Optional[JsonWriter] = None,
    max_tries: int = DEFAULT_MAX_TRIES,
) -> TaskDraft:
    """
    Produce the next task draft for a language.

    `used_texts` are the language's recent English texts, most recent first.
    The model result is accepted only when it is non-empty, not an exact
    duplicate and passes the naturalness check; everything else ends in the
    curated fallback.
    """
    rng = rng or random.Random()
    category = category or pick_category(rng)
    difficulty = difficulty or pick_difficulty(rng)
    used = used_text_set(used_texts)
    write = writer or request_json

    system, user = build_prompt(
        language_name=language_name,
        category=category,
        difficulty=difficulty,
        used_texts=used_texts,
    )

    data, reason = await write(system=system, user=user, max_tokens=200, temperature=0.4)

    if data is not None:
        text = str(data.get("english_text") or "").strip()
        reason = _rejection_reason(text, category, used)
        if reason is None:
            description = str(data.get("description") or "").strip() or f"Translate this into {language_name}."
            draft = TaskDraft(
                english_text=text,
                description=description,
                category=category,
                difficulty=difficulty,
                estimated_time=clamp_minutes(data.get("estimated_time", 2)),
                origin="ai",
            )
            log_generation(language=language_name, category=category, origin="ai")
            return draft
        print(f"[generate] AI output rejected ({reason}), switching to curated fallback")

    candidate = pick_unique_fallback(category, language_name, used, rng=rng, max_tries=max_tries)
    log_generation(language=language_name, category=candidate.category, origin="fallback", reason=reason)
    return TaskDraft(
        english_text=candidate.text,
        description=candidate.description,
        category=candidate.category,
        difficulty=difficulty,
        estimated_time=clamp_minutes(candidate.estimated_time),
        origin="fallback",
        fallback_reason=reason,
    )
