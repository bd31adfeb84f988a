# chivoice/starter_tasks.py
from __future__ import annotations

from typing import Any, Dict, List

# (english_text, description), in sequence order 1..20
STARTER_SEQUENCE = [
    ("Hello", "A basic greeting used when meeting someone"),
    ("Thank you", "Expression of gratitude"),
    ("Please", "Polite way to make a request"),
    ("Goodbye", "Farewell expression"),
    ("Yes", "Affirmative response"),
    ("No", "Negative response"),
    ("Water", "Essential liquid for life"),
    ("Food", "What we eat for nourishment"),
    ("Home", "Place where one lives"),
    ("Family", "Group of related people"),
    ("How are you?", "Asking about someone's wellbeing"),
    ("What is your name?", "Asking for someone's identity"),
    ("I am fine", "Responding positively to a wellbeing inquiry"),
    ("Nice to meet you", "Polite expression when meeting someone new"),
    ("See you later", "Casual farewell for a future meeting"),
    ("My name is John", "Introducing oneself by name"),
    ("I live in the city", "Stating one's place of residence"),
    ("The weather is nice today", "Commenting on pleasant weather conditions"),
    ("I would like some water please", "Politely requesting water"),
    ("Thank you very much for your help", "Expressing deep gratitude for assistance"),
]

STARTER_TASK_COUNT = len(STARTER_SEQUENCE)


def starter_tier(sequence_order: int) -> Dict[str, Any]:
    """1-10 word/beginner, 11-15 phrase/intermediate, 16-20 sentence/advanced."""
    if sequence_order <= 10:
        return {"category": "word", "difficulty": "beginner", "estimated_time": 1}
    if sequence_order <= 15:
        return {"category": "phrase", "difficulty": "intermediate", "estimated_time": 2}
    return {"category": "sentence", "difficulty": "advanced", "estimated_time": 3}


def starter_rows(language_id: str) -> List[Dict[str, Any]]:
    """Insertable task rows for the fixed starter sequence of one language."""
    rows: List[Dict[str, Any]] = []
    for order, (text, description) in enumerate(STARTER_SEQUENCE, start=1):
        row = {
            "language_id": language_id,
            "english_text": text,
            "description": description,
            "sequence_order": order,
            "is_starter_task": True,
            "created_by_ai": False,
        }
        row.update(starter_tier(order))
        rows.append(row)
    return rows
