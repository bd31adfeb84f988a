# chivoice/llm_client.py
from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

try:
    from anthropic import Anthropic
except Exception:
    Anthropic = None  # type: ignore

from .settings import settings


# =========================
# ENV
# =========================
CLAUDE_API_KEY = (settings.ANTHROPIC_API_KEY or "").strip()
CLAUDE_MODEL = (settings.CLAUDE_MODEL or "claude-3-haiku-20240307").strip()
LLM_TIMEOUT_SECONDS = float(settings.LLM_TIMEOUT_SECONDS or 20.0)


# =========================
# Client init
# =========================
claude = None
if Anthropic and CLAUDE_API_KEY:
    claude = Anthropic(api_key=CLAUDE_API_KEY, max_retries=0)


# =========================
# Helpers
# =========================
def _strip_json_fences(s: str) -> str:
    """Remove markdown code fences around a JSON answer."""
    if not s:
        return ""
    s = s.strip()
    s = re.sub(r'^```\s*(?:json)?\s*\n?', '', s, flags=re.IGNORECASE)
    s = re.sub(r'\n?\s*```\s*$', '', s)
    return s.strip()


def _extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Extract the first top-level JSON object from arbitrary text.
    Returns dict or None.
    """
    if not text:
        return None

    s = _strip_json_fences(text)

    # Fast path
    if s.startswith("{") and s.endswith("}"):
        try:
            obj = json.loads(s)
            return obj if isinstance(obj, dict) else None
        except Exception:
            pass

    # Bracket matching
    start = s.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for i, ch in enumerate(s[start:], start):
        if escape:
            escape = False
            continue
        if ch == "\\" and in_string:
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    obj = json.loads(s[start : i + 1])
                    return obj if isinstance(obj, dict) else None
                except Exception:
                    return None

    return None


def log_generation(*, language: str, category: str, origin: str, reason: Optional[str] = None, meta: Optional[Dict[str, Any]] = None) -> None:
    """Lightweight stdout JSON log for monitoring task generation."""
    try:
        payload = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "event": "task_generation",
            "language": language,
            "category": category,
            "origin": origin,
            "reason": reason,
            "meta": meta or {},
        }
        print(json.dumps(payload, ensure_ascii=False))
    except Exception:
        pass


# Core API call. Every failure mode comes back as (None, reason); callers fall back.
async def request_json(
    *,
    system: str,
    user: str,
    max_tokens: int = 200,
    temperature: float = 0.4,
    client: Any = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Ask Claude for a single JSON object.

    Returns (payload, None) on success, or (None, reason) when the call is not
    configured, times out, returns an error status, or the body is not JSON.
    """
    c = client if client is not None else claude
    if c is None:
        return None, "llm_not_configured"

    def _call():
        return c.messages.create(
            model=model or CLAUDE_MODEL,
            system=system,
            messages=[{"role": "user", "content": user}],
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout if timeout is not None else LLM_TIMEOUT_SECONDS,
        )

    try:
        response = await asyncio.to_thread(_call)
    except Exception as e:
        print(f"[llm] Claude API error: {e!r}")
        return None, f"llm_error:{type(e).__name__}"

    text = ""
    try:
        if response.content and len(response.content) > 0:
            text = response.content[0].text or ""
    except Exception:
        text = ""

    if not text.strip():
        return None, "llm_empty_response"

    data = _extract_json_object(text)
    if data is None:
        print(f"[llm] Unparsable response: {text[:200]!r}")
        return None, "llm_unparsable"

    return data, None
