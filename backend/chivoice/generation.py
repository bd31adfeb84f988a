# chivoice/generation.py
from __future__ import annotations

import random
from typing import Optional

from .content_generator import JsonWriter, generate_task_draft
from .errors import PolicyRejection
from .languages import resolve_language
from .progress import reset
from .schemas import GenerateTaskOutput, Language, ProgressOutput, is_valid_uuid
from .settings import settings
from .unlock_policy import DecisionKind, PolicySnapshot, UnlockState, decide, resolve_state

STARTER_PENDING_MESSAGE = "Please complete the starter tasks first"
LOCKED_MESSAGE = "You need to complete 2 recordings before generating next task"


def _require_user(user_id: str) -> str:
    user_id = (user_id or "").strip()
    if not is_valid_uuid(user_id):
        raise ValueError("Invalid user_id format")
    return user_id


def _snapshot(repo, language: Language, user_id: str) -> PolicySnapshot:
    task_count = repo.count_tasks(language.id)
    return PolicySnapshot(
        task_count=task_count,
        next_starter=repo.next_incomplete_starter(language.id, user_id) if task_count else None,
        progress=repo.get_progress(user_id, language.id),
    )


async def generate_next_task(
    repo,
    *,
    language_identifier: str,
    user_id: str,
    force: bool = False,
    writer: Optional[JsonWriter] = None,
    rng: Optional[random.Random] = None,
) -> GenerateTaskOutput:
    """
    Produce the next task for (user, language).

    Policy first, then content, then one persistence step that stores the task
    and resets the user's cycle together. Rejections raise PolicyRejection.
    """
    user_id = _require_user(user_id)
    language = resolve_language(repo, language_identifier)
    snapshot = _snapshot(repo, language, user_id)
    decision = decide(snapshot, force=force)
    cycle = reset(snapshot.progress) if snapshot.progress else None

    if decision.kind is DecisionKind.SEED_STARTERS:
        starters = repo.seed_starter_tasks(language.id)
        repo.reset_progress(user_id, language.id)
        print(f"[generate] Seeded {len(starters)} starter tasks for {language.name}")
        return GenerateTaskOutput(ok=True, task=starters[0], fallback=False, seeded_starters=True, progress=cycle)

    if decision.kind is DecisionKind.REJECT_STARTER_PENDING:
        starter = decision.next_starter
        raise PolicyRejection(
            STARTER_PENDING_MESSAGE,
            next_starter_task=starter.model_dump(mode="json") if starter else None,
        )

    if decision.kind is DecisionKind.REJECT_LOCKED:
        raise PolicyRejection(LOCKED_MESSAGE, recordings_needed=decision.recordings_needed)

    if decision.forced:
        print(f"[generate] Forced generation for {user_id} in {language.name}")

    used_texts = repo.recent_task_texts(language.id, limit=settings.RECENT_TASK_LIMIT)
    draft = await generate_task_draft(
        language_name=language.name,
        used_texts=used_texts,
        rng=rng,
        writer=writer,
        max_tries=settings.FALLBACK_MAX_TRIES,
    )

    task = repo.save_generated_task(
        user_id=user_id,
        language_id=language.id,
        english_text=draft.english_text,
        description=draft.description,
        category=draft.category,
        difficulty=draft.difficulty,
        estimated_time=draft.estimated_time,
        created_by_ai=draft.created_by_ai,
    )
    print(f"[generate] {language.name}: new {task.category} task {task.id} ({draft.origin}), "
          f"state -> {UnlockState.LOCKED.value}")
    return GenerateTaskOutput(ok=True, task=task, fallback=not draft.created_by_ai, progress=cycle)


def progress_view(repo, *, language_identifier: str, user_id: str) -> ProgressOutput:
    user_id = _require_user(user_id)
    language = resolve_language(repo, language_identifier)
    snapshot = _snapshot(repo, language, user_id)
    decision = decide(snapshot)
    progress = snapshot.progress

    return ProgressOutput(
        ok=True,
        state=resolve_state(snapshot).value,
        recordings_count=progress.recordings_count if progress else 0,
        can_generate_next=progress.can_generate_next if progress else False,
        recordings_needed=decision.recordings_needed,
        next_starter_task=snapshot.next_starter,
    )
