# chivoice/tasks_api.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .deps import bad_request, error_response, get_repository
from .errors import ChiVoiceError
from .generation import generate_next_task, progress_view
from .languages import resolve_language
from .schemas import GenerateTaskInput, GenerateTaskOutput, ProgressOutput, is_valid_uuid

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/generate", response_model=GenerateTaskOutput)
async def generate_task_route(payload: GenerateTaskInput, repo=Depends(get_repository)):
    """Generate the next task, or explain why the user has to record first."""
    try:
        return await generate_next_task(
            repo,
            language_identifier=payload.language_id,
            user_id=payload.user_id,
            force=payload.force,
        )
    except ChiVoiceError as e:
        if e.status_code >= 500:
            print(f"[generate] Failed for language={payload.language_id}: {e.message}")
        return error_response(e)
    except ValueError as e:
        return bad_request(str(e))


@router.get("")
def list_tasks_route(
    language_id: str = Query(...),
    user_id: str = Query(...),
    repo=Depends(get_repository),
):
    """All tasks of a language, most recent first, with per-user completion."""
    if not is_valid_uuid(user_id):
        return bad_request("Invalid user_id format")
    try:
        language = resolve_language(repo, language_id)
        tasks = repo.list_tasks_for_user(language.id, user_id)
    except ChiVoiceError as e:
        return error_response(e)
    return {"ok": True, "language": language.model_dump(mode="json"), "tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/progress", response_model=ProgressOutput)
def progress_route(
    language_id: str = Query(...),
    user_id: str = Query(...),
    repo=Depends(get_repository),
):
    try:
        return progress_view(repo, language_identifier=language_id, user_id=user_id)
    except ChiVoiceError as e:
        return error_response(e)
    except ValueError as e:
        return bad_request(str(e))
