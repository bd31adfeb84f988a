# chivoice/languages_api.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from .deps import bad_request, error_response, get_repository
from .errors import ChiVoiceError
from .languages import list_languages, upsert_language
from .schemas import UpsertLanguageInput, UpsertLanguageOutput

router = APIRouter(prefix="/languages", tags=["languages"])


@router.get("")
def list_languages_route(repo=Depends(get_repository)):
    try:
        languages = list_languages(repo)
    except ChiVoiceError as e:
        return error_response(e)
    return {"ok": True, "languages": [lang.model_dump(mode="json") for lang in languages]}


@router.post("/upsert", response_model=UpsertLanguageOutput)
def upsert_language_route(payload: UpsertLanguageInput, repo=Depends(get_repository)):
    """Find a language by code or name (backfilling the code), else create it with starters."""
    try:
        language = upsert_language(repo, code=payload.code, name=payload.name)
    except ChiVoiceError as e:
        return error_response(e)
    except ValueError as e:
        return bad_request(str(e))
    return UpsertLanguageOutput(ok=True, language=language)
