# chivoice/deps.py
# Shared router plumbing: store providers (overridable in tests) and error bodies.
from __future__ import annotations

from fastapi.responses import JSONResponse

from .errors import ChiVoiceError
from .repository import PostgresRepository
from .storage import RecordingStorage

_repo = PostgresRepository()
_storage = RecordingStorage()


def get_repository() -> PostgresRepository:
    return _repo


def get_storage() -> RecordingStorage:
    return _storage


def error_response(e: ChiVoiceError) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content=e.to_body())


def bad_request(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": "invalid_request", "detail": detail},
    )
