# chivoice/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class ChiVoiceError(Exception):
    """Base class for errors the routers translate into HTTP responses."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str = "", **extra: Any):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.extra: Dict[str, Any] = extra

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": False, "error": self.message}
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body


class PolicyRejection(ChiVoiceError):
    """
    Generation refused by the unlock policy.
    Expected and user-recoverable: carries either `recordings_needed`
    or `next_starter_task` so the client can tell the user what to do.
    """

    status_code = 400
    error = "generation_locked"

    def __init__(
        self,
        message: str,
        *,
        recordings_needed: Optional[int] = None,
        next_starter_task: Optional[Dict[str, Any]] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(
            message,
            recordings_needed=recordings_needed,
            next_starter_task=next_starter_task,
            detail=detail,
        )
        self.recordings_needed = recordings_needed
        self.next_starter_task = next_starter_task


class LanguageNotFound(ChiVoiceError):
    status_code = 404
    error = "Language not found"


class TaskNotFound(ChiVoiceError):
    status_code = 404
    error = "Task not found"


class InvalidAudio(ChiVoiceError):
    status_code = 400
    error = "Invalid audio payload"


class AudioTooLarge(ChiVoiceError):
    status_code = 413
    error = "Audio file too large"


class SelfReferralError(ChiVoiceError):
    status_code = 400
    error = "Cannot refer yourself"


class PersistenceError(ChiVoiceError):
    """Store failure (constraint violation, connectivity). Retryable by the caller."""

    status_code = 500
    error = "persistence_failed"


class StorageError(ChiVoiceError):
    status_code = 500
    error = "storage_failed"


class NotConfigured(ChiVoiceError):
    status_code = 503
    error = "service_not_configured"
