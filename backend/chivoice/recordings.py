# chivoice/recordings.py
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import AudioTooLarge, InvalidAudio, PersistenceError, TaskNotFound
from .ledger import points_for_difficulty
from .progress import UNLOCK_THRESHOLD
from .schemas import RecordingOutcome, SubmitRecordingInput, is_valid_uuid
from .settings import settings


@dataclass
class SubmittedRecording:
    outcome: RecordingOutcome
    file_path: str


def decode_audio(payload: str, *, max_bytes: Optional[int] = None) -> Tuple[bytes, Optional[str]]:
    """
    Decode base64 audio, optionally wrapped as a data URL
    (`data:audio/webm;base64,...`). Returns (bytes, content type from the prefix).
    """
    raw = (payload or "").strip()
    content_type = None
    if raw.startswith("data:"):
        header, _, raw = raw.partition(",")
        content_type = header[5:].split(";")[0].strip() or None

    if not raw:
        raise InvalidAudio("Empty audio payload")

    try:
        data = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidAudio("Audio is not valid base64", detail=str(e)) from e

    if not data:
        raise InvalidAudio("Empty audio payload")

    limit = max_bytes if max_bytes is not None else settings.MAX_AUDIO_BYTES
    if len(data) > limit:
        raise AudioTooLarge(f"Audio exceeds {limit} bytes", size=len(data))

    return data, content_type


def submit_recording(repo, storage, payload: SubmitRecordingInput) -> SubmittedRecording:
    """
    Store the audio blob, then insert the recording, advance progress and
    credit points in one repository transaction.
    """
    user_id = (payload.user_id or "").strip()
    if not is_valid_uuid(user_id):
        raise ValueError("Invalid user_id format")

    data, sniffed_type = decode_audio(payload.audio_base64)
    content_type = sniffed_type or payload.content_type or "audio/webm"

    task = repo.get_task(payload.task_id)
    if task is None:
        raise TaskNotFound()

    file_path, audio_url = storage.upload(
        user_id=user_id,
        task_id=task.id,
        data=data,
        content_type=content_type,
    )

    points = points_for_difficulty(task.difficulty)
    try:
        outcome = repo.record_recording(
            user_id=user_id,
            task=task,
            audio_url=audio_url,
            notes=(payload.notes or None),
            duration=max(0, int(payload.duration or 0)),
            points=points,
            threshold=UNLOCK_THRESHOLD,
        )
    except PersistenceError:
        # TODO: delete the orphaned blob once storage exposes a remove call
        print(f"[recording] DB insert failed, orphaned blob left at {file_path}")
        raise
    print(
        f"[recording] {user_id} recorded task {task.id} (+{points} pts, "
        f"cycle {outcome.progress.recordings_count}/{UNLOCK_THRESHOLD})"
    )
    return SubmittedRecording(outcome=outcome, file_path=file_path)
