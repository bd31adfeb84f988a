# chivoice/progress.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .schemas import UserTaskProgress

# Recordings required in a generation cycle before the next task unlocks
UNLOCK_THRESHOLD = 2


def _now() -> datetime:
    return datetime.now(timezone.utc)


def advance(
    progress: Optional[UserTaskProgress],
    *,
    user_id: str,
    language_id: str,
    now: Optional[datetime] = None,
) -> UserTaskProgress:
    """
    Progress after one more recording. A missing row starts at 1.
    The repository upsert performs the same transition in SQL.
    """
    ts = now or _now()
    count = (progress.recordings_count if progress else 0) + 1
    return UserTaskProgress(
        user_id=user_id,
        language_id=language_id,
        recordings_count=count,
        last_recording_at=ts,
        can_generate_next=count >= UNLOCK_THRESHOLD,
        updated_at=ts,
    )


def reset(progress: UserTaskProgress, *, now: Optional[datetime] = None) -> UserTaskProgress:
    """Progress after a task was generated: back to zero, locked."""
    return progress.model_copy(
        update={
            "recordings_count": 0,
            "can_generate_next": False,
            "updated_at": now or _now(),
        }
    )


def recordings_needed(progress: Optional[UserTaskProgress]) -> int:
    count = progress.recordings_count if progress else 0
    return max(0, UNLOCK_THRESHOLD - count)


def is_unlocked(progress: Optional[UserTaskProgress]) -> bool:
    return bool(progress) and progress.recordings_count >= UNLOCK_THRESHOLD
