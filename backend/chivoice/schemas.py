# chivoice/schemas.py
from __future__ import annotations
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field

Category = Literal["word", "phrase", "sentence"]
Difficulty = Literal["beginner", "intermediate", "advanced"]

DIFFICULTIES: tuple = ("beginner", "intermediate", "advanced")


# =========================
# Stored records
# =========================
class Language(BaseModel):
    id: str
    code: str
    name: str
    is_popular: bool = False
    created_at: Optional[datetime] = None

class Task(BaseModel):
    id: str
    language_id: str
    english_text: str
    description: Optional[str] = None
    category: Category
    difficulty: Difficulty
    estimated_time: int = Field(default=2, ge=1, le=5)
    sequence_order: Optional[int] = None
    is_starter_task: bool = False
    created_by_ai: bool = False
    created_at: Optional[datetime] = None

class Recording(BaseModel):
    id: str
    user_id: str
    task_id: str
    audio_url: str
    notes: Optional[str] = None
    duration: int = 0
    archive_cid: Optional[str] = None
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class UserTaskProgress(BaseModel):
    user_id: str
    language_id: str
    recordings_count: int = 0
    last_recording_at: Optional[datetime] = None
    can_generate_next: bool = False
    updated_at: Optional[datetime] = None

class Profile(BaseModel):
    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    points: int = 0
    total_recordings: int = 0

class Referral(BaseModel):
    id: str
    referrer_id: str
    referred_user_id: str
    points_awarded: bool = False
    created_at: Optional[datetime] = None

class TaskView(Task):
    is_completed: bool = False

class RecordingOutcome(BaseModel):
    recording: Recording
    progress: UserTaskProgress
    profile: Profile

class PublicStats(BaseModel):
    total_recordings: int = 0
    total_languages: int = 0
    total_contributors: int = 0

# =========================
# /healthz
# =========================
class HealthOutput(BaseModel):
    ok: bool = True
    db: Optional[bool] = None
    build: Optional[str] = None
    routes: Optional[List[str]] = None

# =========================
# /tasks
# =========================
class GenerateTaskInput(BaseModel):
    language_id: str
    user_id: str
    force: bool = False

class GenerateTaskOutput(BaseModel):
    ok: bool = True
    task: Task
    fallback: bool = False
    seeded_starters: bool = False
    progress: Optional[UserTaskProgress] = None

class ProgressOutput(BaseModel):
    ok: bool = True
    state: str
    recordings_count: int = 0
    can_generate_next: bool = False
    recordings_needed: int = 0
    next_starter_task: Optional[Task] = None

# =========================
# /recordings
# =========================
class SubmitRecordingInput(BaseModel):
    task_id: str
    user_id: str
    audio_base64: str
    content_type: Optional[str] = "audio/webm"
    duration: Optional[int] = 0
    notes: Optional[str] = None

class SubmitRecordingOutput(BaseModel):
    ok: bool = True
    recording: Recording
    progress: UserTaskProgress
    profile: Profile
    archive_scheduled: bool = False

# =========================
# /languages
# =========================
class UpsertLanguageInput(BaseModel):
    code: str
    name: str

class UpsertLanguageOutput(BaseModel):
    ok: bool = True
    language: Language

# =========================
# /account
# =========================
class ReferralInput(BaseModel):
    referrer_id: str
    referred_user_id: str

class ReferralOutput(BaseModel):
    ok: bool = True
    awarded: bool = False
    referral: Optional[Referral] = None

class ProfileSummary(BaseModel):
    ok: bool = True
    profile: Profile
    level: str = "Beginner"
    languages_recorded: int = 0
    contribution_minutes: int = 0
    meta: Optional[Dict[str, Any]] = None


def is_valid_uuid(val: Any) -> bool:
    try:
        uuid.UUID(str(val))
        return True
    except (ValueError, AttributeError):
        return False
