from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from chivoice import progress as progress_rules
from chivoice.errors import PersistenceError
from chivoice.schemas import (
    Language,
    Profile,
    PublicStats,
    Recording,
    RecordingOutcome,
    Referral,
    Task,
    TaskView,
    UserTaskProgress,
    is_valid_uuid,
)
from chivoice.starter_tasks import starter_rows

USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"


class FakeRepository:
    """In-memory stand-in for PostgresRepository with the same method surface."""

    def __init__(self):
        self.languages: Dict[str, Language] = {}
        self.tasks: List[Task] = []
        self.recordings: List[Recording] = []
        self.progress: Dict[Tuple[str, str], UserTaskProgress] = {}
        self.profiles: Dict[str, Profile] = {}
        self.referrals: Dict[str, Referral] = {}
        self.saved_generated: int = 0
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    # languages
    def get_language(self, identifier):
        ident = (identifier or "").strip()
        if is_valid_uuid(ident) and ident in self.languages:
            return self.languages[ident]
        return self.get_language_by_code(ident)

    def get_language_by_id(self, language_id):
        return self.languages.get(language_id)

    def get_language_by_code(self, code):
        return next((lang for lang in self.languages.values() if lang.code == code), None)

    def get_language_by_name(self, name):
        return next((lang for lang in self.languages.values() if lang.name == name), None)

    def insert_language(self, *, name, code, is_popular=False):
        existing = self.get_language_by_code(code)
        if existing:
            return existing
        if self.get_language_by_name(name):
            raise PersistenceError("Database operation failed", detail="UniqueViolation")
        lang = Language(id=str(uuid.uuid4()), code=code, name=name, is_popular=is_popular, created_at=self._tick())
        self.languages[lang.id] = lang
        return lang

    def update_language_code(self, language_id, code):
        lang = self.languages[language_id].model_copy(update={"code": code})
        self.languages[language_id] = lang
        return lang

    def list_languages(self):
        return sorted(self.languages.values(), key=lambda lang: (not lang.is_popular, lang.name))

    def seed_languages(self, languages):
        inserted = 0
        for name, code, popular in languages:
            if self.get_language_by_code(code) or self.get_language_by_name(name):
                continue
            self.insert_language(name=name, code=code, is_popular=popular)
            inserted += 1
        return inserted

    # tasks
    def add_task(self, language_id, english_text, *, category="phrase", difficulty="beginner", **extra):
        task = Task(
            id=str(uuid.uuid4()),
            language_id=language_id,
            english_text=english_text,
            category=category,
            difficulty=difficulty,
            created_at=self._tick(),
            **extra,
        )
        self.tasks.append(task)
        return task

    def count_tasks(self, language_id):
        return sum(1 for t in self.tasks if t.language_id == language_id)

    def get_task(self, task_id):
        return next((t for t in self.tasks if t.id == task_id), None)

    def _recorded(self, task_id, user_id):
        return any(r.task_id == task_id and r.user_id == user_id for r in self.recordings)

    def next_incomplete_starter(self, language_id, user_id):
        starters = sorted(
            (t for t in self.tasks if t.language_id == language_id and t.is_starter_task),
            key=lambda t: t.sequence_order,
        )
        return next((t for t in starters if not self._recorded(t.id, user_id)), None)

    def seed_starter_tasks(self, language_id):
        have = {t.sequence_order for t in self.tasks if t.language_id == language_id and t.is_starter_task}
        for row in starter_rows(language_id):
            if row["sequence_order"] in have:
                continue
            row = dict(row)
            self.add_task(row.pop("language_id"), row.pop("english_text"), **row)
        return sorted(
            (t for t in self.tasks if t.language_id == language_id and t.is_starter_task),
            key=lambda t: t.sequence_order,
        )

    def recent_task_texts(self, language_id, limit=200):
        rows = [t for t in self.tasks if t.language_id == language_id]
        rows.sort(key=lambda t: t.created_at, reverse=True)
        return [t.english_text for t in rows[:limit]]

    def save_generated_task(self, *, user_id, language_id, english_text, description, category,
                            difficulty, estimated_time, created_by_ai):
        task = self.add_task(
            language_id,
            english_text,
            category=category,
            difficulty=difficulty,
            description=description,
            estimated_time=estimated_time,
            created_by_ai=created_by_ai,
        )
        self.reset_progress(user_id, language_id)
        self.saved_generated += 1
        return task

    def list_tasks_for_user(self, language_id, user_id):
        rows = [t for t in self.tasks if t.language_id == language_id]
        rows.sort(key=lambda t: t.created_at, reverse=True)
        return [TaskView(**t.model_dump(), is_completed=self._recorded(t.id, user_id)) for t in rows]

    # progress
    def get_progress(self, user_id, language_id):
        return self.progress.get((user_id, language_id))

    def reset_progress(self, user_id, language_id):
        key = (user_id, language_id)
        if key in self.progress:
            self.progress[key] = progress_rules.reset(self.progress[key])

    # recordings
    def record_recording(self, *, user_id, task, audio_url, notes, duration, points, threshold):
        rec = Recording(
            id=str(uuid.uuid4()),
            user_id=user_id,
            task_id=task.id,
            audio_url=audio_url,
            notes=notes,
            duration=duration,
            created_at=self._tick(),
        )
        self.recordings.append(rec)

        key = (user_id, task.language_id)
        self.progress[key] = progress_rules.advance(
            self.progress.get(key), user_id=user_id, language_id=task.language_id
        )

        profile = self.profiles.get(user_id) or Profile(id=user_id)
        profile = profile.model_copy(
            update={"points": profile.points + points, "total_recordings": profile.total_recordings + 1}
        )
        self.profiles[user_id] = profile
        return RecordingOutcome(recording=rec, progress=self.progress[key], profile=profile)

    def mark_recording_archived(self, recording_id, cid):
        for i, rec in enumerate(self.recordings):
            if rec.id == recording_id:
                self.recordings[i] = rec.model_copy(update={"archive_cid": cid, "archived_at": self._tick()})

    # profiles / referrals
    def get_profile(self, user_id):
        return self.profiles.get(user_id)

    def profile_contributions(self, user_id):
        tasks = [self.get_task(r.task_id) for r in self.recordings if r.user_id == user_id]
        return len({t.language_id for t in tasks}), sum(t.estimated_time for t in tasks)

    def create_referral(self, *, referrer_id, referred_user_id, bonus):
        if referred_user_id in self.referrals:
            return None
        ref = Referral(
            id=str(uuid.uuid4()),
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            points_awarded=True,
            created_at=self._tick(),
        )
        self.referrals[referred_user_id] = ref
        profile = self.profiles.get(referrer_id) or Profile(id=referrer_id)
        self.profiles[referrer_id] = profile.model_copy(update={"points": profile.points + bonus})
        return ref

    def public_stats(self):
        return PublicStats(
            total_recordings=len(self.recordings),
            total_languages=len(self.languages),
            total_contributors=sum(1 for p in self.profiles.values() if p.total_recordings > 0),
        )


class FakeStorage:
    def __init__(self, fail_download: bool = False):
        self.blobs: Dict[str, bytes] = {}
        self.fail_download = fail_download

    def upload(self, *, user_id, task_id, data, content_type):
        path = f"{user_id}/{task_id}_{len(self.blobs) + 1}.webm"
        self.blobs[path] = data
        return path, f"https://storage.test/recordings/{path}"

    def download(self, path):
        if self.fail_download:
            raise RuntimeError("download failed")
        return self.blobs[path]


def record(repo: FakeRepository, user_id: str, task: Task, points: int = 10) -> RecordingOutcome:
    return repo.record_recording(
        user_id=user_id,
        task=task,
        audio_url="https://storage.test/a.webm",
        notes=None,
        duration=3,
        points=points,
        threshold=progress_rules.UNLOCK_THRESHOLD,
    )


def complete_starters(repo: FakeRepository, language_id: str, user_id: str) -> None:
    for task in repo.seed_starter_tasks(language_id):
        if not repo._recorded(task.id, user_id):
            record(repo, user_id, task)
    repo.reset_progress(user_id, language_id)


@pytest.fixture(autouse=True)
def _no_external_services(monkeypatch):
    from chivoice import llm_client
    from chivoice.settings import settings

    monkeypatch.setattr(llm_client, "claude", None)
    monkeypatch.setattr(settings, "GLOTTOLOG_CSV_URL", None)
    monkeypatch.setattr(settings, "S5_PORTAL_URL", None)


@pytest.fixture
def repo() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def language(repo: FakeRepository) -> Language:
    return repo.insert_language(name="Quechua", code="qu")


@pytest.fixture
def seeded_language(repo: FakeRepository, language: Language) -> Language:
    repo.seed_starter_tasks(language.id)
    return language
