# chivoice/repository.py
# Postgres-backed store. Every row leaving this module is a typed record.

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import psycopg2
from psycopg2.extras import RealDictCursor

from . import db
from .errors import NotConfigured, PersistenceError
from .schemas import (
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
from .starter_tasks import starter_rows

LANGUAGE_COLUMNS = "id, code, name, is_popular, created_at"
TASK_COLUMNS = (
    "id, language_id, english_text, description, category, difficulty, estimated_time, "
    "sequence_order, is_starter_task, created_by_ai, created_at"
)
RECORDING_COLUMNS = "id, user_id, task_id, audio_url, notes, duration, archive_cid, archived_at, created_at"
PROGRESS_COLUMNS = "user_id, language_id, recordings_count, last_recording_at, can_generate_next, updated_at"
PROFILE_COLUMNS = "id, display_name, avatar_url, points, total_recordings"
REFERRAL_COLUMNS = "id, referrer_id, referred_user_id, points_awarded, created_at"


def _row(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {k: (str(v) if isinstance(v, uuid.UUID) else v) for k, v in dict(row).items()}


@contextmanager
def _transaction() -> Iterator[Any]:
    """One connection, one transaction, dict rows. Store errors become PersistenceError."""
    try:
        conn = db._connect()
    except RuntimeError as e:
        raise NotConfigured("Database not configured", detail=str(e)) from e
    except psycopg2.Error as e:
        raise PersistenceError("Database unavailable", detail=type(e).__name__) from e
    try:
        with conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
    except psycopg2.Error as e:
        print(f"[db] {type(e).__name__}: {e}")
        raise PersistenceError("Database operation failed", detail=type(e).__name__) from e
    finally:
        conn.close()


class PostgresRepository:
    """Relational store for languages, tasks, recordings, progress, profiles and referrals."""

    # =========================
    # Languages
    # =========================
    def get_language(self, identifier: str) -> Optional[Language]:
        """Look up by UUID first, then by code."""
        ident = (identifier or "").strip()
        if not ident:
            return None
        if is_valid_uuid(ident):
            found = self.get_language_by_id(ident)
            if found:
                return found
        return self.get_language_by_code(ident)

    def get_language_by_id(self, language_id: str) -> Optional[Language]:
        with _transaction() as cur:
            cur.execute(f"SELECT {LANGUAGE_COLUMNS} FROM languages WHERE id = %s", (language_id,))
            row = _row(cur.fetchone())
        return Language.model_validate(row) if row else None

    def get_language_by_code(self, code: str) -> Optional[Language]:
        with _transaction() as cur:
            cur.execute(f"SELECT {LANGUAGE_COLUMNS} FROM languages WHERE code = %s", (code,))
            row = _row(cur.fetchone())
        return Language.model_validate(row) if row else None

    def get_language_by_name(self, name: str) -> Optional[Language]:
        with _transaction() as cur:
            cur.execute(f"SELECT {LANGUAGE_COLUMNS} FROM languages WHERE name = %s", (name,))
            row = _row(cur.fetchone())
        return Language.model_validate(row) if row else None

    def insert_language(self, *, name: str, code: str, is_popular: bool = False) -> Language:
        with _transaction() as cur:
            cur.execute(
                f"""
                INSERT INTO languages (name, code, is_popular)
                VALUES (%s, %s, %s)
                ON CONFLICT (code) DO UPDATE SET code = EXCLUDED.code
                RETURNING {LANGUAGE_COLUMNS}
                """,
                (name, code, is_popular),
            )
            row = _row(cur.fetchone())
        return Language.model_validate(row)

    def update_language_code(self, language_id: str, code: str) -> Language:
        with _transaction() as cur:
            cur.execute(
                f"UPDATE languages SET code = %s WHERE id = %s RETURNING {LANGUAGE_COLUMNS}",
                (code, language_id),
            )
            row = _row(cur.fetchone())
        if not row:
            raise PersistenceError("Language disappeared during code update")
        return Language.model_validate(row)

    def list_languages(self) -> List[Language]:
        with _transaction() as cur:
            cur.execute(f"SELECT {LANGUAGE_COLUMNS} FROM languages ORDER BY is_popular DESC, name ASC")
            rows = cur.fetchall() or []
        return [Language.model_validate(_row(r)) for r in rows]

    def seed_languages(self, languages: Iterable[Tuple[str, str, bool]]) -> int:
        inserted = 0
        with _transaction() as cur:
            for name, code, popular in languages:
                cur.execute(
                    """
                    INSERT INTO languages (name, code, is_popular)
                    VALUES (%s, %s, %s)
                    ON CONFLICT DO NOTHING
                    """,
                    (name, code, popular),
                )
                inserted += cur.rowcount or 0
        return inserted

    # =========================
    # Tasks
    # =========================
    def count_tasks(self, language_id: str) -> int:
        with _transaction() as cur:
            cur.execute("SELECT COUNT(*) AS n FROM tasks WHERE language_id = %s", (language_id,))
            row = cur.fetchone()
        return int((row or {}).get("n", 0))

    def get_task(self, task_id: str) -> Optional[Task]:
        if not is_valid_uuid(task_id):
            return None
        with _transaction() as cur:
            cur.execute(f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = %s", (task_id,))
            row = _row(cur.fetchone())
        return Task.model_validate(row) if row else None

    def next_incomplete_starter(self, language_id: str, user_id: str) -> Optional[Task]:
        """Lowest-sequence starter task of the language without a recording by the user."""
        with _transaction() as cur:
            cur.execute(
                f"""
                SELECT {TASK_COLUMNS}
                FROM tasks t
                WHERE t.language_id = %s
                  AND t.is_starter_task
                  AND NOT EXISTS (
                      SELECT 1 FROM recordings r
                      WHERE r.task_id = t.id AND r.user_id = %s
                  )
                ORDER BY t.sequence_order ASC
                LIMIT 1
                """,
                (language_id, user_id),
            )
            row = _row(cur.fetchone())
        return Task.model_validate(row) if row else None

    def seed_starter_tasks(self, language_id: str) -> List[Task]:
        """Insert the starter sequence (idempotent) and return it in order."""
        with _transaction() as cur:
            for r in starter_rows(language_id):
                cur.execute(
                    """
                    INSERT INTO tasks (
                        language_id, english_text, description, category, difficulty,
                        estimated_time, sequence_order, is_starter_task, created_by_ai
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (language_id, sequence_order) WHERE is_starter_task DO NOTHING
                    """,
                    (
                        r["language_id"], r["english_text"], r["description"], r["category"],
                        r["difficulty"], r["estimated_time"], r["sequence_order"],
                        r["is_starter_task"], r["created_by_ai"],
                    ),
                )
            cur.execute(
                f"""
                SELECT {TASK_COLUMNS} FROM tasks
                WHERE language_id = %s AND is_starter_task
                ORDER BY sequence_order ASC
                """,
                (language_id,),
            )
            rows = cur.fetchall() or []
        return [Task.model_validate(_row(r)) for r in rows]

    def recent_task_texts(self, language_id: str, limit: int = 200) -> List[str]:
        with _transaction() as cur:
            cur.execute(
                """
                SELECT english_text FROM tasks
                WHERE language_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (language_id, int(limit)),
            )
            rows = cur.fetchall() or []
        return [str(r.get("english_text") or "") for r in rows]

    def save_generated_task(
        self,
        *,
        user_id: str,
        language_id: str,
        english_text: str,
        description: str,
        category: str,
        difficulty: str,
        estimated_time: int,
        created_by_ai: bool,
    ) -> Task:
        """Insert a generated task and reset the user's cycle, in one transaction."""
        with _transaction() as cur:
            cur.execute(
                f"""
                INSERT INTO tasks (
                    language_id, english_text, description, category, difficulty,
                    estimated_time, is_starter_task, created_by_ai
                )
                VALUES (%s, %s, %s, %s, %s, %s, FALSE, %s)
                RETURNING {TASK_COLUMNS}
                """,
                (language_id, english_text, description, category, difficulty, estimated_time, created_by_ai),
            )
            row = _row(cur.fetchone())
            cur.execute(
                """
                UPDATE user_task_progress
                SET recordings_count = 0, can_generate_next = FALSE, updated_at = NOW()
                WHERE user_id = %s AND language_id = %s
                """,
                (user_id, language_id),
            )
        return Task.model_validate(row)

    def list_tasks_for_user(self, language_id: str, user_id: str) -> List[TaskView]:
        with _transaction() as cur:
            cur.execute(
                f"""
                SELECT {", ".join("t." + c.strip() for c in TASK_COLUMNS.split(","))},
                       EXISTS (
                           SELECT 1 FROM recordings r
                           WHERE r.task_id = t.id AND r.user_id = %s
                       ) AS is_completed
                FROM tasks t
                WHERE t.language_id = %s
                ORDER BY t.created_at DESC, t.sequence_order ASC NULLS LAST
                """,
                (user_id, language_id),
            )
            rows = cur.fetchall() or []
        return [TaskView.model_validate(_row(r)) for r in rows]

    # =========================
    # Progress
    # =========================
    def get_progress(self, user_id: str, language_id: str) -> Optional[UserTaskProgress]:
        with _transaction() as cur:
            cur.execute(
                f"SELECT {PROGRESS_COLUMNS} FROM user_task_progress WHERE user_id = %s AND language_id = %s",
                (user_id, language_id),
            )
            row = _row(cur.fetchone())
        return UserTaskProgress.model_validate(row) if row else None

    def reset_progress(self, user_id: str, language_id: str) -> None:
        with _transaction() as cur:
            cur.execute(
                """
                UPDATE user_task_progress
                SET recordings_count = 0, can_generate_next = FALSE, updated_at = NOW()
                WHERE user_id = %s AND language_id = %s
                """,
                (user_id, language_id),
            )

    # =========================
    # Recordings
    # =========================
    def record_recording(
        self,
        *,
        user_id: str,
        task: Task,
        audio_url: str,
        notes: Optional[str],
        duration: int,
        points: int,
        threshold: int,
    ) -> RecordingOutcome:
        """
        Insert the recording, advance the (user, language) progress row and
        credit the profile, all in one transaction. The progress upsert is a
        single INSERT .. ON CONFLICT keyed by (user_id, language_id), so
        concurrent submissions cannot lose increments.
        """
        with _transaction() as cur:
            cur.execute(
                f"""
                INSERT INTO recordings (user_id, task_id, audio_url, notes, duration)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {RECORDING_COLUMNS}
                """,
                (user_id, task.id, audio_url, notes, int(duration or 0)),
            )
            rec_row = _row(cur.fetchone())

            cur.execute(
                f"""
                INSERT INTO user_task_progress (
                    user_id, language_id, recordings_count, last_recording_at, can_generate_next
                )
                VALUES (%s, %s, 1, NOW(), %s)
                ON CONFLICT (user_id, language_id)
                DO UPDATE SET
                    recordings_count = user_task_progress.recordings_count + 1,
                    last_recording_at = NOW(),
                    can_generate_next = (user_task_progress.recordings_count + 1) >= %s,
                    updated_at = NOW()
                RETURNING {PROGRESS_COLUMNS}
                """,
                (user_id, task.language_id, 1 >= threshold, threshold),
            )
            progress_row = _row(cur.fetchone())

            cur.execute(
                f"""
                INSERT INTO profiles (id, points, total_recordings)
                VALUES (%s, %s, 1)
                ON CONFLICT (id)
                DO UPDATE SET
                    points = profiles.points + EXCLUDED.points,
                    total_recordings = profiles.total_recordings + 1,
                    updated_at = NOW()
                RETURNING {PROFILE_COLUMNS}
                """,
                (user_id, int(points)),
            )
            profile_row = _row(cur.fetchone())

        return RecordingOutcome(
            recording=Recording.model_validate(rec_row),
            progress=UserTaskProgress.model_validate(progress_row),
            profile=Profile.model_validate(profile_row),
        )

    def mark_recording_archived(self, recording_id: str, cid: str) -> None:
        with _transaction() as cur:
            cur.execute(
                "UPDATE recordings SET archive_cid = %s, archived_at = NOW() WHERE id = %s",
                (cid, recording_id),
            )

    # =========================
    # Profiles / referrals
    # =========================
    def get_profile(self, user_id: str) -> Optional[Profile]:
        with _transaction() as cur:
            cur.execute(f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE id = %s", (user_id,))
            row = _row(cur.fetchone())
        return Profile.model_validate(row) if row else None

    def profile_contributions(self, user_id: str) -> Tuple[int, int]:
        """(distinct languages recorded, summed estimated minutes) for a user."""
        with _transaction() as cur:
            cur.execute(
                """
                SELECT COUNT(DISTINCT t.language_id) AS languages,
                       COALESCE(SUM(t.estimated_time), 0) AS minutes
                FROM recordings r
                JOIN tasks t ON t.id = r.task_id
                WHERE r.user_id = %s
                """,
                (user_id,),
            )
            row = cur.fetchone() or {}
        return int(row.get("languages") or 0), int(row.get("minutes") or 0)

    def create_referral(self, *, referrer_id: str, referred_user_id: str, bonus: int) -> Optional[Referral]:
        """
        Insert the referral with points_awarded already set and credit the
        referrer in the same transaction. Returns None when the referred user
        already has a referral (nothing is awarded).
        """
        with _transaction() as cur:
            cur.execute(
                f"""
                INSERT INTO referrals (referrer_id, referred_user_id, points_awarded)
                VALUES (%s, %s, TRUE)
                ON CONFLICT (referred_user_id) DO NOTHING
                RETURNING {REFERRAL_COLUMNS}
                """,
                (referrer_id, referred_user_id),
            )
            row = _row(cur.fetchone())
            if not row:
                return None

            cur.execute(
                """
                INSERT INTO profiles (id, points)
                VALUES (%s, %s)
                ON CONFLICT (id)
                DO UPDATE SET points = profiles.points + EXCLUDED.points, updated_at = NOW()
                """,
                (referrer_id, int(bonus)),
            )
        return Referral.model_validate(row)

    # =========================
    # Stats
    # =========================
    def public_stats(self) -> PublicStats:
        with _transaction() as cur:
            cur.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM recordings) AS total_recordings,
                    (SELECT COUNT(*) FROM languages) AS total_languages,
                    (SELECT COUNT(*) FROM profiles WHERE total_recordings > 0) AS total_contributors
                """
            )
            row = cur.fetchone() or {}
        return PublicStats(
            total_recordings=int(row.get("total_recordings") or 0),
            total_languages=int(row.get("total_languages") or 0),
            total_contributors=int(row.get("total_contributors") or 0),
        )
