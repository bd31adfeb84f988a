import uuid
from unittest.mock import MagicMock

import psycopg2
import pytest

from chivoice import db
from chivoice.errors import NotConfigured, PersistenceError
from chivoice.repository import PostgresRepository
from chivoice.schemas import Task

from conftest import OTHER_USER_ID, USER_ID

LANG_ID = "55555555-5555-4555-8555-555555555555"
TASK_ID = "66666666-6666-4666-8666-666666666666"
REC_ID = uuid.UUID("77777777-7777-4777-8777-777777777777")


@pytest.fixture
def conn(monkeypatch):
    conn = MagicMock()
    monkeypatch.setattr(db, "_connect", lambda: conn)
    return conn


def cursor(conn):
    return conn.cursor.return_value.__enter__.return_value


def advanced_task():
    return Task(
        id=TASK_ID, language_id=LANG_ID, english_text="I live in the city",
        category="sentence", difficulty="advanced", estimated_time=3,
        sequence_order=17, is_starter_task=True,
    )


def test_record_recording_is_one_transaction(conn):
    cur = cursor(conn)
    cur.fetchone.side_effect = [
        {"id": REC_ID, "user_id": USER_ID, "task_id": TASK_ID, "audio_url": "https://x/a.webm",
         "notes": None, "duration": 3, "archive_cid": None, "archived_at": None, "created_at": None},
        {"user_id": USER_ID, "language_id": LANG_ID, "recordings_count": 2,
         "last_recording_at": None, "can_generate_next": True, "updated_at": None},
        {"id": USER_ID, "display_name": None, "avatar_url": None, "points": 60, "total_recordings": 2},
    ]

    outcome = PostgresRepository().record_recording(
        user_id=USER_ID, task=advanced_task(), audio_url="https://x/a.webm",
        notes=None, duration=3, points=30, threshold=2,
    )

    assert conn.cursor.call_count == 1
    assert cur.execute.call_count == 3
    insert_sql, _ = cur.execute.call_args_list[0].args
    progress_sql, progress_params = cur.execute.call_args_list[1].args
    profile_sql, profile_params = cur.execute.call_args_list[2].args
    assert "INSERT INTO recordings" in insert_sql
    assert "ON CONFLICT (user_id, language_id)" in progress_sql
    assert progress_params == (USER_ID, LANG_ID, False, 2)
    assert "total_recordings = profiles.total_recordings + 1" in profile_sql
    assert profile_params == (USER_ID, 30)
    assert outcome.recording.id == str(REC_ID)
    assert outcome.progress.can_generate_next
    conn.close.assert_called_once()


def test_store_error_becomes_persistence_error(conn):
    cursor(conn).execute.side_effect = psycopg2.IntegrityError("duplicate key")
    with pytest.raises(PersistenceError) as exc:
        PostgresRepository().count_tasks(LANG_ID)
    assert exc.value.status_code == 500
    conn.close.assert_called_once()


def test_missing_dsn_is_not_configured(monkeypatch):
    monkeypatch.setattr(db.settings, "SUPABASE_DB_URL", None)
    monkeypatch.setattr(db.settings, "DATABASE_URL", None)
    with pytest.raises(NotConfigured) as exc:
        PostgresRepository().count_tasks(LANG_ID)
    assert exc.value.status_code == 503


def test_duplicate_referral_awards_nothing(conn):
    cur = cursor(conn)
    cur.fetchone.return_value = None

    result = PostgresRepository().create_referral(referrer_id=USER_ID, referred_user_id=OTHER_USER_ID, bonus=50)

    assert result is None
    assert cur.execute.call_count == 1
    sql, _ = cur.execute.call_args.args
    assert "ON CONFLICT (referred_user_id) DO NOTHING" in sql


def test_new_referral_credits_referrer_in_same_transaction(conn):
    cur = cursor(conn)
    cur.fetchone.return_value = {
        "id": "88888888-8888-4888-8888-888888888888", "referrer_id": USER_ID,
        "referred_user_id": OTHER_USER_ID, "points_awarded": True, "created_at": None,
    }

    result = PostgresRepository().create_referral(referrer_id=USER_ID, referred_user_id=OTHER_USER_ID, bonus=50)

    assert result.points_awarded
    assert cur.execute.call_count == 2
    assert cur.execute.call_args.args[1] == (USER_ID, 50)


def test_save_generated_task_resets_progress(conn):
    cur = cursor(conn)
    cur.fetchone.return_value = {
        "id": TASK_ID, "language_id": LANG_ID, "english_text": "Where is the market?",
        "description": "d", "category": "phrase", "difficulty": "beginner", "estimated_time": 2,
        "sequence_order": None, "is_starter_task": False, "created_by_ai": True, "created_at": None,
    }

    task = PostgresRepository().save_generated_task(
        user_id=USER_ID, language_id=LANG_ID, english_text="Where is the market?",
        description="d", category="phrase", difficulty="beginner", estimated_time=2, created_by_ai=True,
    )

    assert task.created_by_ai
    reset_sql, params = cur.execute.call_args_list[1].args
    assert "recordings_count = 0" in reset_sql
    assert params == (USER_ID, LANG_ID)


def test_get_task_skips_invalid_ids(conn):
    assert PostgresRepository().get_task("not-a-uuid") is None
    conn.cursor.assert_not_called()


def test_get_language_falls_back_to_code(conn):
    cur = cursor(conn)
    cur.fetchone.side_effect = [
        {"id": LANG_ID, "code": "qu", "name": "Quechua", "is_popular": True, "created_at": None},
    ]
    lang = PostgresRepository().get_language("qu")
    assert lang.name == "Quechua"
    sql, params = cur.execute.call_args.args
    assert "WHERE code = %s" in sql
    assert params == ("qu",)
