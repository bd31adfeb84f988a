# chivoice/db.py
from __future__ import annotations

import psycopg2

from .settings import settings


def get_db_dsn() -> str:
    """
    Get database DSN from settings.
    Priority: SUPABASE_DB_URL > DATABASE_URL

    IMPORTANT: Never use SUPABASE_URL for direct DB connections!
    SUPABASE_URL is the REST API endpoint (https://*.supabase.co)
    SUPABASE_DB_URL/DATABASE_URL is the Postgres connection string.
    """
    dsn = (settings.SUPABASE_DB_URL or "").strip()
    if dsn:
        return dsn
    return (settings.DATABASE_URL or "").strip()


def _connect():
    dsn = get_db_dsn()
    if not dsn:
        raise RuntimeError("DATABASE_URL or SUPABASE_DB_URL not set")
    # Safety check: never connect to SUPABASE_URL (REST endpoint)
    if ".supabase.co" in dsn and not dsn.startswith("postgres"):
        raise RuntimeError("Invalid DB DSN: looks like SUPABASE_URL (REST), not a Postgres DSN")
    return psycopg2.connect(dsn)


def db_ok() -> bool:
    try:
        if not get_db_dsn():
            return False
        conn = _connect()
        conn.close()
        return True
    except Exception:
        return False


# =========================
# Schema init
# =========================
def ensure_schema() -> None:
    """
    Idempotent schema init.

    - languages: lazily created, never deleted
    - tasks: starter sequence + generated tasks
    - recordings: many per (user, task)
    - user_task_progress: one row per (user, language)
    - profiles: points + total recordings
    - referrals: one row per referred user
    """
    if not get_db_dsn():
        return

    conn = _connect()
    try:
        with conn:
            with conn.cursor() as cur:
                cur.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")

                # ---- languages ----
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS languages (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        name TEXT NOT NULL UNIQUE,
                        code TEXT NOT NULL UNIQUE,
                        is_popular BOOLEAN NOT NULL DEFAULT FALSE,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    );
                    """
                )

                # ---- tasks ----
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS tasks (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        language_id UUID NOT NULL REFERENCES languages(id) ON DELETE CASCADE,
                        english_text TEXT NOT NULL,
                        description TEXT,
                        category TEXT NOT NULL CHECK (category IN ('word', 'phrase', 'sentence')),
                        difficulty TEXT NOT NULL CHECK (difficulty IN ('beginner', 'intermediate', 'advanced')),
                        estimated_time INTEGER NOT NULL DEFAULT 2 CHECK (estimated_time BETWEEN 1 AND 5),
                        sequence_order INTEGER,
                        is_starter_task BOOLEAN NOT NULL DEFAULT FALSE,
                        created_by_ai BOOLEAN NOT NULL DEFAULT FALSE,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    );
                    """
                )
                cur.execute(
                    """
                    CREATE UNIQUE INDEX IF NOT EXISTS ux_tasks_starter_sequence
                    ON tasks (language_id, sequence_order) WHERE is_starter_task;
                    """
                )
                cur.execute("CREATE INDEX IF NOT EXISTS ix_tasks_language_created ON tasks(language_id, created_at DESC);")

                # ---- recordings ----
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS recordings (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        user_id UUID NOT NULL,
                        task_id UUID NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                        audio_url TEXT NOT NULL,
                        notes TEXT,
                        duration INTEGER NOT NULL DEFAULT 0,
                        archive_cid TEXT,
                        archived_at TIMESTAMPTZ,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    );
                    """
                )
                cur.execute("CREATE INDEX IF NOT EXISTS ix_recordings_user_task ON recordings(user_id, task_id);")

                # ---- progress ----
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS user_task_progress (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        user_id UUID NOT NULL,
                        language_id UUID NOT NULL REFERENCES languages(id) ON DELETE CASCADE,
                        recordings_count INTEGER NOT NULL DEFAULT 0,
                        last_recording_at TIMESTAMPTZ,
                        can_generate_next BOOLEAN NOT NULL DEFAULT FALSE,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        CONSTRAINT user_task_progress_user_language_key UNIQUE (user_id, language_id)
                    );
                    """
                )

                # ---- profiles ----
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS profiles (
                        id UUID PRIMARY KEY,
                        display_name TEXT,
                        avatar_url TEXT,
                        points INTEGER NOT NULL DEFAULT 0,
                        total_recordings INTEGER NOT NULL DEFAULT 0,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    );
                    """
                )

                # ---- referrals ----
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS referrals (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        referrer_id UUID NOT NULL,
                        referred_user_id UUID NOT NULL UNIQUE,
                        points_awarded BOOLEAN NOT NULL DEFAULT FALSE,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        CONSTRAINT referrals_no_self_referral CHECK (referrer_id <> referred_user_id)
                    );
                    """
                )
    finally:
        conn.close()
