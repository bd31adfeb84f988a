from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None)

    PORT: int = 8000
    BUILD_TAG: str = "CHIVOICE-PROGRESSION-V1"

    # Postgres DSN (SUPABASE_DB_URL wins over DATABASE_URL)
    SUPABASE_DB_URL: str | None = None
    DATABASE_URL: str | None = None

    # Supabase REST / storage
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    RECORDINGS_BUCKET: str = "recordings"

    # Claude
    ANTHROPIC_API_KEY: str | None = None
    CLAUDE_MODEL: str = "claude-3-haiku-20240307"
    LLM_TIMEOUT_SECONDS: float = 20.0

    # Archival portal (S5 / Sia)
    S5_PORTAL_URL: str | None = None
    ARCHIVE_TIMEOUT_SECONDS: float = 60.0

    # On-demand language resolution
    GLOTTOLOG_CSV_URL: str | None = None

    # Comma separated
    ALLOWED_ORIGINS: str = ""

    # Progression tuning
    RECENT_TASK_LIMIT: int = 200
    FALLBACK_MAX_TRIES: int = 12
    MAX_AUDIO_BYTES: int = 10 * 1024 * 1024  # 10MB

settings = Settings()
