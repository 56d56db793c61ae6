from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""
    assemblyai_api_key: str = ""

    # Zoom server-to-server OAuth
    zoom_account_id: str = ""
    zoom_client_id: str = ""
    zoom_client_secret: str = ""

    # Supabase (document archive)
    supabase_url: str = ""
    supabase_key: str = ""
    documents_bucket: str = "meeting-documents"
    documents_folder: str = "recordings"

    # Slack incoming webhook
    slack_webhook_url: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    llm_model: str = "claude-sonnet-4-20250514"

    # Transcript path
    transcript_fallback_enabled: bool = True

    # Audio chunking: thresholds for switching to chunked processing
    chunk_duration_seconds: int = 600
    chunking_size_mb: float = 20.0
    chunking_duration_seconds: float = 1200.0
    chunking_combined_size_mb: float = 15.0
    chunking_combined_duration_seconds: float = 900.0

    # Chunk loop wall-clock budget
    chunk_time_budget_seconds: float = 250.0
    fast_mode_threshold_seconds: float = 240.0
    seconds_per_chunk_estimate: float = 45.0

    # Retries
    default_max_retries: int = 5
    fast_mode_max_retries: int = 2
    retry_base_delay_seconds: float = 2.0
    retry_max_delay_seconds: float = 10.0

    # Content checks
    min_chunk_transcription_chars: int = 10
    min_transcription_chars: int = 50

    # Batch processing
    batch_delay_seconds: float = 1.0
    max_batch_recordings: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
