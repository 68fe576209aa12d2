from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    server_host: str = "0.0.0.0"
    server_port: int = 8000

    inference_provider: str = "gemini"
    google_api_key: str = ""
    gemini_model_name: str = "gemini-2.5-pro"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_timeout_seconds: int = 300
    analysis_temperature: float = 0.2

    gcs_service_account: str = ""
    gcs_bucket_name: str = ""
    signed_url_expiry_minutes: int = 15
    storage_uri_passthrough: bool = False

    max_inline_upload_bytes: int = 100 * 1024 * 1024
    inline_upload_threshold_bytes: int = 4 * 1024 * 1024
    upload_chunk_bytes: int = 8 * 1024 * 1024
    temp_dir: str = ""

    poll_max_attempts: int = 120
    poll_interval_seconds: float = 2.0
    poll_total_timeout_seconds: float = 240.0

    progress_tick_seconds: float = 0.2
