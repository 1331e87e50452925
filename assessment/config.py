from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    # Test timing
    total_test_seconds: int = 3000
    catalog_path: str | None = None
    session_retention_seconds: int = 24 * 60 * 60

    # Response capture
    data_dir: str = "data"
    upload_dir: str = "uploads"

    # Browser UI (served as-is when present)
    static_dir: str | None = "public"

    # Client
    service_url: str = "http://localhost:3000"
    poll_interval_seconds: float = 1.0
    request_timeout: int = 10
    max_retries: int = 3


# Global settings instance
settings = Settings()
