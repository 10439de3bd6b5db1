"""Configuration management for Mindvault."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    ENV: str = "local"
    SERVICE_NAME: str = "mindvault"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # HTTP Configuration
    PORT: int = 8000
    API_PREFIX: str = "/api"
    STATIC_DIR: str = ""  # Directory served at "/", empty = disabled

    # Database Configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./mindvault.db"
    DATABASE_ECHO: bool = False

    # Upload Constraints
    MAX_UPLOAD_MB: int = 50
    UPLOAD_SESSION_TTL_SECONDS: int = 3600  # Abandoned sessions are reaped after 1 hour
    UPLOAD_SWEEP_INTERVAL_SECONDS: int = 60
    UPLOAD_ENFORCE_TOTAL_SIZE: bool = False  # Reject merges whose length differs from totalSize
    MAX_UPLOAD_CHUNKS: int = 10_000

    # Read Configuration
    DEFAULT_READ_CHUNK_SIZE: int = 1_048_576  # 1 MiB range reads

    # Credentials
    BCRYPT_ROUNDS: int = 10

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def is_sqlite(self) -> bool:
        """Whether DATABASE_URL points at SQLite."""
        return self.DATABASE_URL.startswith("sqlite")


# Singleton settings instance
settings = Settings()
