"""Application configuration using Pydantic BaseSettings."""

from pathlib import Path
from typing import Literal
from urllib.parse import quote_plus

from pydantic import ValidationInfo, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _sanitize_env_string(value: str) -> str:
    """Sanitize an environment variable string value.

    Removes whitespace, quotes, and control characters to prevent issues with:
    - Trailing carriage returns (\\r) or newlines (\\n) from Windows line endings
    - Accidental quotes around values in env files
    - Leading/trailing whitespace from copy-paste errors

    Args:
        value: The raw string value from environment variable.

    Returns:
        Cleaned string with quotes, whitespace, and control characters removed.
    """
    value = value.strip()
    if (value.startswith('"') and value.endswith('"')) or (
        value.startswith("'") and value.endswith("'")
    ):
        value = value[1:-1].strip()
    value = value.replace("\r", "").replace("\n", "").replace("\t", "")
    return value


def find_env_file() -> Path | None:
    """Find .env file in current or parent directories."""
    current = Path.cwd()
    for path in [current, current.parent]:
        env_file = path / ".env"
        if env_file.exists():
            return env_file
    return None


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    # === Project ===
    PROJECT_NAME: str = "deal_attachments"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "local", "staging", "production"] = "local"

    # === Logfire ===
    LOGFIRE_TOKEN: str | None = None
    LOGFIRE_SERVICE_NAME: str = "deal_attachments"
    LOGFIRE_ENVIRONMENT: str = "development"

    # === Database (PostgreSQL async) ===
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "deal_attachments"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def DATABASE_URL(self) -> str:
        """Build async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{quote_plus(self.POSTGRES_USER)}:{quote_plus(self.POSTGRES_PASSWORD)}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Build sync PostgreSQL connection URL (for Alembic)."""
        return (
            f"postgresql://{quote_plus(self.POSTGRES_USER)}:{quote_plus(self.POSTGRES_PASSWORD)}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Pool configuration
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    # === Attachment Storage ===
    # "local" keeps blobs on a persistent volume, "s3" uses S3/MinIO
    STORAGE_BACKEND: Literal["local", "s3"] = "local"
    # Must point at durable storage (a mounted volume), never a temp dir
    ATTACHMENTS_DIR: Path = Path("data/attachments")
    MAX_ATTACHMENT_SIZE_MB: int = 100

    # === File Storage (S3/MinIO) ===
    S3_ENDPOINT: str | None = None
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_BUCKET: str = "deal-attachments"
    S3_REGION: str = "us-east-1"

    # === Deal API ===
    # Passed to DealApiClient at construction time
    DEAL_API_BASE_URL: str = "https://stoagroupdb-ddre.onrender.com"
    DEAL_API_LOOKUP_PATH: str = "/api/deals/{deal_id}"
    DEAL_API_TOKEN: str | None = None
    DEAL_API_TIMEOUT_SECONDS: float = 10.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def MAX_ATTACHMENT_SIZE_BYTES(self) -> int:
        return self.MAX_ATTACHMENT_SIZE_MB * 1024 * 1024

    @field_validator("MAX_ATTACHMENT_SIZE_MB")
    @classmethod
    def validate_max_attachment_size(cls, v: int) -> int:
        """Validate the upload size limit is at least 1 MB."""
        if v < 1:
            msg = "MAX_ATTACHMENT_SIZE_MB must be at least 1"
            raise ValueError(msg)
        return v

    @field_validator("DEAL_API_LOOKUP_PATH")
    @classmethod
    def validate_deal_lookup_path(cls, v: str) -> str:
        """Validate the lookup path template has a deal_id placeholder."""
        if "{deal_id}" not in v:
            raise ValueError("DEAL_API_LOOKUP_PATH must contain a '{deal_id}' placeholder")
        if not v.startswith("/"):
            v = f"/{v}"
        return v

    @field_validator("DEAL_API_BASE_URL")
    @classmethod
    def validate_deal_api_base_url(cls, v: str) -> str:
        """Sanitize the deal API base URL and drop any trailing slash."""
        return _sanitize_env_string(v).rstrip("/")

    @field_validator(
        "S3_ACCESS_KEY",
        "S3_SECRET_KEY",
        "DEAL_API_TOKEN",
        "LOGFIRE_TOKEN",
        mode="before",
    )
    @classmethod
    def sanitize_sensitive_strings(cls, v: str | None) -> str | None:
        """Sanitize sensitive string fields to handle copy-paste issues."""
        if v is None or v == "":
            return v
        return _sanitize_env_string(v)

    # === CORS ===
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8080"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    @field_validator("CORS_ORIGINS")
    @classmethod
    def validate_cors_origins(cls, v: list[str], info: ValidationInfo) -> list[str]:
        """Reject a wildcard CORS origin in production."""
        env = info.data.get("ENVIRONMENT", "local") if info.data else "local"
        if "*" in v and env == "production":
            raise ValueError(
                "CORS_ORIGINS cannot contain '*' in production! Specify explicit allowed origins."
            )
        return v


settings = Settings()
