"""Application configuration."""

import os
import re

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Environment variables will be loaded and validated using Pydantic.
    """

    app_name: str = "LexSync"
    version: str = "0.1.0"
    api_prefix: str = "/api/v1"

    # CORS Settings
    cors_origins: list[str] = ["*"]  # Default to allow all in development
    cors_allow_credentials: bool = False

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    # Content backend selection: auto, file, redis or github
    CONTENT_BACKEND: str = "auto"
    CONTENT_FILE_PATH: str = ".data/content.json"

    # Redis object store backend
    CONTENT_REDIS_URL: str | None = None
    CONTENT_REDIS_KEY: str = "lexsync:content"

    # GitHub repository backend
    GITHUB_TOKEN: str | None = None
    GITHUB_REPO_OWNER: str | None = None
    GITHUB_REPO_NAME: str | None = None
    GITHUB_BRANCH: str = "main"
    GITHUB_CONTENT_PATH: str = "data/content.json"
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT: float = 10.0

    # Optimistic concurrency against shared backends
    STORE_CONFLICT_RETRIES: int = Field(default=5, ge=1)
    STORE_CONFLICT_BASE_DELAY: float = Field(default=0.05, ge=0)

    # Update broadcaster
    BROADCAST_QUEUE_SIZE: int = Field(default=100, ge=1)
    SSE_HEARTBEAT_SECONDS: float = Field(default=15.0, gt=0)
    SSE_RETRY_MS: int = Field(default=3000, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",  # Allow extra fields in environment
    )

    @model_validator(mode="after")
    def validate_origins(self) -> "Settings":
        """Validate CORS origins."""
        if self.cors_origins == ["*"]:
            self.cors_origins = [
                "http://localhost",
                "http://localhost:8000",
                "http://localhost:8080",
            ]
        return self

    @model_validator(mode="after")
    def normalize_backend(self) -> "Settings":
        """Reject unknown backend names early."""
        backend = self.CONTENT_BACKEND.strip().lower()
        if backend not in {"auto", "file", "redis", "github"}:
            raise ValueError(f"Unsupported CONTENT_BACKEND: {self.CONTENT_BACKEND}")
        self.CONTENT_BACKEND = backend
        return self

    @model_validator(mode="after")
    def use_test_configs_for_testing(self) -> "Settings":
        """Use a separate content file for tests to avoid clobbering dev data."""
        if os.getenv("TESTING") == "true":
            test_file_path = os.getenv("TEST_CONTENT_FILE_PATH")
            if test_file_path:
                self.CONTENT_FILE_PATH = test_file_path
            else:
                match = re.match(r"(.*/)?([^/]+)$", self.CONTENT_FILE_PATH)
                if match and not match.group(2).startswith("test_"):
                    self.CONTENT_FILE_PATH = (
                        f"{match.group(1) or ''}test_{match.group(2)}"
                    )
        return self

    @property
    def github_configured(self) -> bool:
        """Whether enough GitHub settings exist to use the repository backend."""
        return bool(self.GITHUB_TOKEN and self.GITHUB_REPO_OWNER and self.GITHUB_REPO_NAME)


# Create settings instance
settings = Settings()
