from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class FileStatusPolicy(StrEnum):
    """How a file touched by several outgoing commits is reported."""

    FIRST_SEEN = "first_seen"
    ALWAYS_MODIFIED = "always_modified"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Git Outgoing View"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"

    BACKEND_CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    REPO_PATH: str = ""
    GIT_EXECUTABLE: str = "git"
    GIT_TIMEOUT: float = 10.0
    REMOTE_NAME: str = "origin"

    SYNCED_LOG_LIMIT: int = 200
    FILE_STATUS_POLICY: FileStatusPolicy = FileStatusPolicy.FIRST_SEEN

    WATCH_ENABLED: bool = True
    WATCH_DEBOUNCE_SECONDS: float = 0.3

    model_config = SettingsConfigDict(env_file=".env")

    def repo_root(self) -> Path:
        """Resolve the working copy root.

        Falls back to the current working directory when REPO_PATH is unset.

        Returns:
            Absolute path of the repository to track
        """
        if self.REPO_PATH:
            return Path(self.REPO_PATH).expanduser().resolve()
        return Path.cwd().resolve()


@lru_cache
def get_settings() -> Settings:
    return Settings()
