# panelfs/config.py
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # File manager root; every file and snapshot path resolves beneath it
    FILE_MANAGER_BASE_DIR: Path = Path("/")

    # Encrypted snapshot storage
    DATA_PATH: Path = Path("./.data")
    INSTALLATION_CODE: str = "change-me"             # set in .env for prod
    STORAGE_BACKEND: Literal["file", "redis"] = "file"

    # Redis (only when STORAGE_BACKEND=redis)
    REDIS_URL: str | None = None
    REDIS_KEY_PREFIX: str = "panelfs:"

    # HTTP transport
    HTTP_HOST: str = "127.0.0.1"
    HTTP_PORT: int = 8080

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
