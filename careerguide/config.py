"""
Settings, read from CAREERGUIDE_* environment variables or a .env file.
"""
import os
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings(BaseSettings):
    # JSON catalog, student records and policy.json
    data_dir: str = os.path.join(PROJECT_ROOT, "data")

    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_prefix="CAREERGUIDE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
