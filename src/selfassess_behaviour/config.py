from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for hosts and tools driving the behaviour, loaded from env / .env.

    The behaviour itself takes no settings; hosts pass what they need in.
    """

    model_config = SettingsConfigDict(
        env_prefix="SELFASSESS_",
        env_file=".env",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Root log level for CLI runs")
    summary_comment_length: int = Field(default=200, ge=4, description="Comment length shown in action summaries")
    scenario_dir: Path = Field(default=Path("demos/scenarios"), description="Directory of walkthrough packs")
    report_path: Optional[Path] = Field(default=None, description="Where the walkthrough CLI writes its report")


@lru_cache()
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance."""
    return Settings()
