"""
Application settings.

Process-level settings come from the environment (prefix ``AGENTDESK_``) or
a ``.env`` file. Everything about how turns are run (model, limits, cache,
tools) lives in the YAML profile selected by ``profile``.
"""

from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Settings with environment variable support."""

    profile: str = Field(default="dev", description="Configuration profile name")
    config_dir: str = Field(default="configs", description="Directory holding <profile>.yaml files")
    log_level: str = Field(default="WARNING", description="Logging level")
    json_logs: bool = Field(default=False, description="Render logs as JSON lines")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AGENTDESK_",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppSettings":
        """Load settings from a YAML file; environment variables still apply to unset fields."""
        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


def get_settings(config_path: Path | None = None) -> AppSettings:
    if config_path is not None:
        return AppSettings.load_from_file(config_path)
    return AppSettings()
