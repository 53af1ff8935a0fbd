"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class SupabaseSettings(BaseModel):
    """Remote store connection settings (secrets come from the environment)."""
    url_env: str = "SUPABASE_URL"
    key_env: str = "SUPABASE_KEY"
    fallback_key_env: str = "SUPABASE_ANON_KEY"

    @property
    def url(self) -> str:
        return os.getenv(self.url_env, "")

    @property
    def key(self) -> str:
        return os.getenv(self.key_env, "") or os.getenv(self.fallback_key_env, "")


class DatabaseSettings(BaseModel):
    """Local SQLite store settings."""
    db_path: str = Field(
        default_factory=lambda: os.getenv(
            "QUOTING_DB_PATH", str(DATA_DIR / "quoting.db")
        )
    )


class AuthSettings(BaseModel):
    """Caller role settings."""
    allowed_roles: list[str] = Field(default_factory=lambda: ["admin", "sales"])


class Settings(BaseModel):
    """Top-level application settings."""
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: Path | None = None) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults."""
        settings_path = path or CONFIG_DIR / "settings.yaml"
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()


def get_supabase_credentials() -> tuple[str, str]:
    """Get Supabase URL and key from environment."""
    url = settings.supabase.url
    key = settings.supabase.key
    if not url or not key:
        raise ValueError(
            f"{settings.supabase.url_env} / {settings.supabase.key_env} "
            "must be set in .env. See config/.env.example."
        )
    return url, key


# Singleton settings instance
settings = Settings.load()
