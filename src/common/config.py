"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
DATA_EXPORTS_DIR = DATA_DIR / "exports"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class SiteSettings(BaseModel):
    """Public site the generated pages are served from."""
    base_url: str = "https://locraven.com"
    alias_host: str = "www.locraven.com"
    site_name: str = "LocRaven"
    language: str = "en"
    timezone: str = "America/Los_Angeles"


class LLMSettings(BaseModel):
    """LLM API settings."""
    provider: str = "openai"
    openai_model: str = "gpt-4o"
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 1024
    temperature: float = 0.4
    timeout_seconds: float = 30.0


class SupabaseSettings(BaseModel):
    """Datastore table names."""
    businesses_table: str = "businesses"
    updates_table: str = "updates"
    pages_table: str = "generated_pages"


class StorageSettings(BaseModel):
    """Object storage for rendered static pages."""
    bucket: str = "static-pages"
    key_prefix: str = ""
    html_content_type: str = "text/html; charset=utf-8"


class CDNSettings(BaseModel):
    """Cache purge API settings."""
    api_base: str = "https://api.cloudflare.com/client/v4"
    timeout_seconds: float = 10.0


class GenerationSettings(BaseModel):
    """Page generation settings."""
    max_workers: int = 6
    default_expiry_days: int = 7
    include_voice_faqs: bool = True


class PublishSettings(BaseModel):
    """Publish fan-out settings."""
    max_workers: int = 8


class Settings(BaseModel):
    """Top-level application settings."""
    site: SiteSettings = Field(default_factory=SiteSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    cdn: CDNSettings = Field(default_factory=CDNSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    publish: PublishSettings = Field(default_factory=PublishSettings)

    @classmethod
    def load(cls) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults."""
        settings_path = CONFIG_DIR / "settings.yaml"
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()


@dataclass
class Credentials:
    """API credentials handed to components at construction time.

    Empty strings mean "not configured"; components treat that as an
    ordinary failure of the call that needed the credential.
    """
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    supabase_url: str = ""
    supabase_service_key: str = ""
    cloudflare_zone_id: str = ""
    cloudflare_api_token: str = ""

    @classmethod
    def from_env(cls) -> Credentials:
        """Read credentials from the process environment (.env already loaded)."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_service_key=os.getenv("SUPABASE_SERVICE_KEY", ""),
            cloudflare_zone_id=os.getenv("CLOUDFLARE_ZONE_ID", ""),
            cloudflare_api_token=os.getenv("CLOUDFLARE_API_TOKEN", ""),
        )


# Singleton settings instance
settings = Settings.load()
