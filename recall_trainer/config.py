from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

# Secrets stay in the environment, never in config.json
ELEVENLABS_KEY_ENV = "ELEVEN_LABS_API_KEY"
SUPABASE_KEY_ENV = "SUPABASE_KEY"

DEFAULTS = {
    "session_size": 7,
    "preview_seconds": 6.0,
    "fetch_limit": 200,
    "photo_cache_dir": "photo_cache",
    "download_timeout": 60.0,
    "supabase_url": "",
    "supabase_table": "memories_photos",
    "elevenlabs_model": "eleven_multilingual_v2",
    "default_voice_id": "",
}


@dataclass
class Settings:
    session_size: int = DEFAULTS["session_size"]
    preview_seconds: float = DEFAULTS["preview_seconds"]
    fetch_limit: int = DEFAULTS["fetch_limit"]
    photo_cache_dir: str = DEFAULTS["photo_cache_dir"]
    download_timeout: float = DEFAULTS["download_timeout"]
    supabase_url: str = DEFAULTS["supabase_url"]
    supabase_table: str = DEFAULTS["supabase_table"]
    elevenlabs_model: str = DEFAULTS["elevenlabs_model"]
    default_voice_id: str = DEFAULTS["default_voice_id"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def photo_cache_full_path(self) -> Path:
        p = Path(self.photo_cache_dir).expanduser()
        return p if p.is_absolute() else self.project_root / p

    @property
    def elevenlabs_api_key(self) -> str:
        return os.environ.get(ELEVENLABS_KEY_ENV, "")

    @property
    def supabase_key(self) -> str:
        return os.environ.get(SUPABASE_KEY_ENV, "")

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in DEFAULTS}


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
