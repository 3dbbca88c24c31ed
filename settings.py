"""
Emission Lens settings, read once from the environment (and .env).
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = "https://api.climatetrace.org/v6"
CACHE_WINDOW_SEC = 30 * 60


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _origins_env() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class Settings:
    base_url: str = field(default_factory=lambda: os.getenv("CLIMATE_TRACE_BASE", DEFAULT_BASE_URL))
    cache_ttl_sec: int = field(default_factory=lambda: _int_env("CACHE_TTL_SEC", CACHE_WINDOW_SEC))
    timeout: int = field(default_factory=lambda: _int_env("HTTP_TIMEOUT", 30))
    batch_size: int = field(default_factory=lambda: _int_env("CT_BATCH_SIZE", 50))
    max_workers: int = field(default_factory=lambda: _int_env("CT_MAX_WORKERS", 8))
    max_retries: int = field(default_factory=lambda: _int_env("CT_MAX_RETRIES", 2))
    ollama_host: str = field(default_factory=lambda: os.getenv("OLLAMA_HOST", "http://localhost:11434"))
    ollama_model: str = field(default_factory=lambda: os.getenv("OLLAMA_MODEL", "llama3.2:3b"))
    serper_api_key: str = field(default_factory=lambda: os.getenv("SERPER_API_KEY", ""))
    port: int = field(default_factory=lambda: _int_env("PORT", 3001))
    cors_origins: List[str] = field(default_factory=_origins_env)
