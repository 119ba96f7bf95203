# storefront_search/config.py

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List
from urllib.parse import urlsplit

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent
load_dotenv(ROOT_DIR / ".env")


def _as_bool(value: str, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_list(value: str) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def derive_wp_api_url(wc_api_url: str) -> str:
    """`https://shop.example/wp-json/wc/v3` -> `https://shop.example/wp-json/wp/v2`."""
    if not wc_api_url:
        return ""
    parts = urlsplit(wc_api_url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}/wp-json/wp/v2"


@dataclass(frozen=True)
class Settings:
    wc_api_url: str = os.getenv("WC_API_URL", "")
    wc_consumer_key: str = os.getenv("WC_CONSUMER_KEY", "")
    wc_consumer_secret: str = os.getenv("WC_CONSUMER_SECRET", "")
    wp_api_url: str = os.getenv("WP_API_URL", "") or derive_wp_api_url(os.getenv("WC_API_URL", ""))
    catalogue_snapshot_path: str = os.getenv("CATALOGUE_SNAPSHOT_PATH", "")
    request_timeout_seconds: int = int(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))
    index_persist_directory: str = os.getenv("INDEX_PERSIST_DIRECTORY", "./data/search_index")
    index_sync_interval_hours: int = int(os.getenv("INDEX_SYNC_INTERVAL_HOURS", "24"))
    index_fallback_max_items: int = int(os.getenv("INDEX_FALLBACK_MAX_ITEMS", "1000"))
    search_result_limit: int = int(os.getenv("SEARCH_RESULT_LIMIT", "30"))
    fallback_cache_ttl_seconds: int = int(os.getenv("FALLBACK_CACHE_TTL_SECONDS", "60"))
    index_bundle_cache_ttl_seconds: int = int(os.getenv("INDEX_BUNDLE_CACHE_TTL_SECONDS", "86400"))
    debug_log: bool = _as_bool(os.getenv("DEBUG_LOG", "0"))
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: List[str] = field(
        default_factory=lambda: _as_list(os.getenv("CORS_ORIGINS", "http://localhost:3000"))
    )

    @property
    def index_sync_interval_ms(self) -> int:
        return self.index_sync_interval_hours * 60 * 60 * 1000


settings = Settings()
