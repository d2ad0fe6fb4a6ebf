"""Environment-variable-driven configuration for the extraction client."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return int(v)


def _get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return float(v)


DEFAULT_BASE_URL = "http://localhost:3005"
DEFAULT_API_VERSION = "v1"


@dataclass(frozen=True)
class ExtractionConfig:
    # Backend
    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    http_timeout_s: float = 30.0

    # Polling
    poll_max_attempts: int = 30
    poll_delay_ms: int = 1000

    # Cache
    cache_max_entries: int | None = None  # None = unbounded
    cache_dir: str | None = None  # None = in-memory
    clear_backend_cache: bool = True

    # Sources
    max_download_bytes: int = 50_000_000

    # Logging
    log_json: bool = False

    @classmethod
    def from_env(cls) -> ExtractionConfig:
        base_url = os.getenv("TEXT_EXTRACTION_URL", DEFAULT_BASE_URL).rstrip("/")
        api_version = os.getenv("TEXT_EXTRACTION_API_VERSION", DEFAULT_API_VERSION).strip("/")

        max_entries = _get_int("TEXT_EXTRACTION_CACHE_MAX_ENTRIES", 0)
        # 0 means unbounded; negatives are kept so validate() rejects them

        return cls(
            base_url=base_url,
            api_version=api_version,
            http_timeout_s=_get_float("TEXT_EXTRACTION_HTTP_TIMEOUT_S", 30.0),
            poll_max_attempts=_get_int("TEXT_EXTRACTION_POLL_MAX_ATTEMPTS", 30),
            poll_delay_ms=_get_int("TEXT_EXTRACTION_POLL_DELAY_MS", 1000),
            cache_max_entries=max_entries if max_entries != 0 else None,
            cache_dir=os.getenv("TEXT_EXTRACTION_CACHE_DIR") or None,
            clear_backend_cache=_get_bool("TEXT_EXTRACTION_CLEAR_BACKEND_CACHE", True),
            max_download_bytes=_get_int("TEXT_EXTRACTION_MAX_DOWNLOAD_BYTES", 50_000_000),
            log_json=_get_bool("TEXT_EXTRACTION_LOG_JSON", False),
        )

    @property
    def poll_delay_s(self) -> float:
        return self.poll_delay_ms / 1000.0

    def validate(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"TEXT_EXTRACTION_URL must be an http(s) URL, got {self.base_url!r}")
        if not self.api_version:
            raise ValueError("TEXT_EXTRACTION_API_VERSION must not be empty")
        if self.poll_max_attempts < 1:
            raise ValueError("TEXT_EXTRACTION_POLL_MAX_ATTEMPTS must be >= 1")
        if self.poll_delay_ms < 0:
            raise ValueError("TEXT_EXTRACTION_POLL_DELAY_MS must be >= 0")
        if self.http_timeout_s <= 0:
            raise ValueError("TEXT_EXTRACTION_HTTP_TIMEOUT_S must be > 0")
        if self.max_download_bytes < 1:
            raise ValueError("TEXT_EXTRACTION_MAX_DOWNLOAD_BYTES must be >= 1")
        if self.cache_max_entries is not None and self.cache_max_entries < 1:
            raise ValueError("TEXT_EXTRACTION_CACHE_MAX_ENTRIES must be >= 0 (0 = unbounded)")
