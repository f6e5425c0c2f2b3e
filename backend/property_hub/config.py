"""Centralized configuration: all env vars in one place."""

import os

from dotenv import load_dotenv

load_dotenv()


def _float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.environment: str = os.getenv("ENVIRONMENT", "local")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.cors_origins: list[str] = os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
        ).split(",")

        # Property source
        self.listings_source: str = os.getenv("LISTINGS_SOURCE", "demo").lower()
        self.listings_api_url: str = os.getenv("LISTINGS_API_URL", "https://api.casafari.com/v1")
        self.listings_api_key: str | None = os.getenv("LISTINGS_API_KEY")
        self.http_timeout: float = _float("HTTP_TIMEOUT_SECONDS", 10.0)

        # Cache and throttling
        self.cache_ttl: float = _float("CACHE_TTL_SECONDS", 300.0)
        self.cache_sweep_interval: float = _float("CACHE_SWEEP_INTERVAL_SECONDS", 600.0)
        self.max_concurrent_requests: int = _int("MAX_CONCURRENT_REQUESTS", 3)
        self.redis_url: str | None = os.getenv("REDIS_URL")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return list of problems with the current settings."""
        problems = []
        if self.listings_source not in ("demo", "http"):
            problems.append(f"LISTINGS_SOURCE must be 'demo' or 'http', got {self.listings_source!r}")
        if self.listings_source == "http" and not self.listings_api_key:
            problems.append("LISTINGS_API_KEY is required when LISTINGS_SOURCE=http")
        if self.max_concurrent_requests < 1:
            problems.append("MAX_CONCURRENT_REQUESTS must be at least 1")
        if self.cache_sweep_interval <= 0:
            problems.append("CACHE_SWEEP_INTERVAL_SECONDS must be positive")
        return problems
