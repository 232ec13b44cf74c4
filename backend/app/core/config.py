"""
Application configuration via environment variables.
"""

import json
import os
from functools import lru_cache
from typing import Any, List

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings

from jobharvest.models import CrawlConfig

_CORS_ENV = "JOBHARVEST_CORS_ORIGINS"
_DEFAULT_CORS = ["http://localhost:3000"]


def _parse_cors_origins(v: str) -> List[str]:
    """Parse CORS origins from env string (JSON or comma-separated). Never raises."""
    if not v or not isinstance(v, str) or not v.strip():
        return list(_DEFAULT_CORS)
    v = v.strip()
    # JSON list, double- or single-quoted
    for candidate in (v, v.replace("'", '"')):
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(parsed, list):
            return [x.strip() for x in parsed if isinstance(x, str) and x.strip()]
    # Comma-separated
    return [origin.strip() for origin in v.split(",") if origin.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "JobHarvest API"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # CORS: read from os.environ in the validator so pydantic-settings never
    # tries to JSON-decode a comma-separated value.
    cors_origins_raw: str = Field(
        default=json.dumps(_DEFAULT_CORS),
        description="JSON array or comma-separated origins",
    )

    @model_validator(mode="before")
    @classmethod
    def inject_cors_from_env(cls, data: Any) -> Any:
        env_val = os.environ.get(_CORS_ENV)
        if env_val is not None and isinstance(data, dict):
            data["cors_origins_raw"] = env_val
        return data

    @computed_field
    @property
    def cors_origins_list(self) -> List[str]:
        """Parsed CORS origins."""
        return _parse_cors_origins(self.cors_origins_raw)

    # Fetch queue
    max_concurrent_requests: int = 10
    domain_interval_s: float = 0.5
    request_timeout_s: float = 20.0

    # Scraping
    scrape_timeout_s: float = 120.0
    default_limit: int = 1000

    # Parser pool: "process" or "thread"
    parser_pool: str = "process"
    parser_workers: int = 4

    # Background refresh of the global cache (skipped in debug)
    refresh_interval_minutes: int = 30

    def to_crawl_config(self) -> CrawlConfig:
        return CrawlConfig(
            max_concurrent_requests=self.max_concurrent_requests,
            domain_interval_s=self.domain_interval_s,
            request_timeout_s=self.request_timeout_s,
            scrape_timeout_s=self.scrape_timeout_s,
            parser_pool=self.parser_pool,
            parser_workers=self.parser_workers,
        )

    class Config:
        env_prefix = "JOBHARVEST_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
