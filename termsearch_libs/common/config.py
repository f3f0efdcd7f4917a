"""Configuration management for the term search service.

This module centralizes environment-driven configuration. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover commonly used environment variables
- A small service-specific subclass to keep concerns clear

Usage
- Build ``SearchConfig()`` once and pass it to ``SearchManager``
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class.

    Field names double as environment variable names (case-insensitive), so
    ``search_log_level`` is read from ``SEARCH_LOG_LEVEL``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    search_env: str = Field(default="local")

    # Logging
    search_log_level: str = Field(default="INFO")
    search_log_format: str = Field(default="json")


class SearchConfig(BaseConfig):
    """Configuration for the search engine.

    Cache timings are in seconds. The horizon and sweep interval both default
    to one day; the high-water mark triggers an early, deferred sweep.
    """

    # Result cache
    search_cache_horizon_seconds: float = Field(default=86400.0, gt=0)
    search_cache_sweep_interval_seconds: float = Field(default=86400.0, gt=0)
    search_cache_high_water_mark: int = Field(default=10000, gt=0)

    # External call budgets
    search_index_timeout_seconds: float = Field(default=5.0, gt=0)
    search_hydration_timeout_seconds: float = Field(default=5.0, gt=0)

    # Pagination
    search_default_max_index: int = Field(default=1000, gt=0)

    # Query normalization
    search_email_domains: List[str] = Field(
        default_factory=lambda: ["northeastern.edu", "neu.edu"]
    )
