"""
Application settings and configuration management.

This module handles environment variables, the optional model API key, and
the heuristic constants of the analytics core (own brands, competitor price
window, price buckets, cache TTLs) using Pydantic settings management for
type safety and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The model API key is optional: without it the chat core answers purely
    from the deterministic analyzers. Settings are validated on load and
    cached for performance.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Keys
    anthropic_api_key: Optional[SecretStr] = Field(default=None, alias="ANTHROPIC_API_KEY")

    # Application Configuration
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        alias="APP_ENV"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL"
    )
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Model Configuration
    claude_model: str = Field(
        default="claude-sonnet-4-20250514",
        alias="CLAUDE_MODEL"
    )
    claude_max_tokens: int = Field(default=2000, alias="CLAUDE_MAX_TOKENS")
    llm_temperature: float = Field(default=0.2, alias="LLM_TEMPERATURE")
    llm_only_mode: bool = Field(default=False, alias="LLM_ONLY_MODE")
    llm_rephrase_enabled: bool = Field(default=True, alias="LLM_REPHRASE_ENABLED")
    llm_confidence_threshold: float = Field(default=0.55, alias="LLM_CONFIDENCE_THRESHOLD")
    max_tool_rounds: int = Field(default=8, alias="MAX_TOOL_ROUNDS")

    # Request Limits
    request_timeout_seconds: int = Field(default=30, alias="REQUEST_TIMEOUT_SECONDS")
    max_retries: int = Field(default=3, alias="MAX_RETRIES")
    message_max_length: int = Field(default=1200, alias="MESSAGE_MAX_LENGTH")

    # Cache Settings
    table_cache_ttl_seconds: int = Field(default=60, alias="TABLE_CACHE_TTL_SECONDS")
    index_cache_ttl_seconds: int = Field(default=180, alias="INDEX_CACHE_TTL_SECONDS")

    # Analytics Heuristics
    own_brands: str = Field(default="innova,blcktec", alias="OWN_BRANDS")
    competitor_price_window_pct: float = Field(default=0.20, alias="COMPETITOR_PRICE_WINDOW_PCT")
    competitor_price_window_abs: float = Field(default=120.0, alias="COMPETITOR_PRICE_WINDOW_ABS")
    competitor_min_revenue: float = Field(default=10000.0, alias="COMPETITOR_MIN_REVENUE")
    price_bucket_bounds: str = Field(default="75,200,400", alias="PRICE_BUCKET_BOUNDS")

    # Data Sources
    data_file: Optional[Path] = Field(default=None, alias="DATA_FILE")
    source_root: Path = Field(default=Path("data"), alias="SOURCE_ROOT")

    @field_validator("anthropic_api_key", mode="before")
    @classmethod
    def validate_anthropic_key(cls, v: Optional[str]) -> Optional[str]:
        """Validate Anthropic API key format when one is configured."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if isinstance(v, str) and not v.startswith("sk-"):
            raise ValueError("Invalid Anthropic API key format")
        return v

    @field_validator("price_bucket_bounds")
    @classmethod
    def validate_bucket_bounds(cls, v: str) -> str:
        """Bucket bounds must be three ascending numbers."""
        try:
            bounds = [float(part) for part in v.split(",")]
        except ValueError as e:
            raise ValueError(f"Invalid price bucket bounds: {v}") from e
        if len(bounds) != 3 or sorted(bounds) != bounds:
            raise ValueError(f"Price bucket bounds must be three ascending numbers: {v}")
        return v

    def own_brand_keys(self) -> list[str]:
        """Normalized own-brand keys in configured order."""
        return [part.strip().lower() for part in self.own_brands.split(",") if part.strip()]

    def bucket_bounds(self) -> tuple[float, float, float]:
        low, mid, high = (float(part) for part in self.price_bucket_bounds.split(","))
        return low, mid, high

    def has_llm(self) -> bool:
        """Whether a model API key is configured."""
        return self.anthropic_api_key is not None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
