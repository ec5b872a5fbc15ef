"""
Shared configuration management for the pricing access core.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PRICING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Expression evaluator guards
    expression_max_depth: int = Field(default=64, ge=1, description="Maximum formula nesting depth")
    expression_max_length: int = Field(default=1024, ge=1, description="Maximum formula length in characters")


@lru_cache
def get_config() -> BaseConfig:
    """Return the process-wide configuration."""
    return BaseConfig()
