"""
Application Configuration

Runtime settings loaded from environment variables (prefix ``LEVELSCOPE_``)
or a ``.env`` file. Algorithm tuning lives in ``AnalysisConfig``; this module
only points at an optional JSON file of overrides for it.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEVELSCOPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "levelscope"
    app_version: str = "0.1.0"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    # Result cache (pure performance optimization, never changes output)
    enable_result_cache: bool = False
    result_cache_size: int = 128

    # Optional JSON file with AnalysisConfig overrides
    analysis_config_file: Optional[str] = None


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
