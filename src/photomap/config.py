"""Settings loaded from ``PHOTOMAP_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration for the ingestor and the HTTP server."""

    model_config = {"env_prefix": "PHOTOMAP_"}

    dest_crs: str = "EPSG:3857"
    default_source_crs: str = "EPSG:3857"
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
