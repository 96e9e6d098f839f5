"""
Backend settings, read from environment variables.

ERD_API_HOST / ERD_API_PORT      where uvicorn listens
ERD_DATA_SOURCE_URL              metadata service for HttpDataSource
ERD_SCHEMA_FILE                  JSON schema file for InMemoryDataSource
ERD_HTTP_TIMEOUT                 request timeout for the metadata service
ERD_LOG_LEVEL                    logging level name
ERD_CORS_ORIGINS                 comma-separated list of allowed origins
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from erd_core.datasource import DataSource, HttpDataSource, InMemoryDataSource


DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"]


@dataclass
class Settings:
    host: str = "127.0.0.1"
    port: int = 8765
    data_source_url: Optional[str] = None
    schema_file: Optional[str] = None
    http_timeout: float = 30.0
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def load_settings(environ: Optional[dict] = None) -> Settings:
    """Build Settings from `environ` (defaults to os.environ)."""
    env = os.environ if environ is None else environ
    origins = env.get("ERD_CORS_ORIGINS")
    return Settings(
        host=env.get("ERD_API_HOST", "127.0.0.1"),
        port=int(env.get("ERD_API_PORT", "8765")),
        data_source_url=env.get("ERD_DATA_SOURCE_URL") or None,
        schema_file=env.get("ERD_SCHEMA_FILE") or None,
        http_timeout=float(env.get("ERD_HTTP_TIMEOUT", "30")),
        log_level=env.get("ERD_LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else list(DEFAULT_CORS_ORIGINS),
    )


def create_data_source(settings: Settings) -> Optional[DataSource]:
    """
    Data source selected by settings.

    The metadata service wins over a schema file; None if neither is set.
    """
    if settings.data_source_url:
        return HttpDataSource(settings.data_source_url, timeout=settings.http_timeout)
    if settings.schema_file:
        return InMemoryDataSource.from_file(settings.schema_file)
    return None
