"""
config.py — Runtime Settings

All settings come from environment variables with sensible defaults, so the
service runs unconfigured (in-memory storage on port 3000).
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel


DEFAULT_PRODUCT_NAME = "Signature Gift Set"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """
    Attributes:
        host (str): Listen address.
        port (int): Listen port.
        database_url (str, optional): SQLAlchemy database URL. Without it the
            in-memory store is used.
        storage_fallback_to_memory (bool): Use the in-memory store when the
            database cannot be initialized instead of aborting startup.
        expose_error_details (bool): Append storage error details to 500
            responses (diagnostic mode).
        product_name (str): Product name stamped on every order.
        log_level (str): Root log level.
        log_file (str, optional): Additional log file.
    """
    host: str = "0.0.0.0"
    port: int = 3000
    database_url: Optional[str] = None
    storage_fallback_to_memory: bool = False
    expose_error_details: bool = False
    product_name: str = DEFAULT_PRODUCT_NAME
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def normalize_database_url(url: str) -> str:
    # Plain Postgres URLs (including the legacy "postgres://" scheme) go through psycopg 3
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            return "postgresql+psycopg://" + url[len(scheme):]
    return url


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Builds `Settings` from the process environment (or the given mapping)."""
    env = os.environ if environ is None else environ

    database_url = env.get("DATABASE_URL") or None
    if database_url:
        database_url = normalize_database_url(database_url)

    return Settings(
        host=env.get("HOST", "0.0.0.0"),
        port=int(env.get("PORT", 3000)),
        database_url=database_url,
        storage_fallback_to_memory=_flag(env.get("STORAGE_FALLBACK_TO_MEMORY")),
        expose_error_details=_flag(env.get("EXPOSE_ERROR_DETAILS")),
        product_name=env.get("PRODUCT_NAME") or DEFAULT_PRODUCT_NAME,
        log_level=env.get("LOG_LEVEL", "INFO"),
        log_file=env.get("LOG_FILE") or None,
    )
