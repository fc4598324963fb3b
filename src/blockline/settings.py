"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

Mode = Literal["loaded", "streaming"]


class Settings(BaseSettings):
    """Configuration for blockline documents.

    Values are read from ``BLOCKLINE_*`` environment variables and from a
    ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="BLOCKLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    default_mode: Mode = "loaded"
    encoding: str = "utf-8"

    # Safety limits
    max_document_size: int = 50_000_000  # bytes
    max_depth: int = 64  # nested sections per block
    max_node_count: int = 1_000_000


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured log level. Entry points call this; the library never does."""
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level.upper())
