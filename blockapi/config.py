"""
Blocks API configuration: all environment variables in one place.

Read from environment at import time.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Templates: os.pathsep-separated search paths, each holding a blocks/ directory
    BLOCKS_TEMPLATE_PATHS: list[str] = [
        p for p in os.environ.get("BLOCKS_TEMPLATE_PATHS", "templates").split(os.pathsep) if p
    ]

    # Storage: a directory of <block>.json files. Empty = in-memory (lost on restart)
    BLOCKS_STORAGE_DIR: str = os.environ.get("BLOCKS_STORAGE_DIR", "")

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()


# Singleton instance
settings = Settings()
