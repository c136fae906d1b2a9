"""Environment configuration interface for plaud-notion-sync.

This module provides a clean interface for accessing environment variables,
centralizing all environment variable access in one place.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from .constants import DEFAULT_CHUNK_SIZE, DEFAULT_LEDGER_PATH, DEFAULT_PLAUD_BASE_URL

# Load environment variables from .env file if it exists
load_dotenv()


class ConfigError(Exception):
    """Required configuration is missing or invalid."""

    pass


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def require(name: str) -> str:
        """Get a required environment variable.

        Args:
            name: Variable name

        Returns:
            The stripped value

        Raises:
            ConfigError: If the variable is unset or blank
        """
        value = os.getenv(name)
        if not value or not value.strip():
            raise ConfigError(f"Missing required environment variable: {name}")
        return value.strip()

    @staticmethod
    def plaud_email() -> str:
        return Environment.require("PLAUD_EMAIL")

    @staticmethod
    def plaud_password() -> str:
        return Environment.require("PLAUD_PASSWORD")

    @staticmethod
    def plaud_base_url() -> str:
        """Get the Plaud web app base URL.

        Returns:
            Base URL without trailing slash, defaults to https://web.plaud.ai
        """
        value = os.getenv("PLAUD_BASE_URL", "").strip()
        return (value or DEFAULT_PLAUD_BASE_URL).rstrip("/")

    @staticmethod
    def notion_api_key() -> str:
        return Environment.require("NOTION_API_KEY")

    @staticmethod
    def notion_database_id() -> str:
        """Get the Notion database ID.

        Accepts the raw 32 character ID or the dashed UUID form.

        Returns:
            Database ID with dashes removed
        """
        return Environment.require("NOTION_DATABASE_ID").replace("-", "")

    @staticmethod
    def ledger_path() -> Path:
        """Get the sync ledger file path.

        Returns:
            Path to ledger file, defaults to ./synced-recordings.json
        """
        return Path(os.getenv("SYNC_LEDGER_PATH", str(DEFAULT_LEDGER_PATH)))

    @staticmethod
    def headless() -> bool:
        """Whether the browser runs headless.

        Returns:
            False only when HEADLESS is 0, false or no
        """
        return os.getenv("HEADLESS", "true").strip().lower() not in ("0", "false", "no")

    @staticmethod
    def chunk_size() -> int:
        """Get the maximum characters per Notion content block.

        Returns:
            Chunk size, defaults to 1800

        Raises:
            ConfigError: If the value is not an integer between 1 and 2000
        """
        raw = os.getenv("NOTION_CHUNK_SIZE", "").strip()
        if not raw:
            return DEFAULT_CHUNK_SIZE
        try:
            size = int(raw)
        except ValueError:
            raise ConfigError(f"NOTION_CHUNK_SIZE must be an integer, got {raw!r}") from None
        if not 1 <= size <= 2000:
            raise ConfigError(f"NOTION_CHUNK_SIZE must be between 1 and 2000, got {size}")
        return size


# Singleton instance for convenient access
env = Environment()
