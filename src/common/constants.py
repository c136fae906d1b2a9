"""Shared constants for plaud-notion-sync.

For environment-based configuration (credentials, paths, etc.), use the env module:
    from common.env import env
    base_url = env.plaud_base_url()
"""

from pathlib import Path

# Source service
DEFAULT_PLAUD_BASE_URL = "https://web.plaud.ai"
SOURCE_PREFIX = "Plaud"
PLACEHOLDER_TITLE = "Plaud Recording"

# Persisted state
DEFAULT_LEDGER_PATH = Path("./synced-recordings.json")

# Notion content limits
NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
DEFAULT_CHUNK_SIZE = 1800
PROPERTY_TEXT_LIMIT = 1900
MAX_BLOCKS_PER_PAGE = 90

# Existing pages with fewer child blocks than this get content appended on update
SPARSE_PAGE_BLOCK_COUNT = 3
