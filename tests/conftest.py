"""Shared fixtures: an in-memory Notion database standing in for the real API."""

import copy
from typing import Any

import pytest

from destination.base import DestinationError, DestinationStore, ErrorKind

DEFAULT_SCHEMA = {
    "Name": "title",
    "Date": "date",
    "Summary": "rich_text",
    "Source": "rich_text",
}


def _plain_text(value: dict[str, Any]) -> str:
    for key in ("title", "rich_text"):
        if key in value:
            return "".join(part["text"]["content"] for part in value[key])
    return value.get("url") or ""


class InMemoryStore(DestinationStore):
    """Destination store keeping pages and blocks in dictionaries."""

    def __init__(self, schema: dict[str, str] | None = None):
        self.schema = dict(DEFAULT_SCHEMA if schema is None else schema)
        self.pages: dict[str, dict[str, Any]] = {}
        self.children: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[str] = []
        self.failing_titles: set[str] = set()
        self.lookup_error: ErrorKind | None = None

    def _title(self, properties: dict[str, Any]) -> str:
        for value in properties.values():
            if "title" in value:
                return _plain_text(value)
        return ""

    def get_schema(self) -> dict[str, str]:
        self.calls.append("get_schema")
        return dict(self.schema)

    def find_page_by_marker(self, property_name: str, kind: str, marker: str):
        self.calls.append("find_page_by_marker")
        if self.lookup_error is not None:
            raise DestinationError("lookup failed", kind=self.lookup_error)
        if self.schema.get(property_name) != kind:
            raise DestinationError(
                f"Could not find property with name or id: {property_name}",
                kind=ErrorKind.VALIDATION,
                code="validation_error",
            )
        for page in self.pages.values():
            value = page["properties"].get(property_name)
            if value is None:
                continue
            text = _plain_text(value)
            if (kind == "url" and text == marker) or (kind == "rich_text" and marker in text):
                return page
        return None

    def create_page(self, properties, children):
        self.calls.append("create_page")
        if self._title(properties) in self.failing_titles:
            raise DestinationError("create failed", kind=ErrorKind.SERVER)
        page_id = f"page-{len(self.pages) + 1}"
        page = {"id": page_id, "properties": copy.deepcopy(properties)}
        self.pages[page_id] = page
        self.children[page_id] = list(children)
        return page

    def update_page(self, page_id, properties):
        self.calls.append("update_page")
        if self._title(properties) in self.failing_titles:
            raise DestinationError("update failed", kind=ErrorKind.SERVER)
        self.pages[page_id]["properties"].update(copy.deepcopy(properties))
        return self.pages[page_id]

    def list_children(self, block_id, page_size=10):
        self.calls.append("list_children")
        return self.children.get(block_id, [])[:page_size]

    def append_children(self, block_id, children):
        self.calls.append("append_children")
        self.children.setdefault(block_id, []).extend(children)

    def page_titles(self) -> list[str]:
        return [self._title(page["properties"]) for page in self.pages.values()]


@pytest.fixture
def store():
    """Empty in-memory Notion database with Name, Date, Summary and Source."""
    return InMemoryStore()


@pytest.fixture
def make_store():
    """Factory for in-memory stores with a custom schema."""
    return InMemoryStore


@pytest.fixture
def base_url():
    return "https://web.plaud.ai"
