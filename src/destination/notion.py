"""Notion API client for the recordings database."""

from typing import Any

import requests

from common.constants import NOTION_API_URL, NOTION_VERSION
from common.logger import get_logger

from .base import Block, DestinationError, DestinationStore, ErrorKind, Page, PropertySchema
from .rate_limiter import RateLimiter

logger = get_logger(__name__)


class NotionClient(DestinationStore):
    """Client for one Notion database.

    Only the handful of endpoints the sync needs are wrapped. Requests are
    throttled to Notion's documented average of three per second; failures are
    raised as DestinationError tagged with an ErrorKind and never retried here.

    API Documentation: https://developers.notion.com/reference/intro
    """

    def __init__(
        self,
        api_key: str,
        database_id: str,
        base_url: str = NOTION_API_URL,
        requests_per_second: int = 3,
        timeout: float = 30.0,
    ):
        self.database_id = database_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limiter = RateLimiter(requests_per_period=requests_per_second, period_seconds=1.0)
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
                "User-Agent": "plaud-notion-sync/1.0",
            }
        )

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.rate_limiter.wait_if_needed()
        url = f"{self.base_url}{path}"

        try:
            logger.debug(f"Notion {method} {path}")
            response = self.session.request(
                method, url, json=payload, params=params, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise DestinationError(f"Notion API timeout on {method} {path}") from e
        except requests.exceptions.RequestException as e:
            raise DestinationError(f"Notion API request failed: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") or response.text[:200]
            raise DestinationError.from_status(
                response.status_code,
                f"Notion API error {response.status_code} on {method} {path}: {message}",
                code=body.get("code"),
            )

        try:
            return response.json()
        except ValueError as e:
            raise DestinationError(
                f"Notion API returned invalid JSON on {method} {path}", kind=ErrorKind.SERVER
            ) from e

    def get_schema(self) -> PropertySchema:
        data = self._request("GET", f"/databases/{self.database_id}")
        properties = data.get("properties") or {}
        return {name: prop.get("type", "") for name, prop in properties.items()}

    def find_page_by_marker(self, property_name: str, kind: str, marker: str) -> Page | None:
        if kind == "url":
            condition = {"url": {"equals": marker}}
        else:
            condition = {"rich_text": {"contains": marker}}

        data = self._request(
            "POST",
            f"/databases/{self.database_id}/query",
            {"filter": {"property": property_name, **condition}, "page_size": 1},
        )
        results = data.get("results") or []
        return results[0] if results else None

    def create_page(self, properties: dict[str, Any], children: list[Block]) -> Page:
        payload: dict[str, Any] = {
            "parent": {"database_id": self.database_id},
            "properties": properties,
        }
        if children:
            payload["children"] = children
        return self._request("POST", "/pages", payload)

    def update_page(self, page_id: str, properties: dict[str, Any]) -> Page:
        return self._request("PATCH", f"/pages/{page_id}", {"properties": properties})

    def list_children(self, block_id: str, page_size: int = 10) -> list[Block]:
        data = self._request("GET", f"/blocks/{block_id}/children", params={"page_size": page_size})
        return data.get("results") or []

    def append_children(self, block_id: str, children: list[Block]) -> None:
        self._request("PATCH", f"/blocks/{block_id}/children", {"children": children})

    def close(self) -> None:
        self.session.close()
