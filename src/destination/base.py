"""Abstract destination store and its errors."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

# Notion property type names keyed by property name, e.g. {"Name": "title"}
PropertySchema = dict[str, str]
Page = dict[str, Any]
Block = dict[str, Any]


class DestinationStore(ABC):
    """Base class for the knowledge base recordings are written into.

    The reconciler only talks to this interface. Every method is a fallible
    remote call and raises DestinationError on failure.
    """

    @abstractmethod
    def get_schema(self) -> PropertySchema:
        """Read the property schema of the target database.

        Returns:
            Mapping of property name to property kind
        """
        pass

    @abstractmethod
    def find_page_by_marker(self, property_name: str, kind: str, marker: str) -> Page | None:
        """Find an existing page carrying a dedup marker.

        Args:
            property_name: Property holding the marker
            kind: Kind of that property ("rich_text" matches by substring, "url" exactly)
            marker: Marker text or URL

        Returns:
            The first matching page, or None
        """
        pass

    @abstractmethod
    def create_page(self, properties: dict[str, Any], children: list[Block]) -> Page:
        pass

    @abstractmethod
    def update_page(self, page_id: str, properties: dict[str, Any]) -> Page:
        pass

    @abstractmethod
    def list_children(self, block_id: str, page_size: int = 10) -> list[Block]:
        pass

    @abstractmethod
    def append_children(self, block_id: str, children: list[Block]) -> None:
        pass


class ErrorKind(str, Enum):
    """What went wrong in a remote call."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    TRANSPORT = "transport"


class DestinationError(Exception):
    """A call to the destination store failed."""

    def __init__(
        self, message: str, kind: ErrorKind = ErrorKind.TRANSPORT, code: str | None = None
    ):
        super().__init__(message)
        self.kind = kind
        self.code = code

    @classmethod
    def from_status(cls, status: int, message: str, code: str | None = None) -> "DestinationError":
        """Map an HTTP status to an error kind."""
        if status in (401, 403):
            kind = ErrorKind.UNAUTHORIZED
        elif status == 404:
            kind = ErrorKind.NOT_FOUND
        elif status == 429:
            kind = ErrorKind.RATE_LIMITED
        elif status >= 500:
            kind = ErrorKind.SERVER
        else:
            kind = ErrorKind.VALIDATION
        return cls(message, kind=kind, code=code)
