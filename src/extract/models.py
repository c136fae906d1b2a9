"""Data models for recording extraction."""

from dataclasses import dataclass, field
from typing import Literal

from common.constants import PLACEHOLDER_TITLE

# createdAt is passed through untouched until it is encoded for Notion
RawTimestamp = str | int | float | None


@dataclass
class DraftRecord:
    """One extraction attempt from one raw payload."""

    identity: str
    title: str = PLACEHOLDER_TITLE
    created_at: RawTimestamp = None
    summary: str = ""
    transcript: str = ""
    source_url: str = ""
    origin: Literal["json", "dom", "detail"] = "json"

    @property
    def richness(self) -> int:
        """Combined length of title, summary and transcript."""
        return len(self.title) + len(self.summary) + len(self.transcript)


@dataclass(frozen=True)
class ResolvedRecord:
    """Merged, canonical view of all drafts sharing one identity.

    The identity is the sole dedup and reconciliation key and never changes
    once a record is resolved.
    """

    identity: str
    title: str = PLACEHOLDER_TITLE
    created_at: RawTimestamp = None
    summary: str = ""
    transcript: str = ""
    source_url: str = ""
    sources: tuple[str, ...] = field(default=(), compare=False)

    @property
    def richness(self) -> int:
        """Combined length of title, summary and transcript."""
        return len(self.title) + len(self.summary) + len(self.transcript)

    @classmethod
    def from_draft(cls, draft: DraftRecord) -> "ResolvedRecord":
        return cls(
            identity=draft.identity,
            title=draft.title,
            created_at=draft.created_at,
            summary=draft.summary,
            transcript=draft.transcript,
            source_url=draft.source_url,
            sources=(draft.origin,),
        )
