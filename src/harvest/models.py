"""Data handed over by the browser harvester."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Harvest:
    """Everything observed while browsing the recordings views.

    Attributes:
        payloads: (url, body) pairs of captured responses, in capture order.
            body is decoded JSON, or None when the response was not JSON.
        html: Snapshot of the recordings view, taken only when no payload
            yielded a recording
        cards: Pre-shaped card mappings (identity, title, createdAt, summary,
            transcript, sourceUrl) for harvesters that scrape cards in the page.
            PlaudBrowser leaves it empty and relies on the html snapshot.
    """

    payloads: list[tuple[str, Any]] = field(default_factory=list)
    html: str | None = None
    cards: list[dict[str, Any]] = field(default_factory=list)
