"""Fallback extraction from an HTML snapshot of the recordings view.

Used only when no network payload produced a draft. Cards are matched by
class / data-testid heuristics; identities come from data attributes and fall
back to the card title, which may collide between recordings. Coalescing by
identity downstream absorbs those collisions.
"""

from collections.abc import Mapping
from typing import Any

from bs4 import BeautifulSoup, Tag

from common.constants import PLACEHOLDER_TITLE
from common.logger import get_logger

from .json_extraction import coerce_text
from .models import DraftRecord

logger = get_logger(__name__)

# Attributes whose value marks a card when it contains CARD_MARKER
CARD_ATTRIBUTES = ("class", "data-testid")
CARD_MARKER = "card"
TITLE_TAGS = ("h1", "h2", "h3")
TITLE_MARKER = "title"
SUMMARY_MARKER = "summary"
ID_ATTRIBUTES = ("data-id", "data-recording-id", "data-testid")

MAX_CARDS = 100
MAX_TITLE_LENGTH = 120


def _attribute_text(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _has_marker(tag: Tag, marker: str) -> bool:
    return any(marker in _attribute_text(tag, attr).lower() for attr in CARD_ATTRIBUTES)


def _text(tag: Tag | None) -> str:
    if tag is None:
        return ""
    return " ".join(tag.get_text(" ", strip=True).split())


def find_cards(soup: BeautifulSoup) -> list[Tag]:
    """Return the outermost elements that look like recording cards."""
    cards: list[Tag] = []
    for tag in soup.find_all(True):
        if not _has_marker(tag, CARD_MARKER):
            continue
        # Nested matches (card-title, card-body...) belong to the outer card
        if any(_has_marker(parent, CARD_MARKER) for parent in tag.find_parents()):
            continue
        cards.append(tag)
    return cards


def _card_title(card: Tag) -> str:
    title = _text(card.find(list(TITLE_TAGS)))
    if title:
        return title

    marked = card.find(lambda tag: tag is not card and _has_marker(tag, TITLE_MARKER))
    title = _text(marked)
    if title:
        return title

    lines = [line.strip() for line in card.get_text("\n").splitlines() if line.strip()]
    if lines:
        return lines[0][:MAX_TITLE_LENGTH]
    return ""


def _card_identity(card: Tag, title: str) -> str:
    for name in ID_ATTRIBUTES:
        value = _attribute_text(card, name).strip()
        if value:
            return value
    return title


def draft_from_card(card: Tag) -> DraftRecord:
    """Build a draft from one card. Identity may be empty; such drafts are dropped at merge."""
    title = _card_title(card)
    identity = _card_identity(card, title)

    summary_tag = card.find(lambda tag: tag is not card and _has_marker(tag, SUMMARY_MARKER))
    link = card.find("a", href=True)

    return DraftRecord(
        identity=identity,
        title=title or PLACEHOLDER_TITLE,
        summary=_text(summary_tag),
        source_url=str(link["href"]) if link is not None else "",
        origin="dom",
    )


def extract_from_html(html: str | None) -> list[DraftRecord]:
    """Extract drafts from an HTML snapshot.

    Args:
        html: Page HTML, or None if the harvester could not take a snapshot

    Returns:
        At most MAX_CARDS drafts in document order
    """
    if not html:
        return []

    try:
        soup = BeautifulSoup(html, "html.parser")
        drafts = [draft_from_card(card) for card in find_cards(soup)]
    except Exception as e:
        logger.warning(f"DOM snapshot could not be parsed: {e}")
        return []

    return drafts[:MAX_CARDS]


def draft_from_mapping(fields: Mapping[str, Any]) -> DraftRecord:
    """Build a draft from an already-shaped DOM result.

    Accepts the {identity, title, createdAt, summary, transcript, sourceUrl}
    shape handed over by a harvester that scrapes cards in the page itself.
    Identity may come back empty.
    """
    raw_identity = fields.get("identity") or fields.get("id")
    identity = ""
    if isinstance(raw_identity, (str, int)) and not isinstance(raw_identity, bool):
        identity = str(raw_identity).strip()

    created_at = fields.get("createdAt")
    if not isinstance(created_at, (str, int, float)) or isinstance(created_at, bool):
        created_at = None

    return DraftRecord(
        identity=identity,
        title=coerce_text(fields.get("title"), nested=False) or PLACEHOLDER_TITLE,
        created_at=created_at,
        summary=coerce_text(fields.get("summary"), nested=False),
        transcript=coerce_text(fields.get("transcript"), nested=False),
        source_url=coerce_text(fields.get("sourceUrl"), nested=False),
        origin="dom",
    )
