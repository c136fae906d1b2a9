"""Build Notion property and content payloads for a resolved recording.

Only properties the target database actually has are written, and each
logical field is encoded according to the kind of the property that receives
it. Nothing here performs I/O.
"""

import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from common.constants import (
    DEFAULT_CHUNK_SIZE,
    MAX_BLOCKS_PER_PAGE,
    PROPERTY_TEXT_LIMIT,
    SOURCE_PREFIX,
)
from destination.base import Block, PropertySchema
from extract.models import RawTimestamp, ResolvedRecord

TITLE_PROPERTY = "Name"
DATE_PROPERTY = "Date"
SUMMARY_PROPERTY = "Summary"
SOURCE_PROPERTY = "Source"

# Notion limits a single rich text object to 2000 characters
MAX_CHUNK_SIZE = 2000

_PLACEHOLDER_TITLE_RE = re.compile(r"^plaud\s*recording$", re.IGNORECASE)
_NUMERIC_RE = re.compile(r"^-?\d+(\.\d+)?$")

# Epoch values at or above this are milliseconds
_EPOCH_MS_THRESHOLD = 1e11


def _format_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_iso_timestamp(value: RawTimestamp) -> str | None:
    """Normalize an opaque source timestamp to UTC ISO-8601.

    Accepts ISO strings (including a trailing Z) and epoch seconds or
    milliseconds, as numbers or digit strings. Naive datetimes are taken as UTC.

    Returns:
        ISO string such as '2024-05-01T09:30:00.000Z', or None if unparseable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if not _NUMERIC_RE.match(text):
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return _format_utc(parsed)
        value = float(text)

    if isinstance(value, (int, float)):
        try:
            seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
            return _format_utc(datetime.fromtimestamp(seconds, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None

    return None


def display_name(record: ResolvedRecord) -> str:
    """Page title for a recording.

    The placeholder title is replaced by the recording date, or a short id when
    no date is known.
    """
    title = record.title.strip()
    if title and not _PLACEHOLDER_TITLE_RE.match(title):
        return title

    iso = to_iso_timestamp(record.created_at)
    if iso:
        return f"Plaud recording {iso[:10]}"

    short_id = record.identity[:8]
    return f"Plaud recording {short_id}" if short_id else "Plaud recording"


def canonical_link(identity: str, base_url: str) -> str:
    """Deep link built from identity alone, stable across runs."""
    base = base_url.rstrip("/")
    if not identity:
        return base
    return f"{base}/recordings/{quote(identity, safe='')}"


def browse_link(record: ResolvedRecord, base_url: str) -> str:
    """Link for readers: the recording's own URL when it has one."""
    if re.match(r"^https?://", record.source_url, re.IGNORECASE):
        return record.source_url
    return canonical_link(record.identity, base_url)


def lookup_marker(identity: str) -> str:
    """Substring that identifies a recording in a rich text Source property.

    The trailing separator keeps 'abc' from matching 'abc123'.
    """
    return f"{SOURCE_PREFIX}:{identity} |"


def source_marker(identity: str, base_url: str) -> str:
    return f"{SOURCE_PREFIX}:{identity} | {canonical_link(identity, base_url)}"


def title_property_name(schema: PropertySchema) -> str | None:
    """Name of the database's title property, preferring 'Name'."""
    if schema.get(TITLE_PROPERTY) == "title":
        return TITLE_PROPERTY
    for name, kind in schema.items():
        if kind == "title":
            return name
    return None


def _text(content: str, link: str | None = None) -> dict[str, Any]:
    text: dict[str, Any] = {"content": content}
    if link:
        text["link"] = {"url": link}
    return {"type": "text", "text": text}


def build_properties(
    record: ResolvedRecord,
    schema: PropertySchema,
    base_url: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the property payload for a recording, before filtering.

    Args:
        record: Recording to write
        schema: Destination property kinds by name
        base_url: Plaud web app base URL
        now: Fallback date when the recording has none (defaults to now)

    Returns:
        Properties keyed by name; pass through filter_properties before writing
    """
    properties: dict[str, Any] = {}

    title_name = title_property_name(schema) or TITLE_PROPERTY
    properties[title_name] = {"title": [_text(display_name(record))]}

    # Always dated so the database stays sortable
    iso = to_iso_timestamp(record.created_at) or _format_utc(now or datetime.now(timezone.utc))
    properties[DATE_PROPERTY] = {"date": {"start": iso}}

    if record.summary:
        properties[SUMMARY_PROPERTY] = {
            "rich_text": [_text(record.summary[:PROPERTY_TEXT_LIMIT])]
        }

    if record.identity:
        if schema.get(SOURCE_PROPERTY) == "url":
            properties[SOURCE_PROPERTY] = {"url": canonical_link(record.identity, base_url)}
        else:
            marker = source_marker(record.identity, base_url)
            properties[SOURCE_PROPERTY] = {"rich_text": [_text(marker[:PROPERTY_TEXT_LIMIT])]}

    return properties


def filter_properties(properties: dict[str, Any], schema: PropertySchema) -> dict[str, Any]:
    """Drop properties the database does not have, or whose kind does not match."""
    filtered = {}
    for name, value in properties.items():
        kind = schema.get(name)
        if kind is None:
            continue
        (encoded_kind,) = value.keys()
        if encoded_kind != kind:
            continue
        filtered[name] = value
    return filtered


def chunk_text(text: str, size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    if size <= 0 or size > MAX_CHUNK_SIZE:
        raise ValueError(f"Chunk size must be between 1 and {MAX_CHUNK_SIZE}, got {size}")
    return [text[i : i + size] for i in range(0, len(text), size)]


def _paragraph(*rich_text: dict[str, Any]) -> Block:
    return {"object": "block", "type": "paragraph", "paragraph": {"rich_text": list(rich_text)}}


def _heading(content: str) -> Block:
    return {"object": "block", "type": "heading_2", "heading_2": {"rich_text": [_text(content)]}}


def build_content_blocks(
    record: ResolvedRecord,
    base_url: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_blocks: int = MAX_BLOCKS_PER_PAGE,
) -> list[Block]:
    """Build page body blocks: a link back to Plaud, then summary and transcript.

    Text is split into chunk_size pieces and the whole body is capped at
    max_blocks, so very long transcripts are truncated.
    """
    link = browse_link(record, base_url)
    blocks = [_paragraph(_text("Open in Plaud: "), _text(link, link=link))]

    for heading, body in (("Summary", record.summary), ("Transcript", record.transcript)):
        if not body:
            continue
        # Room for the heading plus at least one paragraph
        if len(blocks) + 2 > max_blocks:
            break
        blocks.append(_heading(heading))
        for chunk in chunk_text(body, chunk_size):
            if len(blocks) >= max_blocks:
                break
            blocks.append(_paragraph(_text(chunk)))

    return blocks
