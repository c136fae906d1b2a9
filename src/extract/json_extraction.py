"""Extract draft recordings from JSON payloads of unknown shape.

Plaud publishes no API schema and the shape of its responses shifts between
releases, so extraction works from ordered candidate-key tables. Each field takes
the first non-empty value found under its keys. Nested objects are only looked
into through TEXT_SUBKEYS, one level deep, so UI and template metadata never
leaks into content fields.
"""

import json
from typing import Any

from common.constants import PLACEHOLDER_TITLE
from common.logger import get_logger

from .models import DraftRecord, RawTimestamp

logger = get_logger(__name__)

ID_KEYS = ("id", "recordingId", "recording_id", "uuid", "_id")
TITLE_KEYS = ("title", "name", "recordingName")
CREATED_AT_KEYS = ("createdAt", "created_at", "time", "date")
SUMMARY_KEYS = ("summary", "brief", "aiSummary")
TRANSCRIPT_KEYS = ("transcript", "text", "content")
URL_KEYS = ("url", "webUrl", "shareUrl")

# Sub-keys inspected when a candidate value is an object
TEXT_SUBKEYS = ("text", "content", "markdown", "value", "summary")

# Known nesting paths for recording lists, checked after top-level arrays
NESTED_LIST_PATHS = (
    ("data", "recordings"),
    ("result", "recordings"),
    ("data", "list"),
    ("data", "items"),
    ("result", "list"),
)


def parse_payload(raw: Any) -> Any:
    """Decode a raw response body.

    Args:
        raw: Already-decoded JSON (dict or list), or a str/bytes body

    Returns:
        Decoded JSON value, or None if the body is not valid JSON
    """
    if isinstance(raw, (dict, list)):
        return raw
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            return json.loads(raw)
        except (ValueError, TypeError):
            return None
    return None


def coerce_text(value: Any, nested: bool = True) -> str:
    """Turn a candidate value into text without recursing into unknown objects.

    Strings are stripped, lists of strings are joined with newlines, and objects
    are inspected through TEXT_SUBKEYS only (one level deep).
    """
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        parts = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return "\n".join(parts)
    if nested and isinstance(value, dict):
        for key in TEXT_SUBKEYS:
            text = coerce_text(value.get(key), nested=False)
            if text:
                return text
    return ""


def first_text(obj: dict[str, Any], keys: tuple[str, ...]) -> str:
    """Return the first non-empty text value under keys, in order."""
    for key in keys:
        text = coerce_text(obj.get(key))
        if text:
            return text
    return ""


def extract_identity(obj: dict[str, Any]) -> str:
    """Return the first usable id-like value, or "" if there is none.

    Strings and integers are accepted; booleans and everything else are not.
    """
    for key in ID_KEYS:
        value = obj.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def first_timestamp(obj: dict[str, Any]) -> RawTimestamp:
    for key in CREATED_AT_KEYS:
        value = obj.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def draft_from_object(obj: Any, origin: str = "json") -> DraftRecord | None:
    """Build a draft from one candidate element.

    Args:
        obj: Candidate element from a recording list
        origin: Where the element was observed ("json" or "detail")

    Returns:
        DraftRecord, or None if the element is not an object or has no identity
    """
    if not isinstance(obj, dict):
        return None

    identity = extract_identity(obj)
    if not identity:
        return None

    return DraftRecord(
        identity=identity,
        title=first_text(obj, TITLE_KEYS) or PLACEHOLDER_TITLE,
        created_at=first_timestamp(obj),
        summary=first_text(obj, SUMMARY_KEYS),
        transcript=first_text(obj, TRANSCRIPT_KEYS),
        source_url=first_text(obj, URL_KEYS),
        origin=origin,  # type: ignore[arg-type]
    )


def _dig(payload: dict[str, Any], path: tuple[str, ...]) -> Any:
    current: Any = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def candidate_lists(payload: Any) -> list[list[Any]]:
    """Collect the arrays that may hold recordings.

    A top-level array is its own candidate. For objects, every array-valued
    top-level key is a candidate, followed by NESTED_LIST_PATHS. The same list
    object is never returned twice.
    """
    if isinstance(payload, list):
        return [payload]
    if not isinstance(payload, dict):
        return []

    lists: list[list[Any]] = []
    seen: set[int] = set()

    def add(value: Any) -> None:
        if isinstance(value, list) and id(value) not in seen:
            seen.add(id(value))
            lists.append(value)

    for value in payload.values():
        add(value)
    for path in NESTED_LIST_PATHS:
        add(_dig(payload, path))

    return lists


def _single_record(payload: Any) -> dict[str, Any] | None:
    """Return the record object of a detail-style payload, if it is one."""
    if not isinstance(payload, dict):
        return None
    if extract_identity(payload):
        return payload
    data = payload.get("data")
    if isinstance(data, dict) and extract_identity(data):
        return data
    return None


def _extract(payload: Any, origin: str) -> list[DraftRecord]:
    drafts: list[DraftRecord] = []
    for candidates in candidate_lists(payload):
        for element in candidates:
            draft = draft_from_object(element, origin)
            if draft is not None:
                drafts.append(draft)

    if not drafts:
        record = _single_record(payload)
        if record is not None:
            draft = draft_from_object(record, origin)
            if draft is not None:
                drafts.append(draft)

    return drafts


def extract_from_payload(raw: Any, origin: str = "json") -> list[DraftRecord]:
    """Extract zero or more drafts from one raw payload.

    Never raises: malformed input, or a shape the heuristics do not cover,
    yields an empty list.

    Args:
        raw: Response body (str/bytes) or decoded JSON
        origin: Tag recorded on every draft ("json" or "detail")

    Returns:
        Drafts in discovery order, duplicates included
    """
    payload = parse_payload(raw)
    if payload is None:
        return []

    try:
        return _extract(payload, origin)
    except Exception as e:
        logger.warning(f"Skipping payload that could not be extracted: {e}")
        return []
