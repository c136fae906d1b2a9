"""Merge partial observations of one recording into a resolved record.

Observations are folded left to right with ``merge``: for each text field the
newer observation's non-empty value wins, so the fold is associative and the
result only depends on the order observations are folded in. Callers fix that
order explicitly:

- ``coalesce``: drafts from the same batch, folded by ascending richness so the
  most complete draft takes priority and poorer ones only fill gaps.
- ``layer``: observations in discovery order, so a later explicit fetch (the
  detail page) is trusted over the list view.
"""

from collections.abc import Iterable

from common.constants import PLACEHOLDER_TITLE

from .models import DraftRecord, ResolvedRecord


def _pick(base: str, enrichment: str) -> str:
    return enrichment or base


def _pick_title(base: str, enrichment: str) -> str:
    # The placeholder is a default, not an observation
    for title in (enrichment, base):
        if title and title != PLACEHOLDER_TITLE:
            return title
    return PLACEHOLDER_TITLE


def _resolved(record: DraftRecord | ResolvedRecord) -> ResolvedRecord:
    if isinstance(record, ResolvedRecord):
        return record
    return ResolvedRecord.from_draft(record)


def merge(
    base: DraftRecord | ResolvedRecord, enrichment: DraftRecord | ResolvedRecord
) -> ResolvedRecord:
    """Layer enrichment on top of base.

    Args:
        base: Earlier or poorer observation
        enrichment: Observation that takes priority

    Returns:
        ResolvedRecord carrying base's identity

    Raises:
        ValueError: If the two observations have different identities
    """
    base = _resolved(base)
    enrichment = _resolved(enrichment)
    if base.identity != enrichment.identity:
        raise ValueError(
            f"Cannot merge different recordings: {base.identity!r} and {enrichment.identity!r}"
        )

    sources = base.sources + tuple(s for s in enrichment.sources if s not in base.sources)

    return ResolvedRecord(
        identity=base.identity,
        title=_pick_title(base.title, enrichment.title),
        created_at=enrichment.created_at if enrichment.created_at is not None else base.created_at,
        summary=_pick(base.summary, enrichment.summary),
        transcript=_pick(base.transcript, enrichment.transcript),
        source_url=_pick(base.source_url, enrichment.source_url),
        sources=sources,
    )


def layer(observations: Iterable[DraftRecord | ResolvedRecord]) -> ResolvedRecord:
    """Fold observations of one recording in the given order.

    Raises:
        ValueError: If observations is empty
    """
    result: ResolvedRecord | None = None
    for observation in observations:
        result = _resolved(observation) if result is None else merge(result, observation)
    if result is None:
        raise ValueError("layer() needs at least one observation")
    return result


def group_by_identity(drafts: Iterable[DraftRecord]) -> dict[str, list[DraftRecord]]:
    """Group drafts by identity, keeping discovery order.

    Drafts without identity are dropped here; they can never be tracked.
    """
    groups: dict[str, list[DraftRecord]] = {}
    for draft in drafts:
        if not draft.identity:
            continue
        groups.setdefault(draft.identity, []).append(draft)
    return groups


def coalesce(drafts: Iterable[DraftRecord]) -> list[ResolvedRecord]:
    """Resolve same-batch duplicates, one record per identity.

    Within a group the richest draft wins; ties keep discovery order, with the
    later draft taking priority.

    Returns:
        Resolved records in order of first discovery
    """
    resolved = []
    for group in group_by_identity(drafts).values():
        ordered = sorted(group, key=lambda draft: draft.richness)
        resolved.append(layer(ordered))
    return resolved
