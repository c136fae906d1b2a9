"""High-level orchestration of one sync run."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from common.constants import DEFAULT_CHUNK_SIZE
from common.logger import get_logger
from destination.base import DestinationError, DestinationStore
from extract.dom_extraction import draft_from_mapping, extract_from_html
from extract.json_extraction import extract_from_payload
from extract.merge import coalesce, layer
from extract.models import DraftRecord, ResolvedRecord
from extract.usefulness import SummaryEchoFilter, is_useful
from harvest.errors import NoRecordingsError
from harvest.models import Harvest

from .ledger import SyncLedger
from .reconciler import Decision, Reconciler

logger = get_logger(__name__)

# Fetches the raw (url, body) payloads seen on a recording's detail page
DetailFetcher = Callable[[str], list[tuple[str, Any]]]


@dataclass
class SyncStats:
    """Counters reported at the end of a run."""

    created: int = 0
    updated: int = 0
    skipped_low_signal: int = 0
    skipped_no_identity: int = 0
    skipped_synced: int = 0
    failed: int = 0

    def record(self, decision: Decision) -> None:
        if decision is Decision.CREATE:
            self.created += 1
        elif decision is Decision.UPDATE:
            self.updated += 1
        elif decision is Decision.SKIP_LOW_SIGNAL:
            self.skipped_low_signal += 1
        elif decision is Decision.SKIP_NO_IDENTITY:
            self.skipped_no_identity += 1
        elif decision is Decision.SKIP_SYNCED:
            self.skipped_synced += 1

    def summary(self) -> str:
        return (
            f"Created {self.created}, updated {self.updated}, "
            f"skipped low-signal {self.skipped_low_signal}, "
            f"skipped without identity {self.skipped_no_identity}, "
            f"already synced {self.skipped_synced}, failed {self.failed}"
        )


def extract_drafts(harvest: Harvest) -> list[DraftRecord]:
    """Extract drafts from captured payloads, falling back to the DOM.

    The DOM snapshot and pre-shaped cards are only used when no payload
    produced a draft.
    """
    drafts: list[DraftRecord] = []
    for url, body in harvest.payloads:
        found = extract_from_payload(body)
        if found:
            logger.debug(f"{len(found)} recording(s) in {url}")
        drafts.extend(found)

    if drafts:
        return drafts

    drafts = extract_from_html(harvest.html)
    drafts.extend(draft_from_mapping(card) for card in harvest.cards)
    if drafts:
        logger.info(f"Fell back to DOM scrape: {len(drafts)} card(s)")
    return drafts


def resolve(drafts: list[DraftRecord]) -> list[ResolvedRecord]:
    """Coalesce drafts per identity and clear summaries echoed across records."""
    records = coalesce(drafts)

    echo = SummaryEchoFilter()
    for record in records:
        echo.observe(record)
    for summary in echo.echoed_summaries():
        logger.warning(f"Ignoring summary repeated across recordings: {summary[:60]!r}")

    return [echo.scrub(record) for record in records]


def enrich_with_details(
    records: list[ResolvedRecord],
    fetch: DetailFetcher,
    limit: int,
) -> list[ResolvedRecord]:
    """Layer detail-page observations onto low-signal records.

    At most ``limit`` detail pages are fetched, in record order. A failed
    fetch leaves the record as it was.
    """
    enriched = []
    fetched = 0
    for record in records:
        if fetched >= limit or is_useful(record):
            enriched.append(record)
            continue

        fetched += 1
        try:
            payloads = fetch(record.identity)
        except Exception as e:
            logger.warning(f"Detail fetch failed for {record.identity}: {e}")
            enriched.append(record)
            continue

        details = [
            draft
            for _, body in payloads
            for draft in extract_from_payload(body, origin="detail")
            if draft.identity == record.identity
        ]
        enriched.append(layer([record, *details]) if details else record)

    return enriched


class SyncRunner:
    """Run the decide, write, ledger cycle over a batch of recordings.

    Recordings are processed strictly one after another. A failed write is
    logged and counted; the run moves on and the identity stays out of the
    ledger, so the next run retries it.

    Example:
        >>> runner = SyncRunner(store, SyncLedger.load(path), "https://web.plaud.ai")
        >>> stats = runner.run(harvest)
        >>> print(stats.summary())
    """

    def __init__(
        self,
        store: DestinationStore,
        ledger: SyncLedger,
        base_url: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        dry_run: bool = False,
    ):
        self.store = store
        self.ledger = ledger
        self.base_url = base_url
        self.chunk_size = chunk_size
        self.dry_run = dry_run

    def run(
        self,
        harvest: Harvest,
        fetch_detail: DetailFetcher | None = None,
        max_details: int = 0,
    ) -> SyncStats:
        """Extract, resolve and sync everything in a harvest.

        Args:
            harvest: Payloads and DOM snapshot from the browser
            fetch_detail: Optional callable fetching a recording's detail payloads
            max_details: Maximum number of detail pages to fetch

        Raises:
            NoRecordingsError: If the harvest holds no recording at all
            DestinationError: If the database schema cannot be read
            LedgerError: If the ledger cannot be saved
        """
        drafts = extract_drafts(harvest)
        if not drafts:
            raise NoRecordingsError(
                "Could not find recordings from Plaud. The Plaud UI likely changed."
            )

        stats = SyncStats()
        stats.skipped_no_identity = sum(1 for draft in drafts if not draft.identity)

        records = resolve(drafts)
        if fetch_detail is not None and max_details > 0:
            records = enrich_with_details(records, fetch_detail, max_details)

        return self.sync(records, stats)

    def sync(self, records: list[ResolvedRecord], stats: SyncStats | None = None) -> SyncStats:
        stats = stats or SyncStats()
        schema = self.store.get_schema()
        logger.debug(f"Database properties: {', '.join(sorted(schema))}")

        reconciler = Reconciler(
            self.store,
            schema,
            self.ledger,
            self.base_url,
            chunk_size=self.chunk_size,
            dry_run=self.dry_run,
        )

        for i, record in enumerate(records):
            decision = reconciler.decide(record)
            if decision is not Decision.UPSERT:
                stats.record(decision)
                continue

            logger.info(f"[{i + 1}/{len(records)}] Upserting '{record.title}' ({record.identity})")
            try:
                decision = reconciler.apply(record)
            except DestinationError as e:
                logger.error(f"✗ Failed to write '{record.title}' ({record.identity}): {e}")
                stats.failed += 1
                continue
            except Exception as e:
                # A malformed record must not stop the batch
                logger.error(
                    f"✗ Could not build page for '{record.title}' ({record.identity}): {e}",
                    exc_info=True,
                )
                stats.failed += 1
                continue

            stats.record(decision)
            if not self.dry_run:
                self.ledger.save()

        if not self.dry_run:
            self.ledger.save()

        return stats
