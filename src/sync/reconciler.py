"""Decide create / update / skip per recording and perform the write."""

from enum import Enum

from common.constants import DEFAULT_CHUNK_SIZE, SPARSE_PAGE_BLOCK_COUNT
from common.logger import get_logger
from destination.base import DestinationError, DestinationStore, ErrorKind, Page, PropertySchema
from extract.models import ResolvedRecord
from extract.usefulness import is_useful

from .ledger import SyncLedger
from .payload import (
    SOURCE_PROPERTY,
    build_content_blocks,
    build_properties,
    canonical_link,
    filter_properties,
    lookup_marker,
)

logger = get_logger(__name__)

MARKER_KINDS = ("rich_text", "url")


class Decision(str, Enum):
    """Outcome of reconciling one recording."""

    UPSERT = "upsert"
    CREATE = "create"
    UPDATE = "update"
    SKIP_NO_IDENTITY = "skip_no_identity"
    SKIP_LOW_SIGNAL = "skip_low_signal"
    SKIP_SYNCED = "skip_synced"


def marker_kind(schema: PropertySchema) -> str | None:
    """Kind of the Source property, if it can carry a dedup marker."""
    kind = schema.get(SOURCE_PROPERTY)
    return kind if kind in MARKER_KINDS else None


def decide(
    record: ResolvedRecord,
    ledger: SyncLedger,
    schema: PropertySchema,
    useful: bool | None = None,
) -> Decision:
    """Decide what to do with a recording, without any remote call.

    - No identity: skipped, it cannot be tracked.
    - Already ledgered but not useful now: skipped, so placeholder content never
      overwrites what was written before.
    - Already ledgered but no marker property to find its page by: skipped,
      creating it again would duplicate it.
    - Not ledgered and not useful: skipped as low-signal and left out of the
      ledger, so the next run tries again.
    - Otherwise: upsert.
    """
    if not record.identity:
        return Decision.SKIP_NO_IDENTITY

    if useful is None:
        useful = is_useful(record)

    synced = record.identity in ledger
    if synced and not useful:
        return Decision.SKIP_SYNCED
    if synced and marker_kind(schema) is None:
        return Decision.SKIP_SYNCED
    if not useful:
        return Decision.SKIP_LOW_SIGNAL
    return Decision.UPSERT


class Reconciler:
    """Write resolved recordings into the destination store.

    The ledger is only updated after a write succeeded. Write failures are
    raised to the caller as DestinationError.
    """

    def __init__(
        self,
        store: DestinationStore,
        schema: PropertySchema,
        ledger: SyncLedger,
        base_url: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        dry_run: bool = False,
    ):
        self.store = store
        self.schema = schema
        self.ledger = ledger
        self.base_url = base_url
        self.chunk_size = chunk_size
        self.dry_run = dry_run

    def decide(self, record: ResolvedRecord) -> Decision:
        return decide(record, self.ledger, self.schema)

    def find_existing(self, record: ResolvedRecord) -> Page | None:
        """Look up the recording's page by its Source marker.

        Fails open: a schema that rejects the marker query means no page.
        """
        kind = marker_kind(self.schema)
        if kind is None:
            return None

        if kind == "url":
            marker = canonical_link(record.identity, self.base_url)
        else:
            marker = lookup_marker(record.identity)

        try:
            return self.store.find_page_by_marker(SOURCE_PROPERTY, kind, marker)
        except DestinationError as e:
            if e.kind in (ErrorKind.VALIDATION, ErrorKind.NOT_FOUND):
                logger.debug(f"Marker lookup failed for {record.identity}, assuming new: {e}")
                return None
            raise

    def apply(self, record: ResolvedRecord) -> Decision:
        """Create or update the recording's page and ledger it.

        Returns:
            Decision.CREATE or Decision.UPDATE

        Raises:
            DestinationError: If a write fails; the identity is not ledgered
        """
        properties = filter_properties(
            build_properties(record, self.schema, self.base_url), self.schema
        )
        children = build_content_blocks(record, self.base_url, chunk_size=self.chunk_size)
        existing = self.find_existing(record)

        if self.dry_run:
            decision = Decision.UPDATE if existing else Decision.CREATE
            logger.info(
                f"[dim](dry run)[/dim] Would {decision.value}: {record.title} ({record.identity})"
            )
            return decision

        if existing:
            page_id = existing["id"]
            self.store.update_page(page_id, properties)
            # Sparse pages get the body once; fuller ones are left alone
            if children:
                current = self.store.list_children(page_id, page_size=10)
                if len(current) < SPARSE_PAGE_BLOCK_COUNT:
                    self.store.append_children(page_id, children)
            decision = Decision.UPDATE
        else:
            self.store.create_page(properties, children)
            decision = Decision.CREATE

        self.ledger.add(record.identity)
        return decision

    def reconcile(self, record: ResolvedRecord) -> Decision:
        decision = self.decide(record)
        if decision is Decision.UPSERT:
            return self.apply(record)
        return decision
