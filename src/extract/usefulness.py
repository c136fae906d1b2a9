"""Usefulness gate for recordings.

Plaud returns placeholder or in-progress summaries until its AI processing
finishes. Writing those to Notion as final would leave pages the user has to
clean up by hand, so records are only written once they carry real content.
"""

from collections import defaultdict
from dataclasses import replace

from .models import DraftRecord, ResolvedRecord

MIN_SUMMARY_LENGTH = 40
MIN_TRANSCRIPT_LENGTH = 120

# A summary shared verbatim by this many distinct recordings is an echoed template
ECHO_THRESHOLD = 3

# Case-insensitive substrings of known placeholder / template summaries
BOILERPLATE_MARKERS = (
    "summary is being generated",
    "generating summary",
    "generating your summary",
    "transcription in progress",
    "transcribing...",
    "processing your recording",
    "no summary available",
    "summary not available",
    "lorem ipsum",
    "{{",
)


def is_boilerplate(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in BOILERPLATE_MARKERS)


def is_useful(record: DraftRecord | ResolvedRecord) -> bool:
    """Decide whether a record carries enough content to be written.

    A record is useful when its summary is long enough and not boilerplate, or
    when its transcript alone is long enough.
    """
    summary = record.summary.strip()
    if len(summary) >= MIN_SUMMARY_LENGTH and not is_boilerplate(summary):
        return True
    return len(record.transcript.strip()) >= MIN_TRANSCRIPT_LENGTH


class SummaryEchoFilter:
    """Accumulates summaries across a batch and clears echoed templates.

    When one extraction heuristic picks up the same template text for many
    recordings, that text is not real content. Observe every record of the
    batch first, then scrub each one before reconciliation.

    Example:
        >>> echo = SummaryEchoFilter()
        >>> for record in records:
        ...     echo.observe(record)
        >>> records = [echo.scrub(record) for record in records]
    """

    def __init__(self, threshold: int = ECHO_THRESHOLD):
        self.threshold = threshold
        self.identities_by_summary: dict[str, set[str]] = defaultdict(set)

    def observe(self, record: ResolvedRecord) -> None:
        summary = record.summary.strip()
        if summary:
            self.identities_by_summary[summary].add(record.identity)

    def is_echo(self, summary: str) -> bool:
        summary = summary.strip()
        if not summary:
            return False
        return len(self.identities_by_summary.get(summary, ())) >= self.threshold

    def echoed_summaries(self) -> list[str]:
        return [s for s, ids in self.identities_by_summary.items() if len(ids) >= self.threshold]

    def scrub(self, record: ResolvedRecord) -> ResolvedRecord:
        """Return the record with its summary cleared if it is an echo."""
        if self.is_echo(record.summary):
            return replace(record, summary="")
        return record
