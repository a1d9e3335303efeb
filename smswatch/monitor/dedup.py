"""
smswatch/monitor/dedup.py
Seen-id set + timestamp watermark for incremental fetching.

Owned by exactly one poll loop; in-memory for the process lifetime, never
persisted or reset. Only call absorb() with a batch that parsed completely.
"""

from typing import Iterable, List, Set

from smswatch.models.record import MessageRecord

OVERLAP_MS = 5000


class DedupTracker:

    def __init__(self, overlap_ms: int = OVERLAP_MS):
        self.overlap_ms   = overlap_ms
        self.seen_ids:    Set[int] = set()
        self.watermark_ms = 0

    def prime(self, records: Iterable[MessageRecord]) -> int:
        """Seed from the initial unfiltered fetch. Returns the number of records seen."""
        count = 0
        for rec in records:
            self.seen_ids.add(rec.id)
            self._advance(rec.timestamp_ms)
            count += 1
        return count

    def query_since(self) -> int:
        """Lower timestamp bound for the next fetch, overlapping the watermark."""
        return max(0, self.watermark_ms - self.overlap_ms)

    def absorb(self, records: Iterable[MessageRecord]) -> List[MessageRecord]:
        """
        Return records not seen before, in input order, and mark them seen.
        The watermark advances over every record in the batch, duplicates included.
        """
        fresh: List[MessageRecord] = []
        for rec in records:
            self._advance(rec.timestamp_ms)
            if rec.id in self.seen_ids:
                continue
            self.seen_ids.add(rec.id)
            fresh.append(rec)
        return fresh

    def _advance(self, timestamp_ms: int) -> None:
        if timestamp_ms > self.watermark_ms:
            self.watermark_ms = timestamp_ms
