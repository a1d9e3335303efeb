"""
smswatch/monitor/poll_loop.py
The watcher loop: fetch → parse → dedup → filter → OTP → classify → emit.

PRIMING: one unfiltered fetch that only seeds the dedup state, emits nothing.
POLLING: every interval, fetch from (watermark − overlap) and emit what's new.

Single thread of control. Cycles never overlap and messages are classified
one by one, so output order always follows fetch order. Cancellation is
cooperative: the stop event is checked between cycles and handed to the
source so an in-flight fetch can be aborted.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from smswatch.detectors.classifier import MessageClassifier
from smswatch.detectors.otp_extractor import extract_otp
from smswatch.errors import SourceCancelled, SourceError
from smswatch.filtering.source_filter import SourceFilter
from smswatch.models.record import MessageRecord, WatchResult
from smswatch.monitor.dedup import DedupTracker
from smswatch.parsers.dump_parser import parse_dump

logger = logging.getLogger(__name__)

PRIMING = 'PRIMING'
POLLING = 'POLLING'

Sink = Callable[[WatchResult], None]


class PollLoop:

    def __init__(
        self,
        source,
        classifier:     Optional[MessageClassifier] = None,
        tracker:        Optional[DedupTracker]      = None,
        source_filter:  Optional[SourceFilter]      = None,
        sinks:          Iterable[Sink]              = (),
        interval_sec:   float                       = 5.0,
        otp_enabled:    bool                        = True,
    ):
        """
        source: anything with fetch(since_ms, cancel=None) -> str
                (see smswatch.sources.adb.SmsContentSource).
        """
        self.source        = source
        self.classifier    = classifier or MessageClassifier()
        self.tracker       = tracker or DedupTracker()
        self.source_filter = source_filter or SourceFilter()
        self.sinks:        List[Sink] = list(sinks)
        self.interval_sec  = interval_sec
        self.otp_enabled   = otp_enabled
        self.state         = PRIMING

    # ── CYCLES ───────────────────────────────────────────────

    def prime(self, cancel: Optional[threading.Event] = None) -> int:
        """
        Initial fetch from timestamp 0. Seeds seen ids and watermark.
        Raises SourceError on failure and stays in PRIMING.
        """
        records = parse_dump(self.source.fetch(0, cancel=cancel))
        count   = self.tracker.prime(records)
        self.state = POLLING
        logger.info(f"Loaded {count} existing messages. Monitoring for new SMS...")
        return count

    def run_cycle(self, cancel: Optional[threading.Event] = None) -> List[WatchResult]:
        """
        One polling cycle. A failed fetch yields nothing and leaves the dedup
        state untouched; SourceCancelled propagates.
        """
        since = self.tracker.query_since()
        try:
            raw = self.source.fetch(since, cancel=cancel)
        except SourceError as e:
            logger.error(f"Error reading SMS: {e}")
            return []

        fresh = self.tracker.absorb(parse_dump(raw))
        if fresh:
            logger.debug(f"{len(fresh)} new message(s) since {since}")

        results: List[WatchResult] = []
        for rec in fresh:
            result = self.process(rec)
            if result is None:
                continue
            results.append(result)
            self._emit(result)
        return results

    def process(self, record: MessageRecord) -> Optional[WatchResult]:
        """Filter, extract and classify one record. None if the filter drops it."""
        include, label = self.source_filter.evaluate(record.address)
        if not include:
            logger.debug(f"Filtered out message {record.id} from {record.address}")
            return None

        otp = extract_otp(record) if self.otp_enabled else None
        classification = self.classifier.classify(record.body, record.address, otp)
        return WatchResult(record=record, otp=otp, classification=classification, label=label)

    # ── LOOP ─────────────────────────────────────────────────

    def run(self, stop: threading.Event) -> None:
        """Run until stop is set. The wait between cycles doubles as the timer."""
        try:
            while not stop.is_set():
                if self.state == PRIMING:
                    try:
                        self.prime(cancel=stop)
                    except SourceError as e:
                        logger.error(f"Initial load failed, retrying next tick: {e}")
                else:
                    self.run_cycle(cancel=stop)

                if stop.wait(self.interval_sec):
                    break
        except SourceCancelled:
            logger.info("Fetch cancelled.")
        logger.info("Monitoring stopped.")

    def _emit(self, result: WatchResult) -> None:
        for sink in self.sinks:
            try:
                sink(result)
            except Exception:
                # One broken sink must not stop the others or the loop
                logger.exception(f"Sink {sink!r} failed on message {result.record.id}")


def list_messages(loop: PollLoop, limit: int = 50) -> List[WatchResult]:
    """
    One-shot listing of the current store (newest first, as the source sorts).
    Applies the loop's filter and classifier but does not touch its dedup state.
    """
    records = parse_dump(loop.source.fetch(0))
    results: List[WatchResult] = []
    for rec in records:
        if len(results) >= limit:
            break
        result = loop.process(rec)
        if result is not None:
            results.append(result)
    logger.info(f"Found {len(records)} total messages, showing {len(results)} after filters.")
    return results
