"""
smswatch/api.py
─────────────────────────────────────────────────────────────────────────────
Read-only status API for a running watcher.

TWO USAGE MODES:
  1. Importable class:
         from smswatch.api import WatchAPI
         api = WatchAPI(loop=loop, feed=feed)
         api.get_status()
         api.get_messages(category="otp", limit=10)

  2. FastAPI HTTP server (started by `smswatch serve`):
         GET /health     — liveness
         GET /status     — state, watermark, seen count, remote classifier on/off
         GET /messages   — recent enriched messages, newest first

The server binds to 127.0.0.1 by default. OTP codes are served in clear —
do not expose it beyond localhost.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from smswatch.models.record import Category, WatchResult
from smswatch.monitor.feed import ResultFeed
from smswatch.monitor.poll_loop import PollLoop

logger = logging.getLogger(__name__)

MAX_MESSAGES_LIMIT = 200


# ── RESPONSE MODELS ─────────────────────────────────────────────────────────

class OtpOut(BaseModel):
    code:          str
    confidence:    float
    pattern_name:  str


class MessageOut(BaseModel):
    id:            int
    address:       str
    body:          str
    timestamp_ms:  int
    date:          str
    direction:     str
    read:          bool
    label:         Optional[str] = None
    category:      str
    summary:       str
    confidence:    float
    classified_by: str
    otp:           Optional[OtpOut] = None
    detected_otp:  Optional[str] = None


class StatusOut(BaseModel):
    state:            str
    watermark_ms:     int
    seen_count:       int
    emitted_total:    int
    buffered:         int
    remote_enabled:   bool
    remote_model:     Optional[str] = None


def result_to_dict(result: WatchResult) -> Dict[str, Any]:
    rec = result.record
    c   = result.classification
    return {
        "id":            rec.id,
        "address":       rec.address,
        "body":          rec.body,
        "timestamp_ms":  rec.timestamp_ms,
        "date":          rec.date.isoformat(),
        "direction":     rec.direction,
        "read":          rec.read,
        "label":         result.label,
        "category":      c.category.value,
        "summary":       c.summary,
        "confidence":    c.confidence,
        "classified_by": c.source,
        "otp": None if result.otp is None else {
            "code":         result.otp.code,
            "confidence":   result.otp.confidence,
            "pattern_name": result.otp.pattern_name,
        },
        "detected_otp":  c.detected_otp,
    }


# ═══════════════════════════════════════════════════════════════════════════
# IMPORTABLE CLASS
# ═══════════════════════════════════════════════════════════════════════════

class WatchAPI:
    """Pure-Python view over a PollLoop and its ResultFeed. No HTTP required."""

    def __init__(self, loop: PollLoop, feed: ResultFeed):
        self.loop = loop
        self.feed = feed

    def get_status(self) -> Dict[str, Any]:
        remote = self.loop.classifier.remote
        enabled = self.loop.classifier.gate.remote_enabled
        return {
            "state":          self.loop.state,
            "watermark_ms":   self.loop.tracker.watermark_ms,
            "seen_count":     len(self.loop.tracker.seen_ids),
            "emitted_total":  self.feed.total,
            "buffered":       len(self.feed),
            "remote_enabled": enabled,
            "remote_model":   remote.model if enabled else None,
        }

    def get_messages(
        self,
        category: Optional[str] = None,
        limit:    int           = 50,
    ) -> List[Dict[str, Any]]:
        """
        Recent messages, newest first.

        Args:
            category: filter by category name — "otp", "spam", ... (case-insensitive)
            limit:    max rows (max enforced: 200)

        Raises ValueError for an unknown category.
        """
        wanted = None
        if category:
            try:
                wanted = Category(category.strip().lower())
            except ValueError:
                raise ValueError(f"Unknown category: {category}") from None
        limit = max(0, min(int(limit), MAX_MESSAGES_LIMIT))
        return [result_to_dict(r) for r in self.feed.recent(limit, wanted)]


# ═══════════════════════════════════════════════════════════════════════════
# FASTAPI HTTP APP
# ═══════════════════════════════════════════════════════════════════════════

def build_app(api: WatchAPI) -> FastAPI:
    app = FastAPI(
        title       = "smswatch",
        description = "Live SMS watcher — recent messages, OTPs and classifications",
        version     = "1.0.0",
        docs_url    = "/docs",
        redoc_url   = None,
    )

    @app.get("/health", summary="Liveness check")
    def health():
        return {"status": "ok"}

    @app.get("/status", response_model=StatusOut, summary="Watcher state")
    def status():
        return api.get_status()

    @app.get("/messages", response_model=List[MessageOut], summary="Recent messages")
    def messages(
        category: Optional[str] = Query(None, description="otp, marketing, personal, financial, delivery, urgent, spam, unknown"),
        limit:    int           = Query(50, ge=1, le=MAX_MESSAGES_LIMIT),
    ):
        try:
            return api.get_messages(category=category, limit=limit)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

    return app
