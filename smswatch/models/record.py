"""
smswatch/models/record.py
Shared dataclass schema. Parser, detectors, classifiers and the poll loop
all exchange these types. Do not add logic here — data only.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


DIRECTION_LABELS = {
    1: 'Received',
    2: 'Sent',
}


@dataclass(frozen=True)
class MessageRecord:
    """One SMS row from the device message store. Immutable once parsed."""
    id:            int
    address:       str
    body:          str
    timestamp_ms:  int
    msg_type:      int = 1      # 1 = received, 2 = sent
    read:          bool = False

    @property
    def direction(self) -> str:
        return DIRECTION_LABELS.get(self.msg_type, f'Type({self.msg_type})')

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)

    @property
    def date_str(self) -> str:
        try:
            return self.date.astimezone().strftime('%Y-%m-%d %H:%M:%S')
        except (OSError, OverflowError, ValueError):
            return 'INVALID_DATE'


@dataclass(frozen=True)
class OtpCandidate:
    """Best OTP match for one message. record_id is a back-reference only."""
    record_id:     int
    code:          str
    confidence:    float        # 0.1 – 1.0
    pattern_name:  str


class Category(str, Enum):
    UNKNOWN   = 'unknown'
    OTP       = 'otp'
    MARKETING = 'marketing'
    PERSONAL  = 'personal'
    FINANCIAL = 'financial'
    DELIVERY  = 'delivery'
    URGENT    = 'urgent'
    SPAM      = 'spam'


@dataclass(frozen=True)
class ClassificationResult:
    category:      Category
    summary:       str
    confidence:    float                    # 0.0 – 1.0
    detected_otp:  Optional[str] = None     # set only when the remote model found a code the regexes missed
    source:        str = 'heuristic'        # heuristic / remote / fallback


@dataclass(frozen=True)
class WatchResult:
    """Enriched message handed to the display collaborator."""
    record:          MessageRecord
    otp:             Optional[OtpCandidate]
    classification:  ClassificationResult
    label:           Optional[str] = None   # source-filter display label

    @property
    def otp_code(self) -> Optional[str]:
        if self.otp is not None:
            return self.otp.code
        return self.classification.detected_otp
