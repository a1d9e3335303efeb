"""
smswatch/detectors/otp_extractor.py
Regex OTP extraction — pure Python, offline, no state.

OTP_PATTERNS is tried strictly in order and the FIRST pattern that matches
wins, even when a later pattern has a higher base confidence. The base
confidence is then adjusted by a few message-level signals and clamped.
Labels and keywords cover English and Hebrew.
"""

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from smswatch.models.record import MessageRecord, OtpCandidate


@dataclass(frozen=True)
class OtpPattern:
    name:             str
    regex:            Pattern
    base_confidence:  float


_LABEL  = r'(?:OTP|otp|code|Code|CODE|PIN|pin|passcode|קוד|סיסמה)[:\s-]*(?:is[:\s]+)?'
_LETTER = r'[^\W\d_]'   # any Unicode letter

# ── PATTERN TABLE (priority order) ───────────────────────────

OTP_PATTERNS: Tuple[OtpPattern, ...] = tuple(
    OtpPattern(name, re.compile(pattern), confidence)
    for name, pattern, confidence in (
        # "Your OTP code is 482913", "PIN: 1234", "קוד 123456"
        ('Labeled OTP 6-digit',   _LABEL + r'(\d{6})\b',                       0.95),
        ('Labeled OTP 4-digit',   _LABEL + r'(\d{4})\b',                       0.90),
        ('Labeled OTP 8-digit',   _LABEL + r'(\d{8})\b',                       0.90),

        # "קוד האימות לגוביזיט 1928"
        ('Hebrew OTP 6-digit',    r'קוד(?:\s|' + _LETTER + r')*\s(\d{6})\b',   0.90),
        ('Hebrew OTP 4-digit',    r'קוד(?:\s|' + _LETTER + r')*\s(\d{4})\b',   0.85),

        # "Your verification number is 123456"
        ('Is-pattern 6-digit',    r'\bis\s+(\d{6})\b',                         0.85),
        ('Is-pattern 4-digit',    r'\bis\s+(\d{4})\b',                         0.80),

        # "482913 is your login key", "Use 4829 as your PIN"
        ('Postfix label 6-digit', r'\b(\d{6})\s+(?:is your|as your)',          0.85),
        ('Postfix label 4-digit', r'\b(\d{4})\s+(?:is your|as your)',          0.80),

        # "Code: A1B2C3"
        ('Alphanumeric 6-char',   r'(?:code|Code|OTP)[:\s-]*([A-Z0-9]{6})\b',  0.75),

        # Any 6-digit run, no label at all
        ('Standalone 6-digit',    r'\b(\d{6})\b',                              0.50),
    )
)

# ── CONFIDENCE ADJUSTMENTS ───────────────────────────────────

VERIFICATION_KEYWORDS = re.compile(
    r'verif|authent|confirm|login|sign.in|2fa|two.factor|אימות|אישור',
    re.IGNORECASE,
)
PHONE_NUMBER = re.compile(r'\+?\d+')

KEYWORD_BOOST     = 0.10
SHORT_BODY_BOOST  = 0.05
SERVICE_BOOST     = 0.05
LONG_BODY_PENALTY = 0.15

SHORT_BODY_LEN = 160
LONG_BODY_LEN  = 300

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0


def extract_otp(record: MessageRecord) -> Optional[OtpCandidate]:
    """Return the first-matching OTP candidate for one message, or None."""
    body = record.body or ''

    for pattern in OTP_PATTERNS:
        match = pattern.regex.search(body)
        if not match:
            continue
        return OtpCandidate(
            record_id    = record.id,
            code         = match.group(1),
            confidence   = adjust_confidence(pattern.base_confidence, body, record.address),
            pattern_name = pattern.name,
        )

    return None


def adjust_confidence(base: float, body: str, sender: str) -> float:
    """Apply the additive boosts/penalty, then clamp once to [0.1, 1.0]."""
    confidence = base

    if VERIFICATION_KEYWORDS.search(body):
        confidence += KEYWORD_BOOST
    if len(body) < SHORT_BODY_LEN:
        confidence += SHORT_BODY_BOOST
    if not PHONE_NUMBER.fullmatch(sender or ''):
        # Named sender ("BANK", "Google") rather than a phone number
        confidence += SERVICE_BOOST
    if len(body) > LONG_BODY_LEN:
        confidence -= LONG_BODY_PENALTY

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))
