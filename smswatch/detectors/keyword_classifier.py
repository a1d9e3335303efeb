"""
smswatch/detectors/keyword_classifier.py
Local heuristic classifier — pure Python, zero dependencies, fully offline.
Always available; also the fallback whenever remote classification fails.
"""

from typing import Optional, Tuple

from smswatch.models.record import Category, ClassificationResult, OtpCandidate

# ── KEYWORD TABLE ────────────────────────────────────────────
# Checked top to bottom, first category with any hit wins.
# Hebrew entries are matched against the original body as well, since
# lower-casing does nothing for scripts without case.

KEYWORD_RULES: Tuple[Tuple[Category, str, Tuple[str, ...]], ...] = (
    (Category.SPAM,      'Suspected spam', (
        'winner', 'won', 'lottery', 'claim your', 'free money', 'זכית',
    )),
    (Category.URGENT,    'Urgent message', (
        'urgent', 'immediate', 'alert', 'warning', 'דחוף', 'אזהרה',
    )),
    (Category.FINANCIAL, 'Financial notification', (
        'transaction', 'debited', 'credited', 'payment', 'balance',
        'עסקה', 'תשלום', 'חיוב',
    )),
    (Category.DELIVERY,  'Delivery update', (
        'shipped', 'delivered', 'tracking', 'package', 'courier',
        'משלוח', 'חבילה',
    )),
    (Category.MARKETING, 'Marketing message', (
        'sale', 'offer', 'discount', 'unsubscribe', 'promo', 'deal', 'coupon',
        'הנחה', 'מבצע',
    )),
)

OTP_SHORT_CIRCUIT = 0.7
KEYWORD_CONFIDENCE = 0.6
UNKNOWN_CONFIDENCE = 0.3


def classify_heuristic(body: str, otp: Optional[OtpCandidate] = None) -> ClassificationResult:
    """
    Classify a message body. A confident regex OTP (>= 0.7) decides the
    category outright; otherwise the first matching keyword rule wins.
    """
    if otp is not None and otp.confidence >= OTP_SHORT_CIRCUIT:
        return ClassificationResult(
            category   = Category.OTP,
            summary    = f"OTP code: {otp.code}",
            confidence = otp.confidence,
        )

    body  = body or ''
    lower = body.lower()

    for category, summary, keywords in KEYWORD_RULES:
        if _matches_any(lower, body, keywords):
            return ClassificationResult(category, summary, KEYWORD_CONFIDENCE)

    return ClassificationResult(Category.UNKNOWN, '', UNKNOWN_CONFIDENCE)


def _matches_any(lower: str, original: str, keywords: Tuple[str, ...]) -> bool:
    return any(kw in lower or kw in original for kw in keywords)
