"""
smswatch/detectors/classifier.py
Two-tier classification: local heuristic, optionally escalated to a remote
model. The gate keeps remote calls (and their cost) to messages where the
heuristic is likely to be weak.
"""

import logging
from dataclasses import replace
from typing import Optional

from smswatch.detectors.keyword_classifier import classify_heuristic
from smswatch.llm.base import RemoteClassifier
from smswatch.models.record import ClassificationResult, OtpCandidate

logger = logging.getLogger(__name__)

SKIP_REMOTE_OTP_CONFIDENCE = 0.9
MIN_REMOTE_BODY_LEN        = 10


class ClassificationGate:
    """Decides per message whether the remote classifier is worth a call."""

    def __init__(self, remote: Optional[RemoteClassifier] = None):
        self.remote = remote

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None and self.remote.is_configured()

    def should_escalate(self, body: str, otp: Optional[OtpCandidate] = None) -> bool:
        if not self.remote_enabled:
            return False
        # A confident regex OTP needs no semantic help
        if otp is not None and otp.confidence >= SKIP_REMOTE_OTP_CONFIDENCE:
            return False
        if len(body or '') < MIN_REMOTE_BODY_LEN:
            return False
        return True


class MessageClassifier:
    """
    classify(body, sender, otp) -> ClassificationResult.
    Uses the remote backend when the gate allows; on any remote failure
    falls back to the heuristic on the same inputs. Never raises, never retries.
    """

    def __init__(self, remote: Optional[RemoteClassifier] = None):
        self.gate = ClassificationGate(remote)

    @property
    def remote(self) -> Optional[RemoteClassifier]:
        return self.gate.remote

    def classify(
        self,
        body:   str,
        sender: str,
        otp:    Optional[OtpCandidate] = None,
    ) -> ClassificationResult:
        if not self.gate.should_escalate(body, otp):
            return classify_heuristic(body, otp)

        try:
            result = self.remote.classify(body, sender, otp)
        except Exception as e:
            logger.warning(f"Remote classifier raised, using heuristic: {e}")
            result = None

        if result is None:
            logger.info("Remote classification failed — heuristic fallback.")
            return replace(classify_heuristic(body, otp), source='fallback')

        return result
