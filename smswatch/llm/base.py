"""
smswatch/llm/base.py
Abstract base class for remote classification backends.
To add a new backend: subclass RemoteClassifier and implement
is_configured() and complete().
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from smswatch.models.record import Category, ClassificationResult, OtpCandidate

logger = logging.getLogger(__name__)

CATEGORY_NAMES = {c.value: c for c in Category}


class RemoteClassifier(ABC):
    """
    All remote backends implement this interface.
    The pipeline calls classify() and gets back a ClassificationResult,
    or None when anything went wrong — it never knows which backend runs.
    """

    model: str = ''

    @abstractmethod
    def is_configured(self) -> bool:
        """
        True if the backend is enabled and has what it needs to make a call
        (credentials, host). Checked per message by the escalation gate;
        must not touch the network.
        """
        ...

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Send one prompt, return the model's reply text.
        May raise on transport errors — classify() catches.
        """
        ...

    def classify(
        self,
        body:   str,
        sender: str,
        otp:    Optional[OtpCandidate] = None,
    ) -> Optional[ClassificationResult]:
        """
        Classify a single message remotely.
        Returns None on any failure — caller falls back to the heuristic.
        Never raises.
        """
        try:
            reply = self.complete(self.build_prompt(body, sender, otp))
        except Exception as e:
            logger.warning(f"{type(self).__name__} request failed: {e}")
            return None
        return self.parse_reply(reply)

    def build_prompt(
        self,
        body:   str,
        sender: str,
        otp:    Optional[OtpCandidate] = None,
    ) -> str:
        """Shared prompt builder. The OTP hint is only added when regexes found one."""
        otp_hint = ''
        if otp is not None:
            otp_hint = (
                f"\nRegex already extracted OTP: {otp.code} "
                f"(confidence: {otp.confidence:.0%})"
            )

        return (
            "Classify this SMS. Respond with ONLY a JSON object, no markdown.\n"
            '{"category":"<otp|marketing|personal|financial|delivery|urgent|spam>",'
            '"summary":"<1-line summary in the message\'s language>",'
            '"confidence":<0.0-1.0>,'
            '"otp":"<code or null>"}\n'
            "\n"
            f"From: {sender}{otp_hint}\n"
            f"Message: {body}"
        )

    @staticmethod
    def parse_reply(text: str) -> Optional[ClassificationResult]:
        """
        Parse the model's JSON reply. Tolerates ```json fences and chatter
        around the object by cutting from the first '{' to the last '}'.
        Returns None if the reply is not a JSON object carrying category and confidence.
        """
        clean = (text or '').strip()
        start = clean.find('{')
        end   = clean.rfind('}')
        if start < 0 or end <= start:
            logger.warning("Remote reply contained no JSON object")
            return None

        try:
            data = json.loads(clean[start:end + 1])
            if 'category' not in data or 'confidence' not in data:
                logger.warning("Remote reply is missing category or confidence")
                return None
            category   = CATEGORY_NAMES.get(str(data.get('category', '')).strip().lower(), Category.UNKNOWN)
            summary    = str(data.get('summary') or '')[:500]
            confidence = max(0.0, min(1.0, float(data.get('confidence', 0.0))))
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Could not parse remote reply: {e}")
            return None

        otp_code = data.get('otp')
        detected = None
        if isinstance(otp_code, str) and otp_code.strip() and otp_code.strip().lower() != 'null':
            detected = otp_code.strip()

        return ClassificationResult(
            category     = category,
            summary      = summary,
            confidence   = confidence,
            detected_otp = detected,
            source       = 'remote',
        )
