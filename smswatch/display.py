"""
smswatch/display.py
Console output for watched messages. ANSI colours, plain print().
"""

import sys
from typing import List, Optional, TextIO

from smswatch.models.record import Category, OtpCandidate, WatchResult

GREEN  = '\033[92m'
YELLOW = '\033[93m'
RED    = '\033[91m'
BLUE   = '\033[94m'
CYAN   = '\033[96m'
PURPLE = '\033[95m'
GREY   = '\033[90m'
RESET  = '\033[0m'
BOLD   = '\033[1m'

CATEGORY_COLORS = {
    Category.OTP:       GREEN,
    Category.SPAM:      RED,
    Category.MARKETING: YELLOW,
    Category.PERSONAL:  BLUE,
    Category.DELIVERY:  CYAN,
    Category.FINANCIAL: PURPLE,
    Category.URGENT:    BOLD + RED,
}


def otp_color(confidence: float) -> str:
    if confidence >= 0.8:
        return GREEN
    if confidence >= 0.6:
        return YELLOW
    return GREY


class ConsoleDisplay:
    """Sink for PollLoop: prints one block per message."""

    def __init__(self, highlight_threshold: float = 0.7, stream: Optional[TextIO] = None):
        self.highlight_threshold = highlight_threshold
        self.stream = stream or sys.stdout

    def __call__(self, result: WatchResult) -> None:
        self.show(result)

    def show(self, result: WatchResult) -> None:
        for line in self.render(result):
            self._print(line)
        self.stream.flush()

    def render(self, result: WatchResult) -> List[str]:
        rec = result.record
        source = f" {CYAN}({result.label}){RESET}" if result.label else ''
        border = YELLOW if rec.msg_type == 2 else GREEN
        direction = 'SENT' if rec.msg_type == 2 else 'RECEIVED'

        lines = [
            f"{GREY}{rec.date_str}{RESET}  {BLUE}{rec.address}{RESET}{source}",
            f"{border}── {direction} ──{RESET}",
        ]
        lines += [f"  {line}" for line in rec.body.split('\n')]

        c = result.classification
        if c.category != Category.UNKNOWN:
            color   = CATEGORY_COLORS.get(c.category, GREY)
            summary = f" {c.summary}" if c.summary else ''
            lines.append(f"  {color}[{c.category.value.upper()}]{summary} ({c.confidence:.0%}){RESET}")

        if result.otp is not None:
            lines.append(self._otp_line(result.otp))
        elif c.detected_otp:
            lines.append(f"  {GREEN}>>> OTP (LLM): {c.detected_otp}{RESET}")

        lines.append('')
        return lines

    def _otp_line(self, otp: OtpCandidate) -> str:
        weight = BOLD if otp.confidence >= self.highlight_threshold else ''
        return (
            f"  {weight}{otp_color(otp.confidence)}>>> OTP: {otp.code}  "
            f"(confidence: {otp.confidence:.0%}, {otp.pattern_name}){RESET}"
        )

    def _print(self, msg: str) -> None:
        print(msg, file=self.stream)


def render_table(results: List[WatchResult]) -> List[str]:
    """Compact one-line-per-message listing for `smswatch list`."""
    lines = [f"{BOLD}{'Time':<12} {'From':<20} {'Category':<10} {'OTP':<10} Message{RESET}"]
    for r in results:
        body = r.record.body.replace('\n', ' ')
        if len(body) > 100:
            body = body[:100] + '...'
        category = r.classification.category
        cat = '—' if category == Category.UNKNOWN else category.value
        code = r.otp_code or ''
        lines.append(
            f"{GREY}{r.record.date_str[5:16]:<12}{RESET} "
            f"{BLUE}{r.record.address[:20]:<20}{RESET} "
            f"{CATEGORY_COLORS.get(category, GREY)}{cat:<10}{RESET} "
            f"{GREEN}{code:<10}{RESET} {body}"
        )
    return lines
