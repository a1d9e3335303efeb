"""
smswatch/filtering/source_filter.py
Sender-based inclusion filter with optional display labels.

Modes:   None (everything passes) / Include (only listed senders) / Exclude
Matches: Exact and Contains are case-insensitive; Regex uses re.IGNORECASE.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from smswatch.errors import ConfigError

logger = logging.getLogger(__name__)

FILTER_MODES = ('none', 'include', 'exclude')
MATCH_TYPES  = ('exact', 'contains', 'regex')


@dataclass(frozen=True)
class SourceEntry:
    value:       str
    match_type:  str = 'Exact'
    label:       str = ''

    def matches(self, address: str) -> bool:
        kind = self.match_type.lower()
        if kind == 'exact':
            return address.lower() == self.value.lower()
        if kind == 'contains':
            return self.value.lower() in address.lower()
        if kind == 'regex':
            return re.search(self.value, address, re.IGNORECASE) is not None
        return False


class SourceFilter:

    def __init__(self, mode: str = 'None', sources: Iterable[SourceEntry] = ()):
        if mode.lower() not in FILTER_MODES:
            raise ConfigError(f"Unknown filter mode: {mode!r} (expected None, Include or Exclude)")
        self.mode    = mode
        self.sources: List[SourceEntry] = list(sources)
        for s in self.sources:
            if s.match_type.lower() not in MATCH_TYPES:
                raise ConfigError(f"Unknown match type {s.match_type!r} for source {s.value!r}")
            if s.match_type.lower() == 'regex':
                try:
                    re.compile(s.value)
                except re.error as e:
                    raise ConfigError(f"Bad regex for source {s.value!r}: {e}") from e

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> 'SourceFilter':
        entries = [
            SourceEntry(
                value      = str(s.get('value', '')),
                match_type = str(s.get('match_type', 'Exact')),
                label      = str(s.get('label', '')),
            )
            for s in section.get('sources', [])
        ]
        return cls(mode=str(section.get('mode', 'None')), sources=entries)

    def evaluate(self, address: str) -> Tuple[bool, Optional[str]]:
        """Return (include, label) for a sender address."""
        hit = next((s for s in self.sources if s.matches(address or '')), None)
        label = (hit.label or None) if hit is not None else None

        mode = self.mode.lower()
        if mode == 'none':
            return True, label
        if mode == 'include':
            return hit is not None, label
        return hit is None, label
