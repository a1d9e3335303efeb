"""
smswatch/parsers/dump_parser.py
Parses the text dump produced by `content query --uri content://sms`.

Format (one record per `Row:` line, body may spill onto following lines):
  Row: 0 _id=123, address=+15550001, date=1708617600000, read=1, type=1, body=Hello
  second line of the same body
  Row: 1 _id=122, ...

Pure function, no I/O. Malformed rows are dropped, never raised.
"""

import logging
import re
from typing import Dict, List, Optional

from smswatch.models.record import MessageRecord

logger = logging.getLogger(__name__)

ROW_MARKER = 'Row:'

REQUIRED_FIELDS = ('_id', 'address', 'date', 'body')

# A field key only counts at the start of the line or after whitespace,
# so "address=" inside a value like "x_address=" is not a field boundary.
_FIELD_RE = re.compile(r'(?:(?<=\s)|^)(_id|address|date|read|type|body)=')


def parse_dump(raw: str) -> List[MessageRecord]:
    """
    Parse a raw dump into records, in order of appearance.
    Returns an empty list for empty or whitespace-only input.
    """
    if not raw or not raw.strip():
        return []

    records: List[MessageRecord] = []
    current: Optional[Dict[str, str]] = None
    extra:   List[str] = []

    for line in raw.split('\n'):
        line = line.rstrip('\r')

        if line.startswith(ROW_MARKER):
            _flush(current, extra, records)
            current = _split_fields(line)
            extra   = []
        elif current is not None and line.strip():
            extra.append(line)

    _flush(current, extra, records)
    return records


def _flush(fields: Optional[Dict[str, str]], extra: List[str], out: List[MessageRecord]) -> None:
    if fields is None:
        return
    rec = _build_record(fields, extra)
    if rec is not None:
        out.append(rec)


def _split_fields(line: str) -> Dict[str, str]:
    """Map field name → raw value. Everything after `body=` is the body."""
    fields: Dict[str, str] = {}
    matches = list(_FIELD_RE.finditer(line))

    for i, m in enumerate(matches):
        key = m.group(1)
        if key == 'body':
            fields['body'] = line[m.end():]
            break
        end = matches[i + 1].start() if i + 1 < len(matches) else len(line)
        fields.setdefault(key, _clean(line[m.end():end]))

    return fields


def _build_record(fields: Dict[str, str], extra: List[str]) -> Optional[MessageRecord]:
    missing = [f for f in REQUIRED_FIELDS if f not in fields]
    if missing:
        logger.debug(f"Dropped row missing {', '.join(missing)}")
        return None

    body = fields['body']
    if extra:
        body = '\n'.join([body] + extra)

    return MessageRecord(
        id           = _to_int(fields['_id']),
        address      = fields['address'],
        body         = body,
        timestamp_ms = _to_int(fields['date']),
        msg_type     = _to_int(fields.get('type', '1')),
        read         = _to_int(fields.get('read', '0')) == 1,
    )


def _clean(value: str) -> str:
    return value.strip().rstrip(',').rstrip()


def _to_int(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
