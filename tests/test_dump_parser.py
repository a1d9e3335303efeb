"""
tests/test_dump_parser.py
Unit tests for the content-query dump parser.
Synthetic dumps only — no real messages needed.
"""

from datetime import datetime, timezone

from smswatch.parsers.dump_parser import parse_dump


# ── FIXTURES ─────────────────────────────────────────────────

SAMPLE_DUMP = (
    "Row: 0 _id=3, address=BANK, date=1700000300000, read=0, type=1, body=Your OTP code is 482913\n"
    "Row: 1 _id=2, address=+15550002, date=1700000200000, read=1, type=2, body=On my way\n"
    "Row: 2 _id=1, address=+15550001, date=1700000000000, read=1, type=1, body=Dinner at 8?\n"
)


def _row(n, rid, address='+15550001', date=1700000000000, body='Hello', read=1, msg_type=1):
    return f"Row: {n} _id={rid}, address={address}, date={date}, read={read}, type={msg_type}, body={body}"


# ── TESTS ────────────────────────────────────────────────────

class TestParseDump:

    def test_returns_all_rows_in_input_order(self):
        records = parse_dump(SAMPLE_DUMP)
        assert [r.id for r in records] == [3, 2, 1]

    def test_fields_match_source_values(self):
        rec = parse_dump(SAMPLE_DUMP)[1]
        assert rec.address      == '+15550002'
        assert rec.body         == 'On my way'
        assert rec.timestamp_ms == 1700000200000
        assert rec.read is True
        assert rec.msg_type     == 2
        assert rec.direction    == 'Sent'

    def test_timestamp_converted_from_epoch_ms(self):
        rec = parse_dump(SAMPLE_DUMP)[2]
        assert rec.date == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_empty_input_returns_empty(self):
        assert parse_dump('') == []
        assert parse_dump('   \n\n') == []

    def test_crlf_line_endings(self):
        records = parse_dump(SAMPLE_DUMP.replace('\n', '\r\n'))
        assert len(records) == 3
        assert records[1].body == 'On my way'


class TestMalformedRows:

    def test_row_missing_address_is_dropped(self):
        dump = '\n'.join([
            _row(0, 4),
            "Row: 1 _id=3, date=1700000000000, read=1, type=1, body=no sender",
            _row(2, 2),
            _row(3, 1),
        ])
        records = parse_dump(dump)
        assert [r.id for r in records] == [4, 2, 1]

    def test_row_missing_body_is_dropped(self):
        dump = "Row: 0 _id=1, address=A, date=1700000000000, read=1, type=1\n" + _row(1, 2)
        assert [r.id for r in parse_dump(dump)] == [2]

    def test_unparseable_numbers_default_to_zero(self):
        dump = "Row: 0 _id=7, address=A, date=yesterday, read=x, type=?, body=hi"
        rec = parse_dump(dump)[0]
        assert rec.timestamp_ms == 0
        assert rec.read is False
        assert rec.msg_type == 0

    def test_optional_fields_default(self):
        dump = "Row: 0 _id=7, address=A, date=1700000000000, body=hi"
        rec = parse_dump(dump)[0]
        assert rec.read is False
        assert rec.msg_type == 1
        assert rec.direction == 'Received'

    def test_values_trimmed_of_trailing_commas(self):
        dump = "Row: 0 _id=7 , address= BANK,, date=1700000000000, read=1, type=1, body=hi"
        rec = parse_dump(dump)[0]
        assert rec.id == 7
        assert rec.address == 'BANK'

    def test_garbage_before_first_row_ignored(self):
        dump = "adb: some banner\n" + _row(0, 1, body='first')
        records = parse_dump(dump)
        assert len(records) == 1
        assert records[0].body == 'first'

    def test_continuation_of_dropped_row_discarded(self):
        dump = '\n'.join([
            "Row: 0 _id=1, date=5, body=orphan",
            "tail of orphan",
            _row(1, 2, body='kept'),
        ])
        records = parse_dump(dump)
        assert len(records) == 1
        assert records[0].body == 'kept'


class TestBodyContinuation:

    def test_two_continuation_lines_joined(self):
        dump = '\n'.join([
            _row(0, 2, body='line one'),
            'line two',
            'line three',
            _row(1, 1, body='next'),
        ])
        records = parse_dump(dump)
        assert records[0].body == 'line one\nline two\nline three'
        assert records[1].body == 'next'

    def test_blank_lines_not_appended(self):
        dump = _row(0, 1, body='top') + '\n\n   \nbottom\n'
        assert parse_dump(dump)[0].body == 'top\nbottom'

    def test_field_markers_inside_body_are_text(self):
        dump = _row(0, 1, msg_type=1, body='set type=2, read=0 now')
        rec = parse_dump(dump)[0]
        assert rec.body == 'set type=2, read=0 now'
        assert rec.msg_type == 1
        assert rec.read is True

    def test_body_with_commas_kept_whole(self):
        dump = _row(0, 1, body='Hi, are you there, Sam?')
        assert parse_dump(dump)[0].body == 'Hi, are you there, Sam?'

    def test_unicode_body(self):
        dump = _row(0, 1, address='GOV', body='קוד האימות שלך 1928')
        assert parse_dump(dump)[0].body == 'קוד האימות שלך 1928'
