"""
Unit tests for services.reader module.

Tests:
- name_key() normalization, empty names and truncation warnings
- build_filter() scoping
- fetch_events() ordering and name isolation
"""

import logging

import pytest

from dwebns.codecs import encode_key
from dwebns.core.logger import Logger
from dwebns.exceptions import InvalidValueError, TransportError
from dwebns.models import EventPosition, RecordType
from dwebns.services.reader import EventLogReader, name_key


class TestNameKey:
    """name_key()."""

    def test_normalizes(self):
        assert name_key("  Alice ") == encode_key("alice")

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_rejected(self, name):
        with pytest.raises(InvalidValueError, match="empty"):
            name_key(name)

    def test_truncation_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            key = name_key("n" * 40, Logger("test.reader"))
        assert key == b"n" * 32
        assert any(r.getMessage() == "key_truncated" for r in caplog.records)


class TestBuildFilter:
    """build_filter()."""

    def test_scopes_to_one_name(self, ledger):
        record_filter = EventLogReader(ledger).build_filter("Alice", from_block=2, to_block=5)
        assert record_filter.name == encode_key("alice")
        assert (record_filter.from_block, record_filter.to_block) == (2, 5)


class TestFetchEvents:
    """fetch_events()."""

    async def test_unknown_name_is_empty(self, ledger):
        assert await EventLogReader(ledger).fetch_events("nobody") == []

    async def test_sorted_by_position(self, ledger):
        ledger.append("alice", RecordType.TXT, data=b"a", block=3)
        ledger.append("alice", RecordType.TXT, data=b"b", block=1)
        ledger.append("alice", RecordType.TXT, data=b"c", block=3)
        ledger.append("alice", RecordType.TXT, data=b"d", block=2)

        events = await EventLogReader(ledger).fetch_events("alice")

        assert [e.position for e in events] == [
            EventPosition(1, 0),
            EventPosition(2, 0),
            EventPosition(3, 0),
            EventPosition(3, 1),
        ]
        assert [e.data for e in events] == [b"b", b"d", b"a", b"c"]

    async def test_other_names_excluded(self, ledger):
        ledger.append("alice", RecordType.TXT, data=b"mine")
        ledger.append("bob", RecordType.TXT, data=b"theirs")
        ledger.append("alicex", RecordType.TXT, data=b"prefix")

        events = await EventLogReader(ledger).fetch_events("ALICE")

        assert [e.data for e in events] == [b"mine"]

    async def test_block_range(self, ledger):
        for value in (b"1", b"2", b"3"):
            ledger.append("alice", RecordType.TXT, data=value)

        events = await EventLogReader(ledger).fetch_events("alice", from_block=2, to_block=2)

        assert [e.data for e in events] == [b"2"]

    async def test_transport_error_propagates(self, ledger):
        ledger.read_errors.append(TransportError("down"))
        with pytest.raises(TransportError):
            await EventLogReader(ledger).fetch_events("alice")

    async def test_empty_name_never_queries(self, ledger):
        with pytest.raises(InvalidValueError):
            await EventLogReader(ledger).fetch_events(" ")
        assert ledger.calls_to("get_logs") == []
