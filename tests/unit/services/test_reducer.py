"""
Unit tests for services.reducer module.

Tests:
- Last-writer-wins per (record_type, label)
- Tombstones present with an empty value
- Key independence and determinism
- Malformed labels and values
- Injected codec registries
"""

import random

from dwebns.codecs import CodecRegistry, encode_key
from dwebns.codecs.values import TextCodec
from dwebns.models import ChangeEvent, EventPosition, RecordKey, RecordState, RecordType
from dwebns.services.reducer import RecordReducer, reduce


NAME = encode_key("alice")


def event(
    record_type: int,
    data: bytes,
    label: str | bytes = "",
    block: int = 1,
    log_index: int = 0,
) -> ChangeEvent:
    return ChangeEvent(
        name=NAME,
        label=label if isinstance(label, bytes) else encode_key(label),
        record_type=record_type,
        data=data,
        position=EventPosition(block, log_index),
    )


class TestLastWriterWins:
    """Fold semantics."""

    def test_empty_sequence(self):
        assert reduce([]) == RecordState()

    def test_last_event_wins(self, registry):
        state = reduce(
            [
                event(RecordType.IPFS_CID, b"v1", "blog", block=1),
                event(RecordType.IPFS_CID, b"v2", "blog", block=2),
            ],
            registry,
        )
        assert state.value(RecordType.IPFS_CID, "blog") == "v2"
        assert len(state) == 1

    def test_entry_keeps_winning_position(self, registry):
        state = reduce(
            [
                event(RecordType.TXT, b"a", block=4, log_index=1),
                event(RecordType.TXT, b"b", block=4, log_index=2),
            ],
            registry,
        )
        entry = state.entry(RecordType.TXT)
        assert entry.position == EventPosition(4, 2)
        assert entry.raw == b"b"

    def test_keys_are_independent(self, registry):
        state = reduce(
            [
                event(RecordType.IPFS_CID, b"root"),
                event(RecordType.IPFS_CID, b"blog", "blog"),
                event(RecordType.TXT, b"hello"),
                event(RecordType.IPFS_CID, b"root2", block=2),
            ],
            registry,
        )
        assert state.value(RecordType.IPFS_CID) == "root2"
        assert state.value(RecordType.IPFS_CID, "blog") == "blog"
        assert state.value(RecordType.TXT) == "hello"

    def test_labels_are_case_sensitive(self, registry):
        state = reduce(
            [event(RecordType.TXT, b"lower", "blog"), event(RecordType.TXT, b"upper", "Blog")],
            registry,
        )
        assert set(state) == {RecordKey(RecordType.TXT, "blog"), RecordKey(RecordType.TXT, "Blog")}


class TestTombstones:
    """Empty data clears a key."""

    def test_tombstone_present_with_empty_value(self, registry):
        state = reduce(
            [event(RecordType.TXT, b"hello", block=1), event(RecordType.TXT, b"", block=2)],
            registry,
        )
        assert RecordKey(RecordType.TXT, "") in state
        assert state.value(RecordType.TXT) == ""
        assert state.entry(RecordType.TXT).is_tombstone
        assert state.live() == []

    def test_write_after_tombstone(self, registry):
        state = reduce(
            [
                event(RecordType.TXT, b"a", block=1),
                event(RecordType.TXT, b"", block=2),
                event(RecordType.TXT, b"b", block=3),
            ],
            registry,
        )
        assert state.value(RecordType.TXT) == "b"

    def test_tombstone_of_address_type(self, registry):
        state = reduce([event(RecordType.ETH_ADDRESS, b"")], registry)
        entry = state.entry(RecordType.ETH_ADDRESS)
        assert entry.value == ""
        assert entry.malformed is False


class TestDeterminism:
    """Same events, same state."""

    def test_repeatable(self, registry):
        events = [event(RecordType.TXT, bytes([65 + i]), block=i + 1) for i in range(10)]
        assert reduce(events, registry) == reduce(events, registry)

    def test_sorted_input_independent_of_fetch_order(self, registry):
        events = [
            event(RecordType.TXT, bytes([65 + i]), str(i % 3), block=i // 2 + 1, log_index=i % 2)
            for i in range(12)
        ]
        shuffled = list(events)
        random.Random(7).shuffle(shuffled)
        assert reduce(sorted(shuffled, key=lambda e: e.position), registry) == reduce(
            events, registry
        )


class TestDecoding:
    """Values and labels decoded through the registry."""

    def test_address_decoded_checksummed(self, registry, address):
        data = registry.encode(RecordType.ETH_ADDRESS, address.lower())
        state = reduce([event(RecordType.ETH_ADDRESS, data)], registry)
        assert state.value(RecordType.ETH_ADDRESS) == address

    def test_malformed_value_flagged_as_hex(self, registry):
        state = reduce([event(RecordType.ETH_ADDRESS, b"\x01\x02")], registry)
        entry = state.entry(RecordType.ETH_ADDRESS)
        assert entry.value == "0x0102"
        assert entry.malformed is True
        assert entry.raw == b"\x01\x02"

    def test_malformed_label_placeholder(self, registry):
        bad_label = b"\xff\xfe" + bytes(30)
        state = reduce([event(RecordType.TXT, b"x", bad_label)], registry)
        assert state.value(RecordType.TXT, "0xfffe") == "x"

    def test_malformed_event_does_not_abort(self, registry):
        state = reduce(
            [
                event(RecordType.ETH_ADDRESS, b"\x00"),
                event(RecordType.TXT, b"\xff", b"\xff" + bytes(31)),
                event(RecordType.IPFS_CID, b"QmTestCID123", "blog"),
            ],
            registry,
        )
        assert len(state) == 3
        assert state.value(RecordType.IPFS_CID, "blog") == "QmTestCID123"

    def test_unknown_type_as_text(self, registry):
        state = reduce([event(0xFFC5, b"future")], registry)
        assert state.value(0xFFC5) == "future"

    def test_unassigned_address_band_tag_as_text(self, registry):
        state = reduce([event(0xFF10, b"hello")], registry)
        entry = state.entry(0xFF10)
        assert entry.value == "hello"
        assert entry.malformed is False

    def test_label_with_interior_zero_byte(self, registry):
        state = reduce([event(RecordType.TXT, b"x", b"a\x00b" + bytes(29))], registry)
        assert state.value(RecordType.TXT, "a\x00b") == "x"

    def test_injected_registry(self):
        registry = CodecRegistry(fallback=TextCodec())
        reducer = RecordReducer(registry)
        assert reducer.registry is registry
        # Without per-type address codecs, address types decode as text.
        state = reducer.reduce([event(RecordType.ETH_ADDRESS, b"plain")])
        assert state.value(RecordType.ETH_ADDRESS) == "plain"

    def test_default_registry(self):
        assert RecordReducer().registry is not None
