"""
Derived record state for a single name.

[RecordState][dwebns.models.record.RecordState] is the read-only result of
folding a name's [ChangeEvent][dwebns.models.event.ChangeEvent] sequence. It
is never persisted: it can always be rebuilt from the log, so what a caller
displays can never drift from the ledger.

See Also:
    [dwebns.services.reducer][]: Produces these states.
    [dwebns.services.submitter][]: Produces
        [CommitHandle][dwebns.models.record.CommitHandle] instances.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import NamedTuple

from ._validation import validate_bytes, validate_instance, validate_int_range
from .constants import RECORD_TYPE_MAX, record_type_name
from .event import EventPosition


class RecordKey(NamedTuple):
    """Identity of a record within a name: ``(record_type, label)``."""

    record_type: int
    label: str


@dataclass(frozen=True, slots=True)
class RecordEntry:
    """Latest known value of one record key.

    Attributes:
        record_type: Record type tag.
        label: Decoded label (``""`` = default record of the type).
        raw: Encoded value as stored on the ledger.
        value: Decoded value; ``""`` for tombstones.
        malformed: ``True`` when ``raw`` could not be decoded by the type's
            codec and ``value`` holds its hex representation instead.
        position: Ledger position of the event that last wrote this key.
    """

    record_type: int
    label: str
    raw: bytes
    value: str
    malformed: bool = False
    position: EventPosition = EventPosition(0, 0)

    def __post_init__(self) -> None:
        validate_int_range(self.record_type, "record_type", low=0, high=RECORD_TYPE_MAX)
        validate_instance(self.label, str, "label")
        validate_bytes(self.raw, "raw")

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.record_type, self.label)

    @property
    def is_tombstone(self) -> bool:
        """Whether the key was explicitly cleared."""
        return not self.raw

    @property
    def type_name(self) -> str:
        return record_type_name(self.record_type)


@dataclass(frozen=True, slots=True)
class RecordState(Mapping[RecordKey, RecordEntry]):
    """Immutable mapping of ``RecordKey`` to ``RecordEntry`` for one name.

    Tombstoned keys stay present with an empty value: a cleared record is
    "no value", not "never set".

    Examples:
        ```python
        state = reduce(events, registry)
        state.value(RecordType.ETH_ADDRESS)          # default label
        state.value(RecordType.CONTENT_HASH, "blog")
        [e.key for e in state.live()]
        ```
    """

    entries: Mapping[RecordKey, RecordEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __getitem__(self, key: RecordKey) -> RecordEntry:
        return self.entries[key]

    def __iter__(self) -> Iterator[RecordKey]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecordState):
            return NotImplemented
        return dict(self.entries) == dict(other.entries)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.entries.items())))

    def entry(self, record_type: int, label: str = "") -> RecordEntry | None:
        """Return the entry for ``(record_type, label)``, or ``None`` if never written."""
        return self.entries.get(RecordKey(record_type, label))

    def value(self, record_type: int, label: str = "") -> str | None:
        """Return the decoded value, ``""`` for tombstones, ``None`` if never written."""
        entry = self.entry(record_type, label)
        return entry.value if entry is not None else None

    def live(self) -> list[RecordEntry]:
        """Entries that currently hold a value, in presentation order."""
        return [e for e in self.sorted_entries() if not e.is_tombstone]

    def sorted_entries(self) -> list[RecordEntry]:
        """All entries ordered by record type, then label."""
        return [self.entries[k] for k in sorted(self.entries)]


@dataclass(frozen=True, slots=True)
class CommitHandle:
    """Confirmation of a write that the ledger has included.

    Attributes:
        transaction_hash: Hash of the confirmed transaction.
        block_number: Block that included it.
        name: Normalized name that was written.
        record_type: Record type tag.
        label: Label that was written (``""`` = default).
        cleared: ``True`` for tombstone writes.
    """

    transaction_hash: str
    block_number: int
    name: str
    record_type: int
    label: str
    cleared: bool = False
