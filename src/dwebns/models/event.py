"""
Immutable ledger change events and the filter that scopes them to a name.

A [ChangeEvent][dwebns.models.event.ChangeEvent] is one ``RecordChanged``
entry of the append-only log: the fixed-width name and label keys, the record
type tag, and the opaque encoded value. Events are never mutated or removed;
current record state is always derived by folding them in ledger order (see
[dwebns.services.reducer][]).

See Also:
    [dwebns.core.ledger][]: Parses raw ledger logs into these events.
    [dwebns.services.reader][]: Builds [RecordFilter][dwebns.models.event.RecordFilter]
        instances and returns ordered event sequences.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from ._validation import (
    validate_bytes,
    validate_instance,
    validate_int_range,
    validate_non_negative,
)
from .constants import KEY_SIZE, RECORD_TYPE_MAX


class EventPosition(NamedTuple):
    """Location of an event in ledger order.

    Tuples compare lexicographically, so sorting by position yields the order
    in which events were appended.

    Attributes:
        block_number: Block that included the event.
        log_index: Index of the event within that block.
    """

    block_number: int
    log_index: int


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One immutable ``RecordChanged`` entry of the ledger log.

    Args:
        name: 32-byte name key.
        label: 32-byte label key (all zeros = no label).
        record_type: Record type tag in ``0..65535``.
        data: Encoded value. Empty bytes is a tombstone.
        position: Ledger position used for ordering.
        transaction_hash: Hash of the transaction that emitted the event,
            empty when unknown (e.g. in-memory ledgers).

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a key is not 32 bytes or the type is out of range.
    """

    name: bytes
    label: bytes
    record_type: int
    data: bytes
    position: EventPosition = EventPosition(0, 0)
    transaction_hash: str = ""

    def __post_init__(self) -> None:
        validate_bytes(self.name, "name", length=KEY_SIZE)
        validate_bytes(self.label, "label", length=KEY_SIZE)
        validate_int_range(self.record_type, "record_type", low=0, high=RECORD_TYPE_MAX)
        validate_bytes(self.data, "data")
        validate_instance(self.position, EventPosition, "position")
        validate_non_negative(self.position.block_number, "position.block_number")
        validate_non_negative(self.position.log_index, "position.log_index")
        validate_instance(self.transaction_hash, str, "transaction_hash")

    @property
    def is_tombstone(self) -> bool:
        """Whether this event clears its key (empty data)."""
        return not self.data


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Query scope for change events of a single name.

    Shared by the [EventLogReader][dwebns.services.reader.EventLogReader]
    and the [LiveUpdateListener][dwebns.services.listener.LiveUpdateListener]
    so both observe exactly the same slice of the log.

    Args:
        name: 32-byte name key matched exactly.
        from_block: First block to scan (inclusive), ``None`` = configured start.
        to_block: Last block to scan (inclusive), ``None`` = latest.
    """

    name: bytes
    from_block: int | None = None
    to_block: int | None = None

    def __post_init__(self) -> None:
        validate_bytes(self.name, "name", length=KEY_SIZE)
        if self.from_block is not None:
            validate_non_negative(self.from_block, "from_block")
        if self.to_block is not None:
            validate_non_negative(self.to_block, "to_block")
        if (
            self.from_block is not None
            and self.to_block is not None
            and self.from_block > self.to_block
        ):
            raise ValueError(
                f"from_block ({self.from_block}) must be <= to_block ({self.to_block})"
            )
