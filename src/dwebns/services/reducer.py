"""
Record state reducer.

Folds an ordered [ChangeEvent][dwebns.models.event.ChangeEvent] sequence
into a [RecordState][dwebns.models.record.RecordState]: for every
``(record_type, label)`` key the last event wins. The fold is pure; the same
sequence always yields an equal state and no ledger access happens here.

Malformed input never aborts a pass:

- A label that is not valid UTF-8 is replaced by ``0x<hex>`` of its bytes.
- Data the type's codec cannot decode is kept as ``0x<hex>`` and the entry
  is flagged ``malformed``.
- Empty data is a tombstone: the key stays present with value ``""``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dwebns.codecs.keys import decode_key_or_placeholder, to_hex
from dwebns.codecs.registry import CodecRegistry, default_registry
from dwebns.exceptions import DecodeError
from dwebns.models import RecordEntry, RecordKey, RecordState


if TYPE_CHECKING:
    from collections.abc import Iterable

    from dwebns.models import ChangeEvent


logger = logging.getLogger(__name__)


class RecordReducer:
    """Last-writer-wins fold of change events using an injected codec registry."""

    def __init__(self, registry: CodecRegistry | None = None) -> None:
        self._registry = registry if registry is not None else default_registry()

    @property
    def registry(self) -> CodecRegistry:
        return self._registry

    def entry_for(self, event: ChangeEvent) -> RecordEntry:
        """Decode a single event into the entry it would write."""
        label = decode_key_or_placeholder(event.label)
        malformed = False
        try:
            value = self._registry.decode_strict(event.record_type, event.data)
        except DecodeError as e:
            logger.debug("record_value_malformed type=%s error=%s", event.record_type, e)
            value = to_hex(event.data)
            malformed = True
        return RecordEntry(
            record_type=event.record_type,
            label=label,
            raw=event.data,
            value=value,
            malformed=malformed,
            position=event.position,
        )

    def reduce(self, events: Iterable[ChangeEvent]) -> RecordState:
        """Fold *events*, in the order given, into a RecordState."""
        entries: dict[RecordKey, RecordEntry] = {}
        for event in events:
            entry = self.entry_for(event)
            entries[entry.key] = entry
        return RecordState(entries)


def reduce(
    events: Iterable[ChangeEvent],
    registry: CodecRegistry | None = None,
) -> RecordState:
    """Shortcut for ``RecordReducer(registry).reduce(events)``."""
    return RecordReducer(registry).reduce(events)
