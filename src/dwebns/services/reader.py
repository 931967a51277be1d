"""
Event log reader.

Fetches every ``RecordChanged`` event for one name, in ledger order. The
reader is read-only and keeps no state between calls: concurrent fetches for
different names share nothing but the ledger session.

See Also:
    [RecordReducer][dwebns.services.reducer.RecordReducer]: Folds the
        returned events into a [RecordState][dwebns.models.record.RecordState].
    [LiveUpdateListener][dwebns.services.listener.LiveUpdateListener]: Uses
        [build_filter()][dwebns.services.reader.EventLogReader.build_filter]
        so it watches exactly what the reader reads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dwebns.codecs.keys import encode_key, key_fits, normalize_name
from dwebns.core.logger import Logger
from dwebns.exceptions import InvalidValueError
from dwebns.models import ChangeEvent, RecordFilter
from dwebns.models.constants import ServiceName


if TYPE_CHECKING:
    from dwebns.core.ledger import Ledger


def name_key(name: str, logger: Logger | None = None) -> bytes:
    """Normalize *name* and encode it as a 32-byte key.

    Raises:
        InvalidValueError: If the name is empty after normalization.
    """
    normalized = normalize_name(name)
    if not normalized:
        raise InvalidValueError("Name must not be empty")
    if logger is not None and not key_fits(normalized):
        logger.warning("key_truncated", kind="name", value=normalized)
    return encode_key(normalized)


class EventLogReader:
    """Fetches the ordered change events of a name from the ledger.

    Examples:
        ```python
        reader = EventLogReader(ledger)
        events = await reader.fetch_events("alice")
        ```
    """

    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger
        self._logger = Logger(ServiceName.READER)

    def build_filter(
        self,
        name: str,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> RecordFilter:
        """Scope a query to exactly one name (normalized, then key-encoded)."""
        return RecordFilter(
            name=name_key(name, self._logger),
            from_block=from_block,
            to_block=to_block,
        )

    async def fetch_events(
        self,
        name: str,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> list[ChangeEvent]:
        """Return all change events for *name*, sorted by ledger position.

        An empty list always means the name has no events.

        Raises:
            TransportError: If the ledger is unreachable.
        """
        record_filter = self.build_filter(name, from_block, to_block)
        return await self.fetch_filtered(record_filter)

    async def fetch_filtered(self, record_filter: RecordFilter) -> list[ChangeEvent]:
        """Fetch and sort the events matching an already built filter."""
        events = await self._ledger.get_logs(record_filter)
        ordered = sorted(events, key=lambda e: e.position)
        self._logger.debug(
            "events_fetched",
            name=record_filter.name,
            from_block=record_filter.from_block,
            to_block=record_filter.to_block,
            count=len(ordered),
        )
        return ordered
