"""
Records client: the single entry point for presentation layers.

Wires the [EventLogReader][dwebns.services.reader.EventLogReader],
[RecordReducer][dwebns.services.reducer.RecordReducer],
[RecordSubmitter][dwebns.services.submitter.RecordSubmitter] and
[LiveUpdateListener][dwebns.services.listener.LiveUpdateListener] around one
shared [Ledger][dwebns.core.ledger.Ledger] and one
[CodecRegistry][dwebns.codecs.registry.CodecRegistry].

Record state is never cached: every
[load_records()][dwebns.services.client.RecordsClient.load_records] call
re-reads the log, so what a caller shows cannot drift from the ledger.

Examples:
    ```python
    async with RecordsClient(Ledger.from_yaml("config/dwebns.yaml")) as client:
        await client.submit("alice", RecordType.ETH_ADDRESS, "", "0x742d...")
        state = await client.load_records("alice")
        state.value(RecordType.ETH_ADDRESS)
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dwebns.codecs.registry import CodecRegistry, default_registry
from dwebns.core.logger import Logger

from .listener import ListenerConfig, LiveUpdateListener
from .reader import EventLogReader
from .reducer import RecordReducer
from .submitter import RecordSubmitter


if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from dwebns.core.ledger import Ledger
    from dwebns.models import ChangeEvent, CommitHandle, RecordState

    from .listener import OnChange, Unsubscribe


class RecordsClient:
    """Facade over reading, reducing, writing and watching records.

    Args:
        ledger: Shared ledger facade. Connected and closed by the async
            context manager.
        registry: Value codecs; defaults to
            [default_registry()][dwebns.codecs.registry.default_registry].
        listener_config: Polling settings for live updates.
    """

    def __init__(
        self,
        ledger: Ledger,
        registry: CodecRegistry | None = None,
        listener_config: ListenerConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._registry = registry if registry is not None else default_registry()
        self._reader = EventLogReader(ledger)
        self._reducer = RecordReducer(self._registry)
        self._submitter = RecordSubmitter(ledger, self._registry)
        self._listener = LiveUpdateListener(ledger, listener_config)
        self._logger = Logger("client")

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def registry(self) -> CodecRegistry:
        return self._registry

    @property
    def listener(self) -> LiveUpdateListener:
        return self._listener

    async def fetch_events(self, name: str) -> list[ChangeEvent]:
        return await self._reader.fetch_events(name)

    def reduce(self, events: Iterable[ChangeEvent]) -> RecordState:
        return self._reducer.reduce(events)

    async def load_records(self, name: str) -> RecordState:
        """Fetch and reduce the full event log of *name*."""
        state = self.reduce(await self.fetch_events(name))
        self._logger.debug("records_loaded", name=name, records=len(state))
        return state

    async def submit(self, name: str, record_type: int, label: str, value: str) -> CommitHandle:
        return await self._submitter.submit(name, record_type, label, value)

    async def clear(self, name: str, record_type: int, label: str = "") -> CommitHandle:
        return await self._submitter.clear(name, record_type, label)

    async def subscribe(self, name: str, on_change: OnChange) -> Unsubscribe:
        """Watch *name* from the current head on.

        The head is read before registering, so a caller that fetches right
        after subscribing sees every event either in the fetch or as a
        signal.
        """
        if self._listener.head is None:
            await self._listener.observe_head()
        return self._listener.subscribe(name, on_change)

    async def __aenter__(self) -> RecordsClient:
        await self._ledger.connect()
        await self._listener.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            await self._listener.__aexit__(exc_type, exc_val, exc_tb)
        finally:
            await self._ledger.close()
