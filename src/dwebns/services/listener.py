"""
Live update listener.

Polls the ledger for new ``RecordChanged`` events of watched names and
signals subscribers when any land. The signal carries only the name; the
subscriber decides whether to re-fetch and re-reduce.

Delivery is at-least-once. Each watched name has a cursor, the last block
fully scanned for it, which only advances after a successful query, so a
failed poll is retried on the next cycle and may signal twice.

A new subscription starts from the listener's last observed head. Callers
subscribe first and fetch afterwards, so nothing appended in between is
missed.

Examples:
    ```python
    listener = LiveUpdateListener(ledger, ListenerConfig(interval=2.0))
    unsubscribe = listener.subscribe("alice", lambda name: print("changed", name))
    async with listener:
        await listener.run_forever()
    unsubscribe()
    ```
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field

from dwebns.core.base_service import BaseService, BaseServiceConfig
from dwebns.exceptions import LedgerError
from dwebns.models import RecordFilter
from dwebns.models.constants import ServiceName

from .reader import EventLogReader


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from dwebns.core.ledger import Ledger

    OnChange = Callable[[str], Awaitable[None] | None]


class ListenerConfig(BaseServiceConfig):
    """Polling settings for [LiveUpdateListener][dwebns.services.listener.LiveUpdateListener]."""

    interval: float = Field(default=2.0, ge=0.1, description="Seconds between polls")
    max_consecutive_failures: int = Field(
        default=0,
        ge=0,
        description="Stop after this many consecutive errors (0 = unlimited)",
    )
    max_block_range: int = Field(
        default=5_000,
        ge=1,
        description="Maximum blocks covered by one log query per name",
    )


@dataclass(slots=True, eq=False)
class _Subscription:
    callback: OnChange
    active: bool = True


@dataclass(slots=True)
class _Watch:
    name: str
    cursor: int | None
    subscriptions: list[_Subscription] = field(default_factory=list)


class Unsubscribe:
    """Handle returned by [subscribe()][dwebns.services.listener.LiveUpdateListener.subscribe].

    Calling it stops all future invocations of the callback. Calling it again
    is a no-op.
    """

    __slots__ = ("_key", "_listener", "_subscription")

    def __init__(
        self, listener: LiveUpdateListener, key: bytes, subscription: _Subscription
    ) -> None:
        self._listener = listener
        self._key = key
        self._subscription = subscription

    @property
    def active(self) -> bool:
        return self._subscription.active

    def __call__(self) -> None:
        if not self._subscription.active:
            return
        self._subscription.active = False
        self._listener._remove(self._key, self._subscription)


class LiveUpdateListener(BaseService[ListenerConfig]):
    """Polling service dispatching change signals per watched name.

    Each [run()][dwebns.services.listener.LiveUpdateListener.run] reads the
    head block once, then queries every watched name from its cursor. Query
    failures for one name are logged and leave its cursor untouched; other
    names are still polled. A head lookup failure fails the whole cycle.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.LISTENER
    CONFIG_CLASS: ClassVar[type[ListenerConfig]] = ListenerConfig

    def __init__(self, ledger: Ledger, config: ListenerConfig | None = None) -> None:
        super().__init__(ledger=ledger, config=config)
        self._reader = EventLogReader(ledger)
        self._watches: dict[bytes, _Watch] = {}
        self._head: int | None = None

    @property
    def head(self) -> int | None:
        """Latest block number observed, ``None`` before the first poll."""
        return self._head

    @property
    def watched_names(self) -> list[str]:
        return [w.name for w in self._watches.values()]

    def cursor(self, name: str) -> int | None:
        """Last block fully scanned for *name*, ``None`` if unknown or unwatched."""
        watch = self._watches.get(self._reader.build_filter(name).name)
        return watch.cursor if watch is not None else None

    async def observe_head(self) -> int:
        """Read the head block and remember it as the start for new subscriptions."""
        self._head = await self._ledger.block_number()
        return self._head

    def subscribe(
        self,
        name: str,
        on_change: OnChange,
        *,
        from_block: int | None = None,
    ) -> Unsubscribe:
        """Invoke ``on_change(name)`` whenever new events for *name* land.

        *on_change* may be a plain function or a coroutine function.

        Args:
            name: Name to watch (normalized like every other name).
            on_change: Callback receiving the normalized name.
            from_block: First block to report. Defaults to the block after
                the last observed head. Only applies when the name is not
                already watched.
        """
        key = self._reader.build_filter(name).name
        watch = self._watches.get(key)
        if watch is None:
            if from_block is not None:
                cursor: int | None = max(from_block - 1, -1)
            else:
                cursor = self._head
            display = key.rstrip(b"\x00").decode("utf-8", errors="replace")
            watch = _Watch(name=display, cursor=cursor)
            self._watches[key] = watch

        subscription = _Subscription(on_change)
        watch.subscriptions.append(subscription)
        self._logger.debug("subscribed", name=watch.name, cursor=watch.cursor)
        self.set_gauge("subscriptions", self._subscription_count())
        return Unsubscribe(self, key, subscription)

    def _remove(self, key: bytes, subscription: _Subscription) -> None:
        watch = self._watches.get(key)
        if watch is None:
            return
        if subscription in watch.subscriptions:
            watch.subscriptions.remove(subscription)
        if not watch.subscriptions:
            del self._watches[key]
        self._logger.debug("unsubscribed", name=watch.name)
        self.set_gauge("subscriptions", self._subscription_count())

    def _subscription_count(self) -> int:
        return sum(len(w.subscriptions) for w in self._watches.values())

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Poll every watched name once and dispatch signals for new events."""
        head = await self.observe_head()

        for key, watch in list(self._watches.items()):
            start = watch.cursor + 1 if watch.cursor is not None else head
            if start > head:
                continue
            end = min(head, start + self._config.max_block_range - 1)

            try:
                events = await self._reader.fetch_filtered(RecordFilter(key, start, end))
            except LedgerError as e:
                self.inc_counter("poll_failures")
                self._logger.warning(
                    "poll_failed", name=watch.name, from_block=start, to_block=end, error=str(e)
                )
                continue

            if self._watches.get(key) is not watch:
                continue
            watch.cursor = end
            if events:
                self._logger.info("changes_detected", name=watch.name, count=len(events), head=end)
                await self._dispatch(watch)

    async def _dispatch(self, watch: _Watch) -> None:
        for subscription in list(watch.subscriptions):
            if not subscription.active:
                continue
            try:
                result: Any = subscription.callback(watch.name)
                if inspect.isawaitable(result):
                    await result
                self.inc_counter("dispatches")
            except Exception as e:  # subscriber errors never stop the poll loop
                self.inc_counter("subscriber_errors")
                self._logger.exception("subscriber_failed", name=watch.name, error=str(e))
