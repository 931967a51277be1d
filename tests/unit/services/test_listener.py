"""
Unit tests for services.listener module.

Tests:
- subscribe() cursors and the head snapshot
- run() polling, dispatch and block range chunking
- Unsubscribe idempotence and no dispatch afterwards
- Failure isolation: poll failures keep the cursor, callback errors are logged
- Sync and async callbacks
"""

import asyncio
import logging

import pytest

from dwebns.exceptions import TransportError
from dwebns.models import RecordType
from dwebns.services.listener import ListenerConfig, LiveUpdateListener


@pytest.fixture
def listener(ledger) -> LiveUpdateListener:
    return LiveUpdateListener(ledger, ListenerConfig(interval=0.1))


class Recorder:
    """Callback recording the names it was called with."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, name: str) -> None:
        self.calls.append(name)


class TestListenerConfig:
    """ListenerConfig defaults."""

    def test_defaults(self):
        config = ListenerConfig()
        assert config.interval == 2.0
        assert config.max_consecutive_failures == 0
        assert config.max_block_range == 5_000


class TestSubscribe:
    """subscribe() bookkeeping."""

    async def test_cursor_starts_at_observed_head(self, listener, ledger):
        ledger.mine(5)
        await listener.observe_head()

        listener.subscribe("Alice", Recorder())

        assert listener.cursor("alice") == 5
        assert listener.watched_names == ["alice"]

    def test_cursor_from_block(self, listener):
        listener.subscribe("alice", Recorder(), from_block=10)
        assert listener.cursor("alice") == 9

    def test_unwatched_cursor(self, listener):
        assert listener.cursor("bob") is None

    def test_same_name_shares_watch(self, listener):
        listener.subscribe("alice", Recorder())
        listener.subscribe("ALICE", Recorder())
        assert listener.watched_names == ["alice"]

    def test_head_none_before_poll(self, listener):
        assert listener.head is None


class TestRun:
    """run() polling and dispatch."""

    async def test_no_events_no_signal(self, listener, ledger):
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)
        ledger.mine(3)

        await listener.run()

        assert recorder.calls == []
        assert listener.cursor("alice") == 3

    async def test_new_event_signals_name(self, listener, ledger):
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)

        ledger.append("alice", RecordType.TXT, data=b"hello")
        await listener.run()

        assert recorder.calls == ["alice"]

    async def test_events_before_subscription_not_signalled(self, listener, ledger):
        ledger.append("alice", RecordType.TXT, data=b"old")
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)

        await listener.run()

        assert recorder.calls == []

    async def test_signal_once_per_batch(self, listener, ledger):
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)
        for value in (b"1", b"2", b"3"):
            ledger.append("alice", RecordType.TXT, data=value)

        await listener.run()
        await listener.run()

        assert recorder.calls == ["alice"]

    async def test_other_names_do_not_signal(self, listener, ledger):
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)

        ledger.append("bob", RecordType.TXT, data=b"hi")
        await listener.run()

        assert recorder.calls == []

    async def test_every_subscriber_called(self, listener, ledger):
        await listener.observe_head()
        first, second = Recorder(), Recorder()
        listener.subscribe("alice", first)
        listener.subscribe("alice", second)

        ledger.append("alice", RecordType.TXT, data=b"x")
        await listener.run()

        assert first.calls == second.calls == ["alice"]

    async def test_async_callback_awaited(self, listener, ledger):
        await listener.observe_head()
        seen = []

        async def on_change(name: str) -> None:
            await asyncio.sleep(0)
            seen.append(name)

        listener.subscribe("alice", on_change)
        ledger.append("alice", RecordType.TXT, data=b"x")
        await listener.run()

        assert seen == ["alice"]

    async def test_block_range_chunked(self, ledger):
        listener = LiveUpdateListener(ledger, ListenerConfig(interval=0.1, max_block_range=2))
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)
        ledger.mine(4)
        ledger.append("alice", RecordType.TXT, data=b"late")  # block 5

        await listener.run()
        assert listener.cursor("alice") == 2
        await listener.run()
        assert listener.cursor("alice") == 4
        assert recorder.calls == []
        await listener.run()
        assert listener.cursor("alice") == 5
        assert recorder.calls == ["alice"]

        record_filter = ledger.calls_to("get_logs")[-1].args[0]
        assert (record_filter.from_block, record_filter.to_block) == (5, 5)


class TestUnsubscribe:
    """Unsubscribe handle."""

    async def test_no_dispatch_after_unsubscribe(self, listener, ledger):
        await listener.observe_head()
        recorder = Recorder()
        unsubscribe = listener.subscribe("alice", recorder)

        unsubscribe()
        ledger.append("alice", RecordType.TXT, data=b"x")
        await listener.run()

        assert recorder.calls == []
        assert listener.watched_names == []

    def test_idempotent(self, listener):
        unsubscribe = listener.subscribe("alice", Recorder())
        other = listener.subscribe("alice", Recorder())

        unsubscribe()
        unsubscribe()

        assert unsubscribe.active is False
        assert other.active is True
        assert listener.watched_names == ["alice"]

    async def test_unsubscribe_during_dispatch(self, listener, ledger):
        """A callback unsubscribing a later one stops it within the same batch."""
        await listener.observe_head()
        late = Recorder()
        handles = {}

        def first(name: str) -> None:
            handles["late"]()

        listener.subscribe("alice", first)
        handles["late"] = listener.subscribe("alice", late)

        ledger.append("alice", RecordType.TXT, data=b"x")
        await listener.run()

        assert late.calls == []

    async def test_resubscribe_starts_fresh(self, listener, ledger):
        await listener.observe_head()
        listener.subscribe("alice", Recorder())()
        ledger.append("alice", RecordType.TXT, data=b"x")
        await listener.observe_head()

        recorder = Recorder()
        listener.subscribe("alice", recorder)
        await listener.run()

        assert recorder.calls == []


class TestFailures:
    """Failure isolation."""

    async def test_poll_failure_keeps_cursor(self, listener, ledger, caplog):
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)
        ledger.append("alice", RecordType.TXT, data=b"x")
        ledger.read_errors.append(TransportError("down"))

        with caplog.at_level(logging.WARNING):
            await listener.run()
        assert listener.cursor("alice") == 0
        assert recorder.calls == []
        assert any(r.getMessage() == "poll_failed" for r in caplog.records)

        await listener.run()
        assert recorder.calls == ["alice"]
        assert listener.cursor("alice") == 1

    async def test_one_name_failing_does_not_block_others(self, listener, ledger):
        await listener.observe_head()
        alice, bob = Recorder(), Recorder()
        listener.subscribe("alice", alice)
        listener.subscribe("bob", bob)
        ledger.append("alice", RecordType.TXT, data=b"x")
        ledger.append("bob", RecordType.TXT, data=b"y")
        ledger.read_errors.append(TransportError("down"))

        await listener.run()

        assert alice.calls == []
        assert bob.calls == ["bob"]

    async def test_head_failure_fails_cycle(self, listener, ledger):
        ledger.head_errors.append(TransportError("down"))
        with pytest.raises(TransportError):
            await listener.run()

    async def test_callback_error_logged_and_loop_continues(self, listener, ledger, caplog):
        await listener.observe_head()
        after = Recorder()

        def broken(name: str) -> None:
            raise RuntimeError("subscriber bug")

        listener.subscribe("alice", broken)
        listener.subscribe("alice", after)
        ledger.append("alice", RecordType.TXT, data=b"x")

        with caplog.at_level(logging.ERROR):
            await listener.run()

        assert after.calls == ["alice"]
        failures = [r for r in caplog.records if r.getMessage() == "subscriber_failed"]
        assert failures
        assert failures[0].exc_info is not None
        assert listener.cursor("alice") == 1

    async def test_run_forever_survives_poll_failures(self, listener, ledger):
        await listener.observe_head()
        recorder = Recorder()
        listener.subscribe("alice", recorder)
        ledger.append("alice", RecordType.TXT, data=b"x")
        ledger.head_errors.append(TransportError("down"))

        async def stop_when_signalled(timeout):
            return bool(recorder.calls)

        listener.wait = stop_when_signalled
        async with listener:
            await listener.run_forever()

        assert recorder.calls == ["alice"]
