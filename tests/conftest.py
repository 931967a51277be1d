"""
Pytest configuration and shared fixtures for DWebNS tests.

Provides:
- ``InMemoryLedger``: a ledger double holding an append-only event list and
  recording every call, with switches to inject failures
- Registry and sample address fixtures
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import pytest
from eth_utils import to_checksum_address

from dwebns.codecs import default_registry, encode_key, normalize_name
from dwebns.core.ledger import Receipt
from dwebns.models import ChangeEvent, EventPosition, RecordFilter


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# In-memory ledger
# ============================================================================


@dataclass
class LedgerCall:
    method: str
    args: tuple[Any, ...] = ()


@dataclass
class InMemoryLedger:
    """Ledger double: every write lands in its own block.

    Failure switches:
        read_errors: Exceptions raised (and consumed) by successive
            ``get_logs`` calls.
        head_errors: Same for ``block_number``.
        send_error: Raised by every ``send_set_record`` call while set.
        receipt_error: Raised by every ``wait_for_receipt`` call while set.
    """

    events: list[ChangeEvent] = field(default_factory=list)
    head: int = 0
    calls: list[LedgerCall] = field(default_factory=list)
    read_errors: list[Exception] = field(default_factory=list)
    head_errors: list[Exception] = field(default_factory=list)
    send_error: Exception | None = None
    receipt_error: Exception | None = None
    connected: bool = False

    # -- seeding ---------------------------------------------------------------

    def append(
        self,
        name: str,
        record_type: int,
        label: str | bytes = "",
        data: bytes = b"",
        *,
        block: int | None = None,
    ) -> ChangeEvent:
        """Append an event as another writer would, in a new block by default."""
        if block is None:
            self.head += 1
            block = self.head
        else:
            self.head = max(self.head, block)
        log_index = sum(1 for e in self.events if e.position.block_number == block)
        label_key = label if isinstance(label, bytes) else encode_key(label)
        event = ChangeEvent(
            name=encode_key(normalize_name(name)),
            label=label_key,
            record_type=int(record_type),
            data=data,
            position=EventPosition(block, log_index),
            transaction_hash=f"0x{len(self.events) + 1:064x}",
        )
        self.events.append(event)
        return event

    def mine(self, blocks: int = 1) -> None:
        self.head += blocks

    def calls_to(self, method: str) -> list[LedgerCall]:
        return [c for c in self.calls if c.method == method]

    # -- Ledger interface ------------------------------------------------------

    async def connect(self) -> None:
        self.calls.append(LedgerCall("connect"))
        self.connected = True

    async def close(self) -> None:
        self.calls.append(LedgerCall("close"))
        self.connected = False

    async def block_number(self) -> int:
        self.calls.append(LedgerCall("block_number"))
        if self.head_errors:
            raise self.head_errors.pop(0)
        return self.head

    async def get_logs(self, record_filter: RecordFilter) -> list[ChangeEvent]:
        self.calls.append(LedgerCall("get_logs", (record_filter,)))
        if self.read_errors:
            raise self.read_errors.pop(0)
        low = record_filter.from_block if record_filter.from_block is not None else 0
        high = record_filter.to_block if record_filter.to_block is not None else self.head
        matched = [
            e
            for e in self.events
            if e.name == record_filter.name and low <= e.position.block_number <= high
        ]
        # Nodes do not guarantee order; hand them back reversed.
        return list(reversed(matched))

    async def send_set_record(
        self, name: bytes, record_type: int, label: bytes, data: bytes
    ) -> str:
        self.calls.append(LedgerCall("send_set_record", (name, record_type, label, data)))
        if self.send_error is not None:
            raise self.send_error
        self.head += 1
        event = ChangeEvent(
            name=name,
            label=label,
            record_type=record_type,
            data=data,
            position=EventPosition(self.head, 0),
            transaction_hash=f"0x{len(self.events) + 1:064x}",
        )
        self.events.append(event)
        return event.transaction_hash

    async def wait_for_receipt(self, transaction_hash: str) -> Receipt:
        self.calls.append(LedgerCall("wait_for_receipt", (transaction_hash,)))
        if self.receipt_error is not None:
            raise self.receipt_error
        event = next(e for e in self.events if e.transaction_hash == transaction_hash)
        return Receipt(transaction_hash, event.position.block_number, succeeded=True)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def ledger() -> InMemoryLedger:
    """A fresh in-memory ledger."""
    return InMemoryLedger()


@pytest.fixture
def registry():
    """The default codec registry."""
    return default_registry()


@pytest.fixture
def address() -> str:
    """A sample account address in checksummed form."""
    return to_checksum_address("0x742d35cc6634c0532925a3b844bc9e7595f0beb0")


@pytest.fixture
def other_address() -> str:
    return to_checksum_address("0x" + "ab" * 20)
