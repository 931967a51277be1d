"""
Record update submitter.

Appends one change event per call and returns only once the ledger has
confirmed it. Writes are last-writer-wins: there is no version check, no
merge, and no automatic retry. A failed write never touches any
[RecordState][dwebns.models.record.RecordState]; callers re-read to see
what the ledger holds.

Failures surface as typed errors:

- [InvalidValueError][dwebns.exceptions.InvalidValueError]: empty value,
  empty name, out-of-range type, or a value the type's codec rejects.
  Raised before any ledger call.
- [UserCancelled][dwebns.exceptions.UserCancelled]: the authorizing party
  declined.
- [RejectedByLedger][dwebns.exceptions.RejectedByLedger]: the ledger
  refused or reverted the write.
- [TransportError][dwebns.exceptions.TransportError]: the ledger was
  unreachable or answered with garbage.
- [ConfirmationError][dwebns.exceptions.ConfirmationError] (a
  ``TransportError``, including
  [ConfirmationTimeoutError][dwebns.exceptions.ConfirmationTimeoutError]):
  the write was sent but its inclusion could not be confirmed. It carries
  the transaction hash.

Examples:
    ```python
    submitter = RecordSubmitter(ledger, default_registry())
    handle = await submitter.submit("alice", RecordType.ETH_ADDRESS, "", "0x742d...")
    await submitter.clear("alice", RecordType.ETH_ADDRESS)
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dwebns.codecs.keys import encode_key, key_fits, normalize_label
from dwebns.codecs.registry import CodecRegistry, default_registry
from dwebns.core.logger import Logger
from dwebns.core.metrics import SUBMISSIONS_TOTAL
from dwebns.exceptions import (
    ConfirmationError,
    InvalidValueError,
    RejectedByLedger,
    RpcError,
    TransportError,
    UserCancelled,
)
from dwebns.models import RECORD_TYPE_MAX, CommitHandle
from dwebns.models.constants import ServiceName, record_type_name

from .reader import name_key


if TYPE_CHECKING:
    from dwebns.core.ledger import Ledger


class RecordSubmitter:
    """Encodes and appends record changes, waiting for confirmation."""

    def __init__(self, ledger: Ledger, registry: CodecRegistry | None = None) -> None:
        self._ledger = ledger
        self._registry = registry if registry is not None else default_registry()
        self._logger = Logger(ServiceName.SUBMITTER)

    async def submit(self, name: str, record_type: int, label: str, value: str) -> CommitHandle:
        """Set ``(record_type, label)`` of *name* to *value*.

        *value* reaches the type's codec unchanged; codecs that accept
        padded input (addresses) trim it themselves.

        Raises:
            InvalidValueError: If *value* is empty or whitespace-only, or
                cannot be encoded for *record_type*.
        """
        if not value or not value.strip():
            SUBMISSIONS_TOTAL.labels(outcome="invalid").inc()
            raise InvalidValueError("Record value must not be empty; use clear() to remove it")
        try:
            data = self._registry.encode(record_type, value)
        except InvalidValueError:
            SUBMISSIONS_TOTAL.labels(outcome="invalid").inc()
            raise
        return await self._write(name, record_type, label, data)

    async def clear(self, name: str, record_type: int, label: str = "") -> CommitHandle:
        """Tombstone ``(record_type, label)`` of *name* by writing empty data."""
        return await self._write(name, record_type, label, b"")

    async def _write(self, name: str, record_type: int, label: str, data: bytes) -> CommitHandle:
        if isinstance(record_type, bool) or not 0 <= int(record_type) <= RECORD_TYPE_MAX:
            SUBMISSIONS_TOTAL.labels(outcome="invalid").inc()
            raise InvalidValueError(f"Record type must be in range 0-{RECORD_TYPE_MAX}")
        try:
            name_bytes = name_key(name, self._logger)
        except InvalidValueError:
            SUBMISSIONS_TOTAL.labels(outcome="invalid").inc()
            raise
        name_text = name_bytes.rstrip(b"\x00").decode("utf-8", errors="replace")
        label_text = normalize_label(label)
        if not key_fits(label_text):
            self._logger.warning("key_truncated", kind="label", value=label_text)

        log = self._logger.bind(
            name=name_text,
            type=record_type_name(record_type),
            label=label_text,
        )
        try:
            tx_hash = await self._ledger.send_set_record(
                name_bytes, int(record_type), encode_key(label_text), data
            )
            log.info("record_sent", transaction_hash=tx_hash, cleared=not data)
            try:
                receipt = await self._ledger.wait_for_receipt(tx_hash)
            except RpcError as e:
                raise ConfirmationError(f"Receipt poll for {tx_hash} failed: {e}", tx_hash) from e
        except UserCancelled:
            SUBMISSIONS_TOTAL.labels(outcome="cancelled").inc()
            log.info("record_cancelled")
            raise
        except RejectedByLedger as e:
            SUBMISSIONS_TOTAL.labels(outcome="rejected").inc()
            log.warning("record_rejected", reason=e.reason)
            raise
        except ConfirmationError as e:
            SUBMISSIONS_TOTAL.labels(outcome="unconfirmed").inc()
            log.error("record_unconfirmed", transaction_hash=e.transaction_hash, error=str(e))
            raise
        except TransportError as e:
            SUBMISSIONS_TOTAL.labels(outcome="transport_error").inc()
            log.error("record_submit_failed", error=str(e))
            raise

        SUBMISSIONS_TOTAL.labels(outcome="confirmed").inc()
        log.info(
            "record_confirmed",
            transaction_hash=receipt.transaction_hash,
            block=receipt.block_number,
        )
        return CommitHandle(
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
            name=name_text,
            record_type=record_type,
            label=label_text,
            cleared=not data,
        )
