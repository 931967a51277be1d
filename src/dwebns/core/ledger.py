"""
Resolver contract facade over JSON-RPC.

[Ledger][dwebns.core.ledger.Ledger] is the only component that knows the
resolver's ABI. It turns ``RecordChanged`` logs into
[ChangeEvent][dwebns.models.event.ChangeEvent] instances, sends
``setRecord`` transactions from the configured account, and waits for their
receipts. Services use ``Ledger``, never
[RpcClient][dwebns.core.rpc.RpcClient] directly.

Contract surface:

```text
event    RecordChanged(bytes32 indexed name, bytes32 label, uint16 recordType, bytes data)
function setRecord(bytes32 name, uint16 recordType, bytes32 label, bytes data)
```

Only ``name`` is indexed, so a log filter matches one name exactly and every
other field comes from the ABI-encoded log data.

Error mapping on writes:

- JSON-RPC code ``4001`` (EIP-1193 user rejection) becomes
  [UserCancelled][dwebns.exceptions.UserCancelled].
- Any other JSON-RPC error becomes
  [RejectedByLedger][dwebns.exceptions.RejectedByLedger] with the node's
  message verbatim.
- A mined receipt with ``status == 0`` (reverted) becomes
  [RejectedByLedger][dwebns.exceptions.RejectedByLedger].
- No receipt within ``confirmation.timeout`` becomes
  [ConfirmationTimeoutError][dwebns.exceptions.ConfirmationTimeoutError].
- A failed or unreadable receipt poll becomes
  [ConfirmationError][dwebns.exceptions.ConfirmationError], carrying the
  transaction hash.

Replies that do not have the shape the node API promises (a log list, a hex
quantity, a transaction hash) raise
[TransportError][dwebns.exceptions.TransportError].

Examples:
    ```python
    ledger = Ledger.from_yaml("config/dwebns.yaml")
    async with ledger:
        events = await ledger.get_logs(RecordFilter(name=encode_key("alice")))
    ```
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import event_signature_to_log_topic, function_signature_to_4byte_selector
from pydantic import BaseModel, Field, field_validator

from dwebns.codecs.keys import from_hex, to_hex
from dwebns.exceptions import (
    ChainMismatchError,
    ConfigurationError,
    ConfirmationError,
    ConfirmationTimeoutError,
    DecodeError,
    InvalidValueError,
    RejectedByLedger,
    RpcError,
    TransportError,
    UserCancelled,
)
from dwebns.models import ChangeEvent, EventPosition, RecordFilter
from dwebns.models.constants import KEY_SIZE, ServiceName
from dwebns.utils.account import AccountConfig, normalize_account

from .logger import Logger
from .rpc import RpcClient, RpcConfig
from .yaml import load_yaml, section


if TYPE_CHECKING:
    from types import TracebackType


RECORD_CHANGED_SIGNATURE: Final[str] = "RecordChanged(bytes32,bytes32,uint16,bytes)"
SET_RECORD_SIGNATURE: Final[str] = "setRecord(bytes32,uint16,bytes32,bytes)"

RECORD_CHANGED_TOPIC: Final[str] = to_hex(event_signature_to_log_topic(RECORD_CHANGED_SIGNATURE))
SET_RECORD_SELECTOR: Final[bytes] = function_signature_to_4byte_selector(SET_RECORD_SIGNATURE)

USER_REJECTED_CODE: Final[int] = 4001
DEFAULT_RESOLVER_ADDRESS: Final[str] = "0x9467c76f4a206b8497870c109dfd12c2debaebd4"


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class ConfirmationConfig(BaseModel):
    """How long and how often to poll for a write's receipt (in seconds)."""

    poll_interval: float = Field(default=1.0, ge=0.01, description="Delay between receipt polls")
    timeout: float = Field(default=120.0, ge=0.1, description="Give up waiting after this long")


class LedgerConfig(AccountConfig):
    """Aggregate configuration for the [Ledger][dwebns.core.ledger.Ledger].

    Inherits ``account_env`` / ``account`` from
    [AccountConfig][dwebns.utils.account.AccountConfig]. A ledger without an
    account can read but raises
    [ConfigurationError][dwebns.exceptions.ConfigurationError] on writes.
    """

    rpc: RpcConfig = Field(default_factory=RpcConfig)
    resolver_address: str = Field(
        default=DEFAULT_RESOLVER_ADDRESS,
        description="Address of the resolver contract",
    )
    chain_id: int | None = Field(
        default=31337,
        ge=1,
        description="Expected chain id (None skips the check)",
    )
    verify_chain_on_connect: bool = Field(
        default=True,
        description="Call verify_chain() when connecting",
    )
    from_block: int = Field(default=0, ge=0, description="First block scanned by log queries")
    gas: int | None = Field(default=None, ge=21_000, description="Explicit gas limit for writes")
    confirmation: ConfirmationConfig = Field(default_factory=ConfirmationConfig)

    @field_validator("resolver_address")
    @classmethod
    def _checksum_resolver(cls, v: str) -> str:
        return normalize_account(v)


@dataclass(frozen=True, slots=True)
class Receipt:
    """The parts of a transaction receipt the client relies on."""

    transaction_hash: str
    block_number: int
    succeeded: bool


def _hex_int(value: Any, field: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16)
        except ValueError:
            pass
    raise DecodeError(f"{field} is not a hex quantity: {value!r}")


def _reply_int(value: Any, method: str) -> int:
    try:
        return _hex_int(value, method)
    except DecodeError as e:
        raise TransportError(f"Garbled {method} reply: {e}") from e


def parse_receipt(raw: Any, transaction_hash: str) -> Receipt:
    """Read an ``eth_getTransactionReceipt`` result.

    Raises:
        ConfirmationError: If the receipt does not have the expected shape.
    """
    if not isinstance(raw, dict):
        raise ConfirmationError(
            f"Receipt for {transaction_hash} is {type(raw).__name__}, expected object",
            transaction_hash,
        )
    try:
        block_number = _hex_int(raw.get("blockNumber"), "blockNumber")
        status = _hex_int(raw.get("status", "0x1"), "status")
    except DecodeError as e:
        raise ConfirmationError(
            f"Unreadable receipt for {transaction_hash}: {e}", transaction_hash
        ) from e
    return Receipt(
        transaction_hash=str(raw.get("transactionHash") or transaction_hash),
        block_number=block_number,
        succeeded=status == 1,
    )


def parse_log(log: dict[str, Any]) -> ChangeEvent:
    """Decode one ``eth_getLogs`` entry into a ChangeEvent.

    Raises:
        DecodeError: If the log does not have the ``RecordChanged`` shape.
    """
    topics = log.get("topics") or []
    if len(topics) != 2 or str(topics[0]).lower() != RECORD_CHANGED_TOPIC:
        raise DecodeError(f"Not a RecordChanged log: topics={topics!r}")
    name = from_hex(str(topics[1]))
    if len(name) != KEY_SIZE:
        raise DecodeError(f"Indexed name must be {KEY_SIZE} bytes, got {len(name)}")

    try:
        label, record_type, data = abi_decode(
            ["bytes32", "uint16", "bytes"], from_hex(str(log.get("data", "0x")))
        )
    except DecodingError as e:
        raise DecodeError(f"Malformed RecordChanged data: {e}") from e

    position = EventPosition(
        _hex_int(log.get("blockNumber"), "blockNumber"),
        _hex_int(log.get("logIndex"), "logIndex"),
    )
    return ChangeEvent(
        name=name,
        label=bytes(label),
        record_type=record_type,
        data=bytes(data),
        position=position,
        transaction_hash=str(log.get("transactionHash") or ""),
    )


def encode_set_record(name: bytes, record_type: int, label: bytes, data: bytes) -> bytes:
    """Build ``setRecord`` calldata: 4-byte selector followed by the ABI arguments.

    Raises:
        InvalidValueError: If an argument does not fit its ABI type.
    """
    try:
        args = abi_encode(
            ["bytes32", "uint16", "bytes32", "bytes"], [name, record_type, label, data]
        )
    except EncodingError as e:
        raise InvalidValueError(f"Cannot encode setRecord arguments: {e}") from e
    return SET_RECORD_SELECTOR + args


# ---------------------------------------------------------------------------
# Ledger Class
# ---------------------------------------------------------------------------


class Ledger:
    """High-level interface to the resolver contract.

    Uses composition with an [RpcClient][dwebns.core.rpc.RpcClient] for
    transport and implements an async context manager that opens the
    session and (by default) verifies the chain id.

    Note:
        The ledger session is shared between readers, writers and listeners
        and is never assumed exclusive; every method is a self-contained
        request sequence.
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        rpc: RpcClient | None = None,
    ) -> None:
        self._config = config or LedgerConfig()
        self._rpc = rpc or RpcClient(self._config.rpc)
        self._logger = Logger(ServiceName.LEDGER)

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def rpc(self) -> RpcClient:
        return self._rpc

    @classmethod
    def from_yaml(cls, config_path: str) -> Ledger:
        """Create a Ledger from the ``ledger`` section of a YAML file."""
        return cls.from_dict(section(load_yaml(config_path), "ledger"))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Ledger:
        return cls(config=LedgerConfig(**config_dict))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def chain_id(self) -> int:
        return _reply_int(await self._rpc.request("eth_chainId"), "eth_chainId")

    async def verify_chain(self) -> int:
        """Check the node's chain id against ``config.chain_id``.

        Returns:
            The node's chain id.

        Raises:
            ChainMismatchError: If a chain id is configured and differs.
        """
        actual = await self.chain_id()
        expected = self._config.chain_id
        if expected is not None and actual != expected:
            self._logger.error("chain_mismatch", expected=expected, actual=actual)
            raise ChainMismatchError(expected, actual)
        return actual

    async def block_number(self) -> int:
        """Return the current head block number."""
        return _reply_int(await self._rpc.request("eth_blockNumber"), "eth_blockNumber")

    async def get_logs(self, record_filter: RecordFilter) -> list[ChangeEvent]:
        """Return the ``RecordChanged`` events matching *record_filter*.

        Logs flagged ``removed`` (chain reorganization) and logs that cannot
        be decoded are skipped, the latter with a warning. Order is whatever
        the node returns; [EventLogReader][dwebns.services.reader.EventLogReader]
        sorts.

        Raises:
            TransportError: If the node is unreachable or the reply is not a
                log list.
            RpcError: If the node rejects the query.
        """
        from_block = (
            record_filter.from_block
            if record_filter.from_block is not None
            else self._config.from_block
        )
        params: dict[str, Any] = {
            "address": self._config.resolver_address,
            "topics": [RECORD_CHANGED_TOPIC, to_hex(record_filter.name)],
            "fromBlock": hex(from_block),
            "toBlock": (
                hex(record_filter.to_block) if record_filter.to_block is not None else "latest"
            ),
        }
        raw_logs = await self._rpc.request("eth_getLogs", [params])
        if not isinstance(raw_logs, list):
            raise TransportError(
                f"Garbled eth_getLogs reply: {type(raw_logs).__name__}, expected list"
            )

        events: list[ChangeEvent] = []
        for raw in raw_logs:
            if not isinstance(raw, dict) or raw.get("removed"):
                continue
            try:
                events.append(parse_log(raw))
            except (DecodeError, ValueError, TypeError) as e:
                self._logger.warning(
                    "log_skipped",
                    transaction_hash=raw.get("transactionHash"),
                    error=str(e),
                )
        return events

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def send_set_record(
        self,
        name: bytes,
        record_type: int,
        label: bytes,
        data: bytes,
    ) -> str:
        """Send one ``setRecord`` transaction and return its hash.

        The transaction is sent exactly once; it is not retried on failure.

        Raises:
            ConfigurationError: If no sending account is configured.
            UserCancelled: If the authorizing party declined (code 4001).
            RejectedByLedger: If the node rejected the transaction.
            TransportError: If the node could not be reached or the reply is
                not a transaction hash.
        """
        account = self._config.account
        if account is None:
            raise ConfigurationError(
                f"No sending account configured; set {self._config.account_env}"
            )

        tx: dict[str, Any] = {
            "from": account,
            "to": self._config.resolver_address,
            "data": to_hex(encode_set_record(name, record_type, label, data)),
        }
        if self._config.gas is not None:
            tx["gas"] = hex(self._config.gas)

        try:
            tx_hash = await self._rpc.request("eth_sendTransaction", [tx])
        except RpcError as e:
            if e.code == USER_REJECTED_CODE:
                raise UserCancelled(e.message or "User rejected the request") from e
            raise RejectedByLedger(e.message, e.code) from e

        if not isinstance(tx_hash, str):
            raise TransportError(f"Garbled eth_sendTransaction reply: {tx_hash!r}, expected a hash")
        self._logger.debug("transaction_sent", transaction_hash=tx_hash, record_type=record_type)
        return tx_hash

    async def wait_for_receipt(self, transaction_hash: str) -> Receipt:
        """Poll until the transaction is mined, then return its receipt.

        Raises:
            RejectedByLedger: If the transaction reverted.
            ConfirmationTimeoutError: If no receipt appeared within
                ``confirmation.timeout`` seconds.
            ConfirmationError: If polling failed after read retries, the
                node answered with an error, or the receipt was unreadable.
        """
        confirmation = self._config.confirmation
        loop = asyncio.get_running_loop()
        deadline = loop.time() + confirmation.timeout

        while True:
            try:
                raw = await self._rpc.request("eth_getTransactionReceipt", [transaction_hash])
            except (TransportError, RpcError) as e:
                raise ConfirmationError(
                    f"Receipt poll for {transaction_hash} failed: {e}", transaction_hash
                ) from e
            if raw is not None:
                receipt = parse_receipt(raw, transaction_hash)
                if not receipt.succeeded:
                    self._logger.warning(
                        "transaction_reverted",
                        transaction_hash=transaction_hash,
                        block=receipt.block_number,
                    )
                    raise RejectedByLedger("Transaction reverted")
                return receipt

            if loop.time() + confirmation.poll_interval > deadline:
                raise ConfirmationTimeoutError(
                    f"Transaction {transaction_hash} not confirmed within "
                    f"{confirmation.timeout}s",
                    transaction_hash,
                )
            await asyncio.sleep(confirmation.poll_interval)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the RPC session and verify the chain when configured to."""
        await self._rpc.connect()
        if self._config.verify_chain_on_connect:
            try:
                await self.verify_chain()
            except BaseException:
                await self._rpc.close()
                raise
        self._logger.info(
            "ledger_connected",
            url=self._config.rpc.url,
            resolver=self._config.resolver_address,
        )

    async def close(self) -> None:
        await self._rpc.close()

    async def __aenter__(self) -> Ledger:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"Ledger(url={self._config.rpc.url}, resolver={self._config.resolver_address}, "
            f"chain_id={self._config.chain_id})"
        )
