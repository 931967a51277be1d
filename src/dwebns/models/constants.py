"""Shared constants for the models layer.

Defines the record type enumeration, its band partition, and other constants
used across multiple modules. Placing them here avoids circular dependencies
between the models, codecs, and services layers.

See Also:
    [dwebns.codecs.registry][]: Can take a default value codec per
        [RecordBand][dwebns.models.constants.RecordBand].
    [dwebns.models.event][]: Validates ``record_type`` against
        ``RECORD_TYPE_MAX``.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Final


KEY_SIZE: Final[int] = 32
RECORD_TYPE_MAX: Final[int] = 65_535


class RecordBand(StrEnum):
    """Contiguous ranges of record type tags sharing a default value codec.

    Attributes:
        DNS: DNS-standard types (below ``0xFF00``), e.g. A and TXT.
        ADDRESS: Chain address records (``0xFF00``-``0xFF3F``).
        IDENTITY: Public keys and decentralized identifiers
            (``0xFF40``-``0xFF7F``).
        CONTENT: Content addressing records (``0xFF80``-``0xFFBF``).
        UNKNOWN: Any other tag in the uint16 range (``0xFFC0``-``0xFFFF``).

    See Also:
        [band_of()][dwebns.models.constants.band_of]: Classifies an integer
            tag into one of these bands.
    """

    DNS = "dns"
    ADDRESS = "address"
    IDENTITY = "identity"
    CONTENT = "content"
    UNKNOWN = "unknown"


_BAND_RANGES: Final[tuple[tuple[int, int, RecordBand], ...]] = (
    (0xFF00, 0xFF3F, RecordBand.ADDRESS),
    (0xFF40, 0xFF7F, RecordBand.IDENTITY),
    (0xFF80, 0xFFBF, RecordBand.CONTENT),
)


def band_of(record_type: int) -> RecordBand:
    """Return the band a record type tag belongs to.

    Tags outside ``0..65535`` are classified as ``UNKNOWN`` rather than
    rejected; range validation is the job of the model constructors.
    """
    if 0 <= record_type < 0xFF00:
        return RecordBand.DNS
    for low, high, band in _BAND_RANGES:
        if low <= record_type <= high:
            return band
    return RecordBand.UNKNOWN


class RecordType(IntEnum):
    """Known record type tags.

    Values match the deployed resolver contract. Tags not listed here are
    still valid on the ledger and decode as text.

    Attributes:
        A: IPv4 address (DNS type 1).
        TXT: Free-form text (DNS type 16).
        ETH_ADDRESS: Ethereum address (``0xFF00``).
        BTC_ADDRESS: Bitcoin address (``0xFF01``).
        SOL_ADDRESS: Solana address (``0xFF02``).
        PUBKEY: Public key (``0xFF40``).
        DID: Decentralized identifier (``0xFF41``).
        CONTENT_HASH: Generic content hash (``0xFF80``).
        IPFS_CID: IPFS content identifier (``0xFF81``).
        SWARM_HASH: Swarm reference (``0xFF82``).
        ARWEAVE_ID: Arweave transaction id (``0xFF83``).

    Examples:
        ```python
        RecordType.ETH_ADDRESS.band          # RecordBand.ADDRESS
        RecordType.IPFS_CID.display_name     # "IPFS CID"
        RecordType.parse("eth_address")      # RecordType.ETH_ADDRESS
        ```
    """

    A = 1
    TXT = 16
    ETH_ADDRESS = 0xFF00
    BTC_ADDRESS = 0xFF01
    SOL_ADDRESS = 0xFF02
    PUBKEY = 0xFF40
    DID = 0xFF41
    CONTENT_HASH = 0xFF80
    IPFS_CID = 0xFF81
    SWARM_HASH = 0xFF82
    ARWEAVE_ID = 0xFF83

    @property
    def band(self) -> RecordBand:
        """The band this type belongs to."""
        return band_of(self.value)

    @property
    def display_name(self) -> str:
        """Short human-readable label for presentation layers."""
        return _DISPLAY_NAMES[self]

    @property
    def placeholder(self) -> str:
        """Example value hinting at the expected input format."""
        return _PLACEHOLDERS[self]

    @classmethod
    def parse(cls, text: str) -> int:
        """Parse a member name (case-insensitive, ``-`` or ``_``) or an integer tag.

        Returns the matching member when the tag is known, otherwise the
        plain integer so forward-compatible tags stay usable.

        Raises:
            ValueError: If *text* is neither a member name nor an integer in
                ``0..65535``.
        """
        key = text.strip().upper().replace("-", "_")
        if key in cls.__members__:
            return cls[key]
        try:
            value = int(text, 0)
        except ValueError:
            raise ValueError(f"Unknown record type: {text!r}") from None
        if not 0 <= value <= RECORD_TYPE_MAX:
            raise ValueError(f"Record type {value} out of range (0-{RECORD_TYPE_MAX})")
        try:
            return cls(value)
        except ValueError:
            return value


_DISPLAY_NAMES: Final[dict[RecordType, str]] = {
    RecordType.A: "A",
    RecordType.TXT: "TXT",
    RecordType.ETH_ADDRESS: "ETH Address",
    RecordType.BTC_ADDRESS: "BTC Address",
    RecordType.SOL_ADDRESS: "SOL Address",
    RecordType.PUBKEY: "Public Key",
    RecordType.DID: "DID",
    RecordType.CONTENT_HASH: "Content Hash",
    RecordType.IPFS_CID: "IPFS CID",
    RecordType.SWARM_HASH: "Swarm Hash",
    RecordType.ARWEAVE_ID: "Arweave",
}

_PLACEHOLDERS: Final[dict[RecordType, str]] = {
    RecordType.A: "192.168.1.1",
    RecordType.TXT: "Your text content",
    RecordType.ETH_ADDRESS: "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb",
    RecordType.BTC_ADDRESS: "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh",
    RecordType.SOL_ADDRESS: "7EqQdEULxWcraVx3mXKFjc84LhCkMGZCkRuDpvcMwJeK",
    RecordType.PUBKEY: "ssh-rsa AAAA...",
    RecordType.DID: "did:example:123456",
    RecordType.CONTENT_HASH: "0xe301...",
    RecordType.IPFS_CID: "QmXoypizjW3WknFiJnKLwHCnL72vedxjQkDDP1mXWo6uco",
    RecordType.SWARM_HASH: "bzz://...",
    RecordType.ARWEAVE_ID: "ar://abc123...",
}


def record_type_name(record_type: int) -> str:
    """Return the display name for any tag, ``"Type <n>"`` for unknown ones."""
    try:
        return RecordType(record_type).display_name
    except ValueError:
        return f"Type {record_type}"


class ServiceName(StrEnum):
    """Canonical component identifiers used in logging and metrics labels.

    Attributes:
        LEDGER: The [Ledger][dwebns.core.ledger.Ledger] facade.
        RPC: The JSON-RPC transport ([RpcClient][dwebns.core.rpc.RpcClient]).
        READER: [EventLogReader][dwebns.services.reader.EventLogReader].
        SUBMITTER: [RecordSubmitter][dwebns.services.submitter.RecordSubmitter].
        LISTENER: [LiveUpdateListener][dwebns.services.listener.LiveUpdateListener].
    """

    LEDGER = "ledger"
    RPC = "rpc"
    READER = "reader"
    SUBMITTER = "submitter"
    LISTENER = "listener"
