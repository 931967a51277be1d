"""DWebNS exception hierarchy.

Leaf module with no internal imports, so every layer (models, codecs, core,
services) can raise and catch the same typed errors. Specific subclasses let
callers tell a recoverable decode problem apart from a rejected write or an
unreachable ledger, and let ``CancelledError`` propagate untouched.

Exception hierarchy:

```text
DWebNSError (base -- never raised directly)
├── ConfigurationError          -- config validation, missing env vars, bad YAML
├── DecodeError                 -- malformed key or value bytes (recovered locally)
├── InvalidValueError           -- caller-side precondition violation
└── LedgerError                 -- anything involving the external ledger
    ├── TransportError          -- ledger unreachable, timeout, garbled response
    │   └── ConfirmationError   -- accepted write whose inclusion is unknown
    │       └── ConfirmationTimeoutError -- not confirmed in time
    ├── RpcError                -- JSON-RPC error object returned by the node
    ├── RejectedByLedger        -- authorization/resource rejection or revert
    ├── UserCancelled           -- the authorizing party declined
    └── ChainMismatchError      -- connected to the wrong ledger instance
```

See Also:
    [RpcClient][dwebns.core.rpc.RpcClient]: Raises
        [TransportError][dwebns.exceptions.TransportError] and
        [RpcError][dwebns.exceptions.RpcError].
    [Ledger][dwebns.core.ledger.Ledger]: Maps RPC errors on writes to
        [RejectedByLedger][dwebns.exceptions.RejectedByLedger] and
        [UserCancelled][dwebns.exceptions.UserCancelled].
    [CodecRegistry][dwebns.codecs.registry.CodecRegistry]: Raises
        [InvalidValueError][dwebns.exceptions.InvalidValueError] on encode and
        recovers from [DecodeError][dwebns.exceptions.DecodeError] on decode.
"""

from __future__ import annotations


class DWebNSError(Exception):
    """Base exception for all DWebNS errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(DWebNSError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


class DecodeError(DWebNSError):
    """Malformed bytes for a given record type or key.

    Always recovered close to where it is raised: the reducer falls back to
    a placeholder or raw hex representation and never aborts a whole pass
    because of a single bad event.
    """


class InvalidValueError(DWebNSError, ValueError):
    """Caller-side precondition violation (e.g. empty value on submit).

    Raised before any ledger call is attempted, so a write that fails with
    this error never reaches the ledger.
    """


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerError(DWebNSError):
    """Base for all errors involving the external ledger."""


class TransportError(LedgerError):
    """The ledger could not be reached or returned an unusable response.

    Reads may have been retried before this surfaces; writes never are.
    """


class ConfirmationError(TransportError):
    """A write was accepted but its receipt could not be obtained or read.

    The write may still land later. Callers must re-read before retrying to
    avoid double-submitting.

    Attributes:
        transaction_hash: Hash of the accepted transaction.
    """

    def __init__(self, message: str, transaction_hash: str) -> None:
        super().__init__(message)
        self.transaction_hash = transaction_hash


class ConfirmationTimeoutError(ConfirmationError):
    """A write was accepted but its inclusion was not confirmed in time."""


class RpcError(LedgerError):
    """A JSON-RPC error object returned by the node.

    Attributes:
        code: JSON-RPC error code.
        data: Optional ``data`` member of the error object.
    """

    def __init__(self, code: int, message: str, data: object = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __repr__(self) -> str:
        return f"RpcError(code={self.code}, message={self.message!r})"


class RejectedByLedger(LedgerError):
    """The ledger refused the write (authorization, resource budget, revert).

    Attributes:
        reason: The ledger's reason string, verbatim when available.
        code: The JSON-RPC error code, if the rejection came from one.
    """

    def __init__(self, reason: str, code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.code = code


class UserCancelled(LedgerError):
    """The authorizing party explicitly declined the write.

    Kept distinct from [RejectedByLedger][dwebns.exceptions.RejectedByLedger]
    so presentation layers can avoid showing it as a failure.
    """


class ChainMismatchError(LedgerError):
    """The node reports a different chain id than the one configured."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Connected to chain {actual}, expected {expected}")
        self.expected = expected
        self.actual = actual
