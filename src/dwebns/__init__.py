r"""DWebNS -- typed record client for a decentralized naming service.

Names resolve to typed records (chain addresses, content hashes, public
keys, DNS-style entries) stored as an append-only log of ``RecordChanged``
events on an EVM ledger. This package reconstructs current record state from
that log, encodes and decodes values per record type, and submits
last-writer-wins updates.

Imports flow strictly downward:

```text
              services         reader, reducer, submitter, listener, client
             /   |   \
          core codecs utils    ledger + rpc + logging + metrics | codecs | http
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from dwebns import RecordsClient``) are lazy and
    resolve on first access. For lightweight usage import from subpackages::

        from dwebns.models import RecordType
        from dwebns.codecs import encode_key
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("dwebns")

__all__ = [
    "ChangeEvent",
    "CodecRegistry",
    "CommitHandle",
    "EventLogReader",
    "Ledger",
    "LedgerConfig",
    "ListenerConfig",
    "LiveUpdateListener",
    "Logger",
    "RecordReducer",
    "RecordState",
    "RecordSubmitter",
    "RecordType",
    "RecordsClient",
    "default_registry",
    "reduce",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "ChangeEvent": ("dwebns.models", "ChangeEvent"),
    "CommitHandle": ("dwebns.models", "CommitHandle"),
    "RecordState": ("dwebns.models", "RecordState"),
    "RecordType": ("dwebns.models", "RecordType"),
    "CodecRegistry": ("dwebns.codecs", "CodecRegistry"),
    "default_registry": ("dwebns.codecs", "default_registry"),
    "Ledger": ("dwebns.core", "Ledger"),
    "LedgerConfig": ("dwebns.core", "LedgerConfig"),
    "Logger": ("dwebns.core", "Logger"),
    "EventLogReader": ("dwebns.services", "EventLogReader"),
    "ListenerConfig": ("dwebns.services", "ListenerConfig"),
    "LiveUpdateListener": ("dwebns.services", "LiveUpdateListener"),
    "RecordReducer": ("dwebns.services", "RecordReducer"),
    "RecordSubmitter": ("dwebns.services", "RecordSubmitter"),
    "RecordsClient": ("dwebns.services", "RecordsClient"),
    "reduce": ("dwebns.services", "reduce"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        value = getattr(importlib.import_module(module_path), attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'dwebns' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
