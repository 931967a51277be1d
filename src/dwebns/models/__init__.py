"""Pure frozen dataclasses with zero I/O for ledger events and record state.

The models layer is the foundation of the dependency DAG. It has **no
dependencies** on any other DWebNS package -- only the Python standard
library. Every model uses ``@dataclass(frozen=True, slots=True)`` (or a
``NamedTuple``) for immutability, and all validation happens in
``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    ChangeEvent: One ``RecordChanged`` log entry: name key, label key,
        record type, opaque data, and ledger position.
    RecordFilter: Exact-name query scope shared by the reader and listener.
    RecordState: Read-only mapping of
        [RecordKey][dwebns.models.record.RecordKey] to
        [RecordEntry][dwebns.models.record.RecordEntry] derived from the log.
    CommitHandle: Confirmation of an included write.
    RecordType: Known record type tags with display metadata.
    RecordBand: Band partition of the record type space.

See Also:
    [dwebns.codecs][]: Key and value codecs that produce and consume the
        byte fields of these models.
"""

from .constants import (
    KEY_SIZE,
    RECORD_TYPE_MAX,
    RecordBand,
    RecordType,
    ServiceName,
    band_of,
    record_type_name,
)
from .event import ChangeEvent, EventPosition, RecordFilter
from .record import CommitHandle, RecordEntry, RecordKey, RecordState


__all__ = [
    "KEY_SIZE",
    "RECORD_TYPE_MAX",
    "ChangeEvent",
    "CommitHandle",
    "EventPosition",
    "RecordBand",
    "RecordEntry",
    "RecordFilter",
    "RecordKey",
    "RecordState",
    "RecordType",
    "ServiceName",
    "band_of",
    "record_type_name",
]
