"""Record protocol services: read, reduce, write, watch.

Top of the dependency DAG. Each module uses
[Ledger][dwebns.core.ledger.Ledger] for ledger access and an injected
[CodecRegistry][dwebns.codecs.registry.CodecRegistry] for values.

Attributes:
    EventLogReader: Ordered change events of one name.
    RecordReducer: Last-writer-wins fold into a
        [RecordState][dwebns.models.record.RecordState].
    RecordSubmitter: Confirmed writes and tombstones.
    LiveUpdateListener: Polling service signalling changes per name.
    RecordsClient: Facade wiring all of the above.
"""

from .client import RecordsClient
from .listener import ListenerConfig, LiveUpdateListener, Unsubscribe
from .reader import EventLogReader, name_key
from .reducer import RecordReducer, reduce
from .submitter import RecordSubmitter


__all__ = [
    "EventLogReader",
    "ListenerConfig",
    "LiveUpdateListener",
    "RecordReducer",
    "RecordSubmitter",
    "RecordsClient",
    "Unsubscribe",
    "name_key",
    "reduce",
]
