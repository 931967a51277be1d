"""Core layer: ledger access, service lifecycle, logging, metrics, config.

Depends on [dwebns.models][dwebns.models], [dwebns.codecs][dwebns.codecs]
and [dwebns.utils][dwebns.utils]; depended upon by
[dwebns.services][dwebns.services].

Attributes:
    RpcClient: aiohttp JSON-RPC client with read retries.
        See [RpcClient][dwebns.core.rpc.RpcClient].
    Ledger: Resolver contract facade (logs, writes, receipts).
        Services use [Ledger][dwebns.core.ledger.Ledger], never
        [RpcClient][dwebns.core.rpc.RpcClient] directly.
    BaseService: Generic polling service base with graceful shutdown and
        metrics. See [BaseService][dwebns.core.base_service.BaseService].
    Logger: Structured key=value / JSON logger.
    MetricsServer: Prometheus ``/metrics`` endpoint.
    load_yaml: Safe YAML loading.
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .ledger import (
    RECORD_CHANGED_TOPIC,
    ConfirmationConfig,
    Ledger,
    LedgerConfig,
    Receipt,
    encode_set_record,
    parse_log,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs, setup_logging
from .metrics import (
    CYCLE_DURATION_SECONDS,
    RPC_LATENCY_SECONDS,
    RPC_REQUESTS_TOTAL,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    SUBMISSIONS_TOTAL,
    MetricsConfig,
    MetricsServer,
)
from .rpc import RpcClient, RpcConfig, RpcRetryConfig, RpcTimeoutsConfig
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "RECORD_CHANGED_TOPIC",
    "RPC_LATENCY_SECONDS",
    "RPC_REQUESTS_TOTAL",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "SUBMISSIONS_TOTAL",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConfirmationConfig",
    "Ledger",
    "LedgerConfig",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "Receipt",
    "RpcClient",
    "RpcConfig",
    "RpcRetryConfig",
    "RpcTimeoutsConfig",
    "StructuredFormatter",
    "encode_set_record",
    "format_kv_pairs",
    "load_yaml",
    "parse_log",
    "setup_logging",
]
