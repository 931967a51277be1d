"""
Prometheus metrics and their HTTP exposition endpoint.

Metric objects are module-level singletons shared by every component.

Architecture:
    SERVICE_INFO:             Static metadata set once at startup.
    SERVICE_GAUGE:            Point-in-time values per component
                              (``consecutive_failures``, ``subscriptions``, ...).
    SERVICE_COUNTER:          Cumulative totals per component
                              (``cycles_success``, ``dispatches``, ...).
    CYCLE_DURATION_SECONDS:   Listener poll cycle latency.
    RPC_REQUESTS_TOTAL:       JSON-RPC calls by method and outcome.
    RPC_LATENCY_SECONDS:      JSON-RPC round-trip latency by method.
    SUBMISSIONS_TOTAL:        Record writes by outcome.

[MetricsServer][dwebns.core.metrics.MetricsServer] serves ``/metrics`` over
aiohttp when enabled in [MetricsConfig][dwebns.core.metrics.MetricsConfig].
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


if TYPE_CHECKING:
    from types import TracebackType


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Prometheus endpoint settings. Nothing is bound unless ``enabled``."""

    enabled: bool = Field(default=False, description="Expose the metrics endpoint")
    port: int = Field(default=9464, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Component metrics (BaseService.run_forever, set_gauge, inc_counter)
# ---------------------------------------------------------------------------

SERVICE_INFO = Info("dwebns", "DWebNS client metadata")

CYCLE_DURATION_SECONDS = Histogram(
    "dwebns_cycle_duration_seconds",
    "Duration of one service cycle in seconds",
    ["service"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
)

SERVICE_GAUGE = Gauge(
    "dwebns_service_gauge",
    "Component gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "dwebns_service_counter",
    "Component counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# Ledger metrics
# ---------------------------------------------------------------------------

RPC_REQUESTS_TOTAL = Counter(
    "dwebns_rpc_requests_total",
    "JSON-RPC requests by method and outcome",
    ["method", "outcome"],
)

RPC_LATENCY_SECONDS = Histogram(
    "dwebns_rpc_latency_seconds",
    "JSON-RPC round-trip latency in seconds",
    ["method"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

SUBMISSIONS_TOTAL = Counter(
    "dwebns_submissions_total",
    "Record writes by outcome",
    ["outcome"],
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """aiohttp server exposing the Prometheus exposition format.

    Usable directly (``start()``/``stop()``) or as an async context manager.

    Examples:
        ```python
        async with MetricsServer(MetricsConfig(enabled=True)):
            await listener.run_forever()
        ```
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Bind the endpoint. No-op when metrics are disabled.

        Raises:
            OSError: If the port cannot be bound.
        """
        if not self._config.enabled or self._runner is not None:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        try:
            await web.TCPSite(runner, self._config.host, self._config.port).start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    async def stop(self) -> None:
        """Release the port. Idempotent."""
        if self._runner is not None:
            runner, self._runner = self._runner, None
            await runner.cleanup()

    async def __aenter__(self) -> MetricsServer:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(body=generate_latest(), headers={"Content-Type": CONTENT_TYPE_LATEST})
