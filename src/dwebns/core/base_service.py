"""
Abstract base class for long-running DWebNS services.

``BaseService[ConfigT]`` provides the lifecycle shared by polling services
such as the [LiveUpdateListener][dwebns.services.listener.LiveUpdateListener]:
structured logging via [Logger][dwebns.core.logger.Logger], graceful shutdown
via ``asyncio.Event``, interval-based cycling with
[run_forever()][dwebns.core.base_service.BaseService.run_forever], a
consecutive failure limit, and Prometheus metrics.

See Also:
    [Ledger][dwebns.core.ledger.Ledger]: Ledger facade injected into every
        service.
    [BaseServiceConfig][dwebns.core.base_service.BaseServiceConfig]: Base
        configuration model for all services.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from .logger import Logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
)
from .yaml import load_yaml


if TYPE_CHECKING:
    from types import TracebackType

    from dwebns.models.constants import ServiceName

    from .ledger import Ledger


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class BaseServiceConfig(BaseModel):
    """Base configuration shared by every service that runs in a loop.

    See Also:
        [MetricsConfig][dwebns.core.metrics.MetricsConfig]: Embedded
            configuration for the Prometheus endpoint.
    """

    interval: float = Field(
        default=5.0,
        ge=0.1,
        description="Seconds between run cycles",
    )
    max_consecutive_failures: int = Field(
        default=10,
        ge=0,
        description="Stop after this many consecutive errors (0 = unlimited)",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Abstract base class for DWebNS services.

    Subclasses set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][dwebns.core.base_service.BaseService.run], one bounded unit of
    work.

    Attributes:
        SERVICE_NAME: Identifier used in logging and metrics labels.
        CONFIG_CLASS: Pydantic model used by the factory methods.

    Note:
        Lifecycle: ``async with ledger:`` then ``async with service:`` then
        [run_forever()][dwebns.core.base_service.BaseService.run_forever]
        (or single [run()][dwebns.core.base_service.BaseService.run] calls).
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseServiceConfig]]

    def __init__(self, ledger: Ledger, config: ConfigT | None = None) -> None:
        self._ledger = ledger
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._logger = Logger(self.SERVICE_NAME)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        return self._config

    @abstractmethod
    async def run(self) -> None:
        """Execute one cycle of the service's main logic."""
        ...

    def request_shutdown(self) -> None:
        """Request a graceful shutdown. Safe to call from signal handlers."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Whether shutdown has not been requested yet."""
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Sleep up to *timeout* seconds, waking early on shutdown.

        Returns:
            ``True`` if shutdown was requested during the wait.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def run_forever(self) -> None:
        """Call [run()][dwebns.core.base_service.BaseService.run] every ``interval`` seconds.

        Exits when shutdown is requested or when
        ``max_consecutive_failures`` cycles in a row have failed (``0``
        disables the limit). ``CancelledError``, ``KeyboardInterrupt`` and
        ``SystemExit`` propagate immediately and are not counted.

        Metrics: ``cycles_success``, ``cycles_failed``,
        ``errors_{ExceptionType}`` (``SERVICE_COUNTER``);
        ``consecutive_failures``, ``last_cycle_timestamp``
        (``SERVICE_GAUGE``); ``CYCLE_DURATION_SECONDS``.
        """
        interval = self._config.interval
        max_consecutive_failures = self._config.max_consecutive_failures
        metrics_enabled = self._config.metrics.enabled

        if metrics_enabled:
            SERVICE_INFO.info({"service": str(self.SERVICE_NAME)})

        self._logger.info(
            "run_forever_started",
            interval=interval,
            max_consecutive_failures=max_consecutive_failures,
        )

        consecutive_failures = 0

        while self.is_running:
            cycle_start = time.monotonic()

            try:
                await self.run()

                self.inc_counter("cycles_success")
                if metrics_enabled:
                    CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(
                        time.monotonic() - cycle_start
                    )
                self.set_gauge("last_cycle_timestamp", time.time())
                self.set_gauge("consecutive_failures", 0)
                consecutive_failures = 0

            except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
                raise

            except Exception as e:  # top-level error boundary for run_forever
                consecutive_failures += 1
                self.inc_counter("cycles_failed")
                self.set_gauge("consecutive_failures", consecutive_failures)
                self.inc_counter(f"errors_{type(e).__name__}")

                self._logger.error(
                    "run_cycle_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    consecutive_failures=consecutive_failures,
                )

                if 0 < max_consecutive_failures <= consecutive_failures:
                    self._logger.error(
                        "max_consecutive_failures_reached",
                        failures=consecutive_failures,
                        limit=max_consecutive_failures,
                    )
                    break

            if await self.wait(interval):
                break

        self._logger.info("run_forever_stopped")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, ledger: Ledger, **kwargs: Any) -> Self:
        """Create the service from the section of a YAML file named after it."""
        data = load_yaml(config_path).get(str(cls.SERVICE_NAME)) or {}
        return cls.from_dict(data, ledger=ledger, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], ledger: Ledger, **kwargs: Any) -> Self:
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(ledger=ledger, config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set ``SERVICE_GAUGE{service, name}``. No-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment ``SERVICE_COUNTER{service, name}``. No-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
