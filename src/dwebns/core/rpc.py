"""
Async JSON-RPC 2.0 client built on aiohttp.

Owns a single ``aiohttp.ClientSession`` against one node endpoint. Read-only
methods (``eth_chainId``, ``eth_blockNumber``, ``eth_getLogs``,
``eth_getTransactionReceipt``, ...) are retried with exponential or linear
backoff on transport failures. Methods that change ledger state
(``eth_sendTransaction``) are sent exactly once: a failed send surfaces
immediately and the caller decides what to do.

Errors are split in two:

- [TransportError][dwebns.exceptions.TransportError]: endpoint unreachable,
  timeout, HTTP failure without a JSON-RPC body, non-JSON or oversized body.
- [RpcError][dwebns.exceptions.RpcError]: the node answered with a JSON-RPC
  ``error`` object. Never retried.

Examples:
    ```python
    rpc = RpcClient(RpcConfig(url="http://127.0.0.1:8545"))
    async with rpc:
        head = int(await rpc.request("eth_blockNumber"), 16)
    ```

See Also:
    [Ledger][dwebns.core.ledger.Ledger]: Facade that builds resolver calls
        on top of this client.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import time
from typing import TYPE_CHECKING, Any, ClassVar

import aiohttp
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from dwebns.exceptions import RpcError, TransportError
from dwebns.models.constants import ServiceName
from dwebns.utils.http import read_bounded_json

from .logger import Logger
from .metrics import RPC_LATENCY_SECONDS, RPC_REQUESTS_TOTAL


if TYPE_CHECKING:
    from types import TracebackType


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class RpcTimeoutsConfig(BaseModel):
    """Timeouts for a single HTTP round trip (in seconds)."""

    connect: float = Field(default=5.0, ge=0.1, description="TCP connect timeout")
    request: float = Field(default=30.0, ge=0.1, description="Total request timeout")


class RpcRetryConfig(BaseModel):
    """Backoff strategy for read-only requests.

    Exponential backoff waits ``initial_delay * 2^attempt``, linear waits
    ``initial_delay * (attempt + 1)``; both are capped at ``max_delay``.
    """

    max_attempts: int = Field(default=3, ge=1, le=10, description="Attempts per read request")
    initial_delay: float = Field(default=0.5, ge=0.0, description="Initial retry delay")
    max_delay: float = Field(default=5.0, ge=0.0, description="Maximum retry delay")
    exponential_backoff: bool = Field(default=True, description="Use exponential backoff")

    @field_validator("max_delay")
    @classmethod
    def validate_max_delay(cls, v: float, info: ValidationInfo) -> float:
        """Ensure max_delay >= initial_delay."""
        initial_delay = info.data.get("initial_delay", 0.5)
        if v < initial_delay:
            raise ValueError(f"max_delay ({v}) must be >= initial_delay ({initial_delay})")
        return v


class RpcConfig(BaseModel):
    """Endpoint and transport settings for [RpcClient][dwebns.core.rpc.RpcClient]."""

    url: str = Field(
        default="http://127.0.0.1:8545",
        min_length=1,
        description="JSON-RPC endpoint URL",
    )
    timeouts: RpcTimeoutsConfig = Field(default_factory=RpcTimeoutsConfig)
    retry: RpcRetryConfig = Field(default_factory=RpcRetryConfig)
    max_response_size: int = Field(
        default=16 * 1024 * 1024,
        ge=1024,
        description="Maximum accepted response body in bytes",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url must be http(s), got {v!r}")
        return v


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RpcClient:
    """JSON-RPC client with read retries and Prometheus instrumentation.

    The session is created lazily by [connect()][dwebns.core.rpc.RpcClient.connect]
    (or on entering the async context). A session passed to the constructor
    is used as-is and never closed by this client.

    Attributes:
        IDEMPOTENT_METHODS: Methods that are safe to retry.
    """

    IDEMPOTENT_METHODS: ClassVar[frozenset[str]] = frozenset(
        {
            "eth_blockNumber",
            "eth_call",
            "eth_chainId",
            "eth_getLogs",
            "eth_getTransactionReceipt",
            "net_version",
        }
    )

    def __init__(
        self,
        config: RpcConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or RpcConfig()
        self._session = session
        self._owns_session = session is None
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._logger = Logger(ServiceName.RPC)

    @property
    def config(self) -> RpcConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    def _retry_delay(self, attempt: int) -> float:
        retry = self._config.retry
        if retry.exponential_backoff:
            delay = retry.initial_delay * (2**attempt)
        else:
            delay = retry.initial_delay * (attempt + 1)
        return float(min(delay, retry.max_delay))

    # -------------------------------------------------------------------------
    # Session Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the HTTP session. Idempotent."""
        async with self._lock:
            if self.is_connected:
                return
            timeouts = self._config.timeouts
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=timeouts.request, connect=timeouts.connect),
            )
            self._owns_session = True
            self._logger.debug("session_opened", url=self._config.url)

    async def close(self) -> None:
        """Close the session if this client opened it. Idempotent."""
        async with self._lock:
            if self._session is not None and self._owns_session:
                try:
                    await self._session.close()
                    self._logger.debug("session_closed")
                finally:
                    self._session = None

    async def __aenter__(self) -> RpcClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def _post(self, payload: dict[str, Any]) -> Any:
        """Send one HTTP POST and return the decoded JSON body.

        Raises:
            TransportError: On connection failures, timeouts, oversized or
                non-JSON bodies, and HTTP errors without a JSON body.
        """
        session = self._session
        if session is None or session.closed:
            raise TransportError("RPC session not connected. Call connect() first.")

        try:
            async with session.post(self._config.url, json=payload) as response:
                try:
                    return await read_bounded_json(response, self._config.max_response_size)
                except json.JSONDecodeError as e:
                    raise TransportError(
                        f"Non-JSON response from {self._config.url} (HTTP {response.status})"
                    ) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TransportError(f"RPC endpoint unreachable: {e or type(e).__name__}") from e
        except ValueError as e:
            raise TransportError(str(e)) from e

    async def _request_once(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        body = await self._post(payload)
        if not isinstance(body, dict):
            raise TransportError(f"Malformed JSON-RPC response for {method}")
        error = body.get("error")
        if error is not None:
            if not isinstance(error, dict):
                raise RpcError(-32603, str(error))
            raise RpcError(
                int(error.get("code", -32603)),
                str(error.get("message", "")),
                error.get("data"),
            )
        if "result" not in body:
            raise TransportError(f"JSON-RPC response for {method} has no result")
        return body["result"]

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Call *method* and return its ``result`` member.

        Retries [TransportError][dwebns.exceptions.TransportError] up to
        ``retry.max_attempts`` times for methods in ``IDEMPOTENT_METHODS``.
        All other methods get exactly one attempt.

        Raises:
            RpcError: If the node returned a JSON-RPC error object.
            TransportError: If every allowed attempt failed in transport.
        """
        params = params if params is not None else []
        attempts = self._config.retry.max_attempts if method in self.IDEMPOTENT_METHODS else 1

        for attempt in range(attempts):
            start = time.monotonic()
            try:
                result = await self._request_once(method, params)
            except RpcError as e:
                RPC_REQUESTS_TOTAL.labels(method=method, outcome="rpc_error").inc()
                self._logger.debug("rpc_error", method=method, code=e.code, error=e.message)
                raise
            except TransportError as e:
                RPC_REQUESTS_TOTAL.labels(method=method, outcome="transport_error").inc()
                if attempt + 1 >= attempts:
                    self._logger.error(
                        "rpc_failed", method=method, attempts=attempt + 1, error=str(e)
                    )
                    raise
                delay = self._retry_delay(attempt)
                self._logger.warning(
                    "rpc_retry", method=method, attempt=attempt + 1, delay_s=delay, error=str(e)
                )
                await asyncio.sleep(delay)
                continue
            RPC_REQUESTS_TOTAL.labels(method=method, outcome="ok").inc()
            RPC_LATENCY_SECONDS.labels(method=method).observe(time.monotonic() - start)
            return result

        raise RuntimeError("Unexpected state in RpcClient.request")

    def __repr__(self) -> str:
        return f"RpcClient(url={self._config.url}, connected={self.is_connected})"
