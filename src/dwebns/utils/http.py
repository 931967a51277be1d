"""Bounded HTTP body reading.

JSON-RPC responses (notably ``eth_getLogs``) can be arbitrarily large. The
helpers here stop reading once a configured size is exceeded, before any
parsing happens.

See Also:
    [RpcClient][dwebns.core.rpc.RpcClient]: Reads every response through
        [read_bounded_json()][dwebns.utils.http.read_bounded_json].
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    import aiohttp


async def read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read a whole response body, failing once it exceeds *max_size* bytes.

    Reads chunk by chunk until EOF, so chunked transfer-encoding is handled.

    Raises:
        ValueError: If the body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Read and parse a JSON body with size enforcement.

    Raises:
        ValueError: If the body exceeds *max_size*.
        json.JSONDecodeError: If the body is not valid JSON.
    """
    return json.loads(await read_bounded(response, max_size))
