from __future__ import annotations

"""
Tendermint JSON-RPC client (async).

- Speaks JSON-RPC 2.0 over HTTP POST using ``httpx.AsyncClient``.
- Retries transient failures (connection errors, timeouts, HTTP 429/502/503/504)
  with jittered exponential backoff; application errors are raised at once.
- The block helpers (``current_height``, ``wait_for_height``) and the event
  fetcher sit on top of ``status`` / ``block`` / ``block_results``.

Example:
    from gevulot_sdk.rpc.http import TendermintRpc
    async with TendermintRpc("http://127.0.0.1:26657") as rpc:
        print(await rpc.current_height())
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional, Union

import httpx

from ..errors import RpcError, TransportError, Unavailable
from ..utils.retry import RetryError, aretry_call
from ..version import user_agent

log = logging.getLogger(__name__)

JSON = Union[dict, list, str, int, float, bool, None]

_RETRIABLE_HTTP = (429, 502, 503, 504)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, Unavailable)


@dataclass
class TendermintRpc:
    """Async JSON-RPC 2.0 client for a node's Tendermint/CometBFT endpoint."""

    url: str
    timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.15
    backoff_max: float = 2.0
    headers: Optional[Mapping[str, str]] = None
    transport: Optional[httpx.AsyncBaseTransport] = None
    _id_counter: Iterator[int] = field(default_factory=lambda: count(start=_now_ms()))
    _client: Optional[httpx.AsyncClient] = field(init=False, default=None)

    def __post_init__(self) -> None:
        merged: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent(),
        }
        if self.headers:
            merged.update(dict(self.headers))
        self._client = httpx.AsyncClient(timeout=self.timeout, headers=merged, transport=self.transport)

    # --- context manager -------------------------------------------------

    async def __aenter__(self) -> "TendermintRpc":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # --- public API ------------------------------------------------------

    async def request(self, method: str, params: Optional[Mapping[str, Any]] = None) -> JSON:
        """Perform one JSON-RPC request and return ``result`` or raise."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._id_counter),
            "method": method,
            "params": dict(params or {}),
        }
        try:
            return await aretry_call(
                self._send_once,
                payload,
                retries=self.max_retries,
                base=self.backoff_base,
                max_delay=self.backoff_max,
                exceptions=Unavailable,
                retry_if=_is_transient,
                on_retry=lambda n, e, s: log.warning("rpc %s retry %d in %.2fs: %s", method, n, s, e),
            )
        except RetryError as e:
            raise e.last_exception from e

    async def status(self) -> Dict[str, Any]:
        return await self.request("status")

    async def block(self, height: Optional[int] = None) -> Dict[str, Any]:
        return await self.request("block", {"height": str(height)} if height is not None else None)

    async def block_results(self, height: Optional[int] = None) -> Dict[str, Any]:
        return await self.request("block_results", {"height": str(height)} if height is not None else None)

    # --- block helpers ---------------------------------------------------

    async def current_height(self) -> int:
        st = await self.status()
        try:
            return int(st["sync_info"]["latest_block_height"])
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError(method="status", status="MALFORMED", message=f"no latest_block_height in {st!r}") from e

    async def wait_for_height(
        self,
        height: int,
        *,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> int:
        """Poll ``status`` until the chain reaches ``height``; returns the observed height."""
        deadline = clock() + timeout
        while True:
            current = await self.current_height()
            if current >= height:
                return current
            if clock() >= deadline:
                raise Unavailable(message=f"height {height} not reached (at {current})", method="status")
            await sleep(poll_interval)

    # --- internals -------------------------------------------------------

    async def _send_once(self, payload: Dict[str, Any]) -> JSON:
        method = payload["method"]
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        client = self._client
        if client is None:
            raise TransportError(message="client is closed", method=method)
        try:
            r = await client.post(self.url, content=body)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise Unavailable(message=str(e) or type(e).__name__, method=method) from e
        if r.status_code in _RETRIABLE_HTTP:
            raise Unavailable(message=f"HTTP {r.status_code}", method=method, status=str(r.status_code))
        # Avoid raise_for_status() to keep the error body visible below
        try:
            resp = r.json()
        except ValueError as e:
            raise RpcError(
                method=method,
                status=f"HTTP_{r.status_code}",
                message=f"non-JSON response: {r.text[:256]}",
            ) from e

        if not isinstance(resp, dict):
            raise RpcError(method=method, status="MALFORMED", message=f"invalid response type {type(resp).__name__}")
        if resp.get("error"):
            err = resp["error"]
            detail = err.get("data") or err.get("message") or "unknown error"
            raise RpcError(method=method, status=str(err.get("code", -32603)), message=str(detail))
        if "result" not in resp:
            raise RpcError(method=method, status="MALFORMED", message="missing result")
        return resp["result"]


__all__ = ["TendermintRpc"]
