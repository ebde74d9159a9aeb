"""
gRPC transport over ``grpc.aio``.

The transport knows nothing about message schemas: callers pass a method path
(``/gevulot.gevulot.Query/Task``), a request message and the response class.
Serialization is protobuf's own; status codes are mapped onto the SDK error
taxonomy by ``errors.from_grpc_status``.

Anything with the same ``unary`` coroutine can stand in for the transport
(the test-suite uses an in-memory ledger this way).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence, Tuple, Type, TypeVar
from urllib.parse import urlparse

import grpc
from google.protobuf.message import Message

from ..errors import Unavailable, from_grpc_status
from ..utils.retry import RetryError, aretry_call
from ..version import user_agent

log = logging.getLogger(__name__)

M = TypeVar("M", bound=Message)

_READY_RETRIES = 5


def parse_endpoint(endpoint: str) -> Tuple[str, bool]:
    """Return ``(host:port, use_tls)`` for ``http(s)://host:port`` or bare ``host:port``."""
    if "://" not in endpoint:
        return endpoint, False
    u = urlparse(endpoint)
    if u.scheme not in ("http", "https", "grpc", "grpcs"):
        raise ValueError(f"unsupported gRPC endpoint scheme: {endpoint!r}")
    tls = u.scheme in ("https", "grpcs")
    port = u.port or (443 if tls else 9090)
    return f"{u.hostname}:{port}", tls


class GrpcTransport:
    """Generic unary caller on one long-lived channel."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        *,
        channel: Optional[grpc.aio.Channel] = None,
        timeout: float = 10.0,
        options: Sequence[Tuple[str, object]] = (),
    ) -> None:
        if channel is None:
            if endpoint is None:
                raise ValueError("endpoint or channel is required")
            target, tls = parse_endpoint(endpoint)
            opts = [("grpc.primary_user_agent", user_agent()), *options]
            if tls:
                channel = grpc.aio.secure_channel(target, grpc.ssl_channel_credentials(), options=opts)
            else:
                channel = grpc.aio.insecure_channel(target, options=opts)
            log.debug("opened gRPC channel to %s (tls=%s)", target, tls)
        self._channel = channel
        self.timeout = timeout

    @property
    def channel(self) -> grpc.aio.Channel:
        return self._channel

    async def unary(
        self,
        method: str,
        request: Message,
        response_cls: Type[M],
        *,
        timeout: Optional[float] = None,
    ) -> M:
        call = self._channel.unary_unary(
            method,
            request_serializer=lambda m: m.SerializeToString(),
            response_deserializer=response_cls.FromString,
        )
        try:
            return await call(request, timeout=timeout if timeout is not None else self.timeout)
        except grpc.aio.AioRpcError as e:
            raise from_grpc_status(e.code().name, e.details() or "", method=method) from e

    async def wait_ready(self, *, timeout: Optional[float] = None) -> None:
        """Block until the channel connects; raises ``Unavailable`` after five tries."""
        per_try = timeout if timeout is not None else self.timeout

        async def _ready() -> None:
            try:
                await asyncio.wait_for(self._channel.channel_ready(), per_try)
            except asyncio.TimeoutError as e:
                raise Unavailable(message="channel not ready", method="channel_ready") from e

        try:
            await aretry_call(
                _ready,
                retries=_READY_RETRIES - 1,
                base=0.2,
                max_delay=3.0,
                exceptions=Unavailable,
                on_retry=lambda n, e, s: log.warning("gRPC channel not ready (try %d), retrying in %.2fs", n, s),
            )
        except RetryError as e:
            raise e.last_exception from e

    async def close(self) -> None:
        await self._channel.close()


__all__ = ["GrpcTransport", "parse_endpoint"]
