"""
Follow the chain block by block and hand every gevulot event to a handler.

``EventFetcher`` polls ``status`` for the latest height, then walks
``block_results`` for each block it has not processed yet. Transport retries
happen inside ``TendermintRpc``; handler errors propagate and stop the walk
with ``last_height`` still pointing at the last fully processed block.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from ..rpc.http import TendermintRpc
from .types import AbciEvent, LedgerEvent, parse_events

log = logging.getLogger(__name__)

Handler = Callable[[LedgerEvent], Awaitable[None]]


def events_from_block_results(results: Mapping[str, Any]) -> List[AbciEvent]:
    """Transaction events of one ``block_results`` payload, in delivery order."""
    out: List[AbciEvent] = []
    for tx in results.get("txs_results") or ():
        for ev in tx.get("events") or ():
            out.append(AbciEvent.from_json(ev))
    return out


class EventFetcher:
    def __init__(
        self,
        rpc: TendermintRpc,
        handler: Handler,
        *,
        start_height: Optional[int] = None,
        poll_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.rpc = rpc
        self.handler = handler
        self.last_height = start_height
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._stop = asyncio.Event()

    async def poll_once(self) -> int:
        """Process every block up to the current head; returns how many were processed."""
        latest = await self.rpc.current_height()
        if self.last_height is None:
            # no start height: begin with the next block
            self.last_height = latest
            return 0
        processed = 0
        for height in range(self.last_height + 1, latest + 1):
            results = await self.rpc.block_results(height)
            events = parse_events(events_from_block_results(results), block_height=height)
            log.debug("block %d: %d gevulot events", height, len(events))
            for event in events:
                await self.handler(event)
            self.last_height = height
            processed += 1
        return processed

    async def run(self) -> None:
        """Poll until ``stop()`` is called."""
        while not self._stop.is_set():
            await self.poll_once()
            if self._stop.is_set():
                break
            await self._sleep(self.poll_interval)

    def stop(self) -> None:
        self._stop.set()


__all__ = ["EventFetcher", "events_from_block_results"]
