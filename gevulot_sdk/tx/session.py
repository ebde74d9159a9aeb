"""
Account session: the signer's address, account number and next sequence.

The cached sequence is the only shared mutable state in the client. It sits
behind one ``asyncio.Lock`` that is held just for the read-increment step
(and for a refresh, when the cache is stale), never across a broadcast.

Bookkeeping rules:

* ``reserve()`` hands out the next sequence and advances the cache.
* Any failed or cancelled attempt calls ``invalidate()``; the burned number
  is forgotten and the next ``reserve()`` re-reads the ledger.
* A sequence mismatch calls ``resync()``, which re-reads immediately so the
  next attempt does not need a second query.

The cache is never a source of truth: every refresh adopts the ledger's value.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..types.entities import AccountInfo

log = logging.getLogger(__name__)

FetchAccount = Callable[[str], Awaitable[AccountInfo]]


@dataclass(frozen=True)
class Reservation:
    sequence: int
    account_number: int


class AccountSession:
    def __init__(self, address: str, fetch_account: FetchAccount) -> None:
        self.address = address
        self._fetch = fetch_account
        self._lock = asyncio.Lock()
        self._next_sequence: Optional[int] = None
        self._account_number: Optional[int] = None
        self._stale = True
        self.refreshes = 0

    @property
    def sequence(self) -> Optional[int]:
        """Next sequence the session would hand out (None before the first refresh)."""
        return self._next_sequence

    @property
    def account_number(self) -> Optional[int]:
        return self._account_number

    @property
    def stale(self) -> bool:
        return self._stale

    async def _refresh_locked(self) -> AccountInfo:
        info = await self._fetch(self.address)
        self.refreshes += 1
        if self._next_sequence is not None and info.sequence != self._next_sequence:
            log.debug("sequence for %s: cached %d, ledger %d", self.address, self._next_sequence, info.sequence)
        self._next_sequence = info.sequence
        self._account_number = info.account_number
        self._stale = False
        return info

    async def refresh(self) -> AccountInfo:
        async with self._lock:
            return await self._refresh_locked()

    async def reserve(self) -> Reservation:
        async with self._lock:
            sequence, account_number = self._next_sequence, self._account_number
            if self._stale or sequence is None or account_number is None:
                info = await self._refresh_locked()
                sequence, account_number = info.sequence, info.account_number
            self._next_sequence = sequence + 1
            return Reservation(sequence=sequence, account_number=account_number)

    def invalidate(self) -> None:
        if not self._stale:
            log.debug("sequence cache for %s invalidated", self.address)
        self._stale = True

    async def resync(self) -> int:
        """Re-read the ledger's sequence now; returns the new next sequence."""
        async with self._lock:
            info = await self._refresh_locked()
        log.warning("resynced sequence for %s to %d", self.address, info.sequence)
        return info.sequence


__all__ = ["AccountSession", "Reservation"]
