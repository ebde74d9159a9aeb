"""
gevulot_sdk.tx
==============

Transaction pipeline: build, encode, and send.

Submodules
----------
- build  : ``TransactionBuilder`` and ``GasParams`` (unsigned envelopes, fees).
- encode : SIGN_MODE_DIRECT sign-bytes, raw ``TxRaw`` packing and hashing.
- session: ``AccountSession``, the cached account number and next sequence.
- send   : ``Broadcaster`` (simulate, sign, broadcast, confirm, retry) and ``TxResult``.

Typical usage
-------------
    from gevulot_sdk.tx import Broadcaster, AccountSession, TransactionBuilder

    session = AccountSession(key.address(), query.account)
    sender = Broadcaster(transport, key, session, TransactionBuilder("gevulot"))
    result = await sender.submit([AcceptTask(task_id="t1", worker_id="w1")])
    committed = result.raise_for_result()
"""

from __future__ import annotations

from . import build as build
from . import encode as encode
from . import send as send
from . import session as session
from .build import GasParams, TransactionBuilder, UnsignedEnvelope
from .send import (Broadcaster, Committed, Exhausted, PendingTransaction,
                   RejectedPermanent, RejectedTransient, TxResult, classify)
from .session import AccountSession, Reservation

__all__ = [
    "build",
    "encode",
    "send",
    "session",
    "GasParams",
    "TransactionBuilder",
    "UnsignedEnvelope",
    "Broadcaster",
    "Committed",
    "Exhausted",
    "PendingTransaction",
    "RejectedPermanent",
    "RejectedTransient",
    "TxResult",
    "classify",
    "AccountSession",
    "Reservation",
]
