"""
gevulot_sdk.tx.build
====================

Assemble intents into an unsigned transaction envelope.

The envelope carries the encoded ``TxBody`` and ``AuthInfo`` (signer public
key, sequence, fee, gas limit) plus everything the signer needs to produce the
sign-doc. Feed it into ``gevulot_sdk.tx.encode`` for sign-bytes and the raw
wire form, and into ``gevulot_sdk.tx.send`` to broadcast.

Design notes
------------
- Intents are validated for shape only; the ledger decides legality.
- Ordering inside a batch is preserved: ``TxBody.messages[i]`` is ``intents[i]``.
- An intent whose signer field is empty is filled with the session address.
- Gas: a caller-fixed limit wins; otherwise the broadcaster simulates with
  ``SIMULATION_GAS_LIMIT`` and rebuilds with the estimate from ``GasParams``.

Examples
--------
    from gevulot_sdk.tx.build import GasParams, TransactionBuilder

    env = TransactionBuilder(chain_id="gevulot").build(
        [AcceptTask(task_id="t1", worker_id="w1")],
        sequence=7, account_number=12,
        public_key=key.public_key, signer=key.address(),
        gas_params=GasParams(), gas_limit=250_000,
    )
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from ..codec import intent_to_any
from ..errors import InvalidIntent
from ..proto import message_class, pack_any
from ..types.entities import Coin
from ..types.intents import Intent

__all__ = [
    "GasParams",
    "UnsignedEnvelope",
    "TransactionBuilder",
    "SIMULATION_GAS_LIMIT",
    "SIGN_MODE_DIRECT",
]

SIMULATION_GAS_LIMIT = 200_000
SIGN_MODE_DIRECT = 1

_SECP256K1_PUBKEY = "cosmos.crypto.secp256k1.PubKey"


# -----------------------------------------------------------------------------
# Gas & fees
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class GasParams:
    """
    Fee parameters. ``gas_limit`` of None means "simulate, then apply the
    multiplier"; a number pins the limit and skips simulation.
    """

    gas_price: float = 0.025
    gas_multiplier: float = 1.2
    denom: str = "ucredit"
    gas_limit: Optional[int] = None

    def limit_from_simulation(self, gas_used: int) -> int:
        """``ceil(gas_used * multiplier) + 1``."""
        return math.ceil(Decimal(int(gas_used)) * Decimal(str(self.gas_multiplier))) + 1

    def fee_for(self, gas_limit: int) -> Coin:
        """Fee coin paying ``gas_price`` per unit of ``gas_limit``, rounded up."""
        amount = math.ceil(Decimal(str(self.gas_price)) * Decimal(int(gas_limit)))
        return Coin(denom=self.denom, amount=amount)


# -----------------------------------------------------------------------------
# Envelope
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class UnsignedEnvelope:
    intents: Tuple[Intent, ...]
    body_bytes: bytes
    auth_info_bytes: bytes
    chain_id: str
    account_number: int
    sequence: int
    gas_limit: int
    fee: Coin
    memo: str = ""

    def __len__(self) -> int:
        return len(self.intents)


class TransactionBuilder:
    """Stateless envelope assembly for one chain."""

    def __init__(self, chain_id: str) -> None:
        if not chain_id:
            raise ValueError("chain_id is required")
        self.chain_id = chain_id

    def prepare(self, intents: Sequence[Intent], *, signer: Optional[str] = None) -> Tuple[Intent, ...]:
        """Fill empty signer fields and validate every intent's shape."""
        if not intents:
            raise InvalidIntent("a transaction needs at least one intent")
        out = []
        for intent in intents:
            if not isinstance(intent, Intent):
                raise InvalidIntent(f"not an intent: {intent!r}")
            if signer and not intent.signer:
                intent = dataclasses.replace(intent, **{intent.signer_field: signer})
            intent.validate()
            out.append(intent)
        return tuple(out)

    def build(
        self,
        intents: Sequence[Intent],
        *,
        sequence: int,
        account_number: int,
        public_key: bytes,
        gas_params: GasParams,
        gas_limit: Optional[int] = None,
        signer: Optional[str] = None,
        memo: str = "",
    ) -> UnsignedEnvelope:
        prepared = self.prepare(intents, signer=signer)
        limit = gas_limit if gas_limit is not None else gas_params.gas_limit
        if limit is None:
            limit = SIMULATION_GAS_LIMIT
        if limit <= 0:
            raise InvalidIntent(f"gas limit must be positive, got {limit}")
        fee = gas_params.fee_for(limit)

        body = message_class("cosmos.tx.v1beta1.TxBody")(memo=memo)
        for intent in prepared:
            body.messages.append(intent_to_any(intent))

        auth = message_class("cosmos.tx.v1beta1.AuthInfo")()
        si = auth.signer_infos.add()
        si.public_key.CopyFrom(pack_any(message_class(_SECP256K1_PUBKEY)(key=bytes(public_key))))
        si.mode_info.single.mode = SIGN_MODE_DIRECT
        si.sequence = sequence
        auth.fee.gas_limit = limit
        auth.fee.amount.add(denom=fee.denom, amount=str(fee.amount))

        return UnsignedEnvelope(
            intents=prepared,
            body_bytes=body.SerializeToString(deterministic=True),
            auth_info_bytes=auth.SerializeToString(deterministic=True),
            chain_id=self.chain_id,
            account_number=account_number,
            sequence=sequence,
            gas_limit=limit,
            fee=fee,
            memo=memo,
        )
