"""
gevulot_sdk.tx.encode
=====================

Deterministic protobuf encoding for signed transactions.

This module provides:
- `sign_bytes(env)` → bytes to sign (``SignDoc`` in SIGN_MODE_DIRECT)
- `pack_signed(env, signature)` → ``TxRaw`` bytes ready for broadcast
- `pack_for_simulation(env)` → ``TxRaw`` with an empty signature (simulate skips verification)
- `unpack_signed(raw)` → ``(body_bytes, auth_info_bytes, signatures)``
- `tx_hash(raw)` → upper-case hex sha256 of the raw transaction, as the ledger indexes it
"""

from __future__ import annotations

import hashlib
from typing import List, Tuple

from google.protobuf.message import DecodeError

from ..errors import MalformedMessage
from ..proto import message_class
from .build import UnsignedEnvelope

_TX_RAW = "cosmos.tx.v1beta1.TxRaw"


def sign_bytes(env: UnsignedEnvelope) -> bytes:
    doc = message_class("cosmos.tx.v1beta1.SignDoc")(
        body_bytes=env.body_bytes,
        auth_info_bytes=env.auth_info_bytes,
        chain_id=env.chain_id,
        account_number=env.account_number,
    )
    return doc.SerializeToString(deterministic=True)


def pack_signed(env: UnsignedEnvelope, signature: bytes) -> bytes:
    if len(signature) != 64:
        raise ValueError(f"expected a 64-byte signature, got {len(signature)}")
    raw = message_class(_TX_RAW)(
        body_bytes=env.body_bytes,
        auth_info_bytes=env.auth_info_bytes,
        signatures=[bytes(signature)],
    )
    return raw.SerializeToString(deterministic=True)


def pack_for_simulation(env: UnsignedEnvelope) -> bytes:
    raw = message_class(_TX_RAW)(
        body_bytes=env.body_bytes,
        auth_info_bytes=env.auth_info_bytes,
        signatures=[b""],
    )
    return raw.SerializeToString(deterministic=True)


def unpack_signed(raw: bytes) -> Tuple[bytes, bytes, List[bytes]]:
    msg = message_class(_TX_RAW)()
    try:
        msg.ParseFromString(bytes(raw))
    except DecodeError as e:
        raise MalformedMessage(str(e), type_name=_TX_RAW) from e
    return bytes(msg.body_bytes), bytes(msg.auth_info_bytes), [bytes(s) for s in msg.signatures]


def tx_hash(raw: bytes) -> str:
    return hashlib.sha256(bytes(raw)).hexdigest().upper()


__all__ = ["sign_bytes", "pack_signed", "pack_for_simulation", "unpack_signed", "tx_hash"]
