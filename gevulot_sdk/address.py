"""
gevulot_sdk.address
===================

Account address derivation and validation.

Format
------
Addresses are classic Bech32 with HRP "gvlt". The data payload is the
Cosmos SDK secp256k1 account id:

    payload = ripemd160(sha256(compressed_pubkey))     # 20 bytes

This module provides:
- from_pubkey(pubkey, hrp="gvlt") -> str
- encode(payload_bytes, hrp="gvlt") -> str
- decode(address, expected_hrp=None) -> (hrp, payload_bytes)
- validate(address, expected_hrp=None) -> bool
- module_address(name, hrp="gvlt") -> str   (module accounts, e.g. "gov")
"""

from __future__ import annotations

import hashlib
from typing import Optional, Tuple

from Crypto.Hash import RIPEMD160

from .utils import bech32

DEFAULT_HRP = "gvlt"
PAYLOAD_LEN = 20

__all__ = [
    "DEFAULT_HRP",
    "AddressError",
    "account_id",
    "from_pubkey",
    "encode",
    "decode",
    "validate",
    "module_address",
]


class AddressError(ValueError):
    """Raised for malformed or invalid addresses/payloads."""


def account_id(pubkey: bytes) -> bytes:
    """20-byte account id of a 33-byte compressed secp256k1 public key."""
    if len(pubkey) != 33 or pubkey[0] not in (2, 3):
        raise AddressError("expected a 33-byte compressed secp256k1 public key")
    return RIPEMD160.new(hashlib.sha256(pubkey).digest()).digest()


def from_pubkey(pubkey: bytes, *, hrp: str = DEFAULT_HRP) -> str:
    return encode(account_id(pubkey), hrp=hrp)


def encode(payload: bytes, *, hrp: str = DEFAULT_HRP) -> str:
    if len(payload) != PAYLOAD_LEN:
        raise AddressError(f"payload must be {PAYLOAD_LEN} bytes, got {len(payload)}")
    try:
        return bech32.encode_bytes(hrp, payload)
    except bech32.Bech32Error as e:
        raise AddressError(str(e)) from e


def decode(address: str, *, expected_hrp: Optional[str] = None) -> Tuple[str, bytes]:
    try:
        hrp, payload = bech32.decode_bytes(address, expected_hrp=expected_hrp)
    except bech32.Bech32Error as e:
        raise AddressError(str(e)) from e
    if len(payload) != PAYLOAD_LEN:
        raise AddressError(f"payload must be {PAYLOAD_LEN} bytes, got {len(payload)}")
    return hrp, payload


def validate(address: str, expected_hrp: Optional[str] = None) -> bool:
    try:
        decode(address, expected_hrp=expected_hrp)
    except AddressError:
        return False
    return True


def module_address(name: str, *, hrp: str = DEFAULT_HRP) -> str:
    """Address of a module account: the first 20 bytes of sha256(name)."""
    return encode(hashlib.sha256(name.encode()).digest()[:PAYLOAD_LEN], hrp=hrp)
