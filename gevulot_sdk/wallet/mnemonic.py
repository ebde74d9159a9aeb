"""
Mnemonic helpers (BIP-39) → BIP-32 secp256k1 private key.

Design notes
------------
- Generation and checksum use the widely used `mnemonic` (Trezor) package.
  Any valid English BIP-39 phrase (12, 15, 18, 21 or 24 words) is accepted.

- Seed derivation is standard BIP-39:
    PBKDF2-HMAC-SHA512(
        password = NFKD(mnemonic),
        salt     = b"mnemonic" + NFKD(passphrase),
        iter     = 2048,
        dkLen    = 64
    )  -> 64-byte seed

- Key derivation is standard BIP-32 over secp256k1 along the Cosmos path
  ``m/44'/118'/0'/0/0``. The same phrase therefore restores the same account
  in any Cosmos-compatible wallet.
"""

from __future__ import annotations

import hashlib
import hmac
import unicodedata
from typing import List

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from mnemonic import Mnemonic

from ..errors import InvalidMnemonic, KeyDerivationError

DEFAULT_PATH = "m/44'/118'/0'/0/0"

HARDENED = 0x80000000
# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_VALID_WORD_COUNTS = (12, 15, 18, 21, 24)


# ---------- Public API ----------


def create_mnemonic(num_words: int = 24) -> str:
    """Create a new BIP-39 English mnemonic (12 or 24 words)."""
    if num_words not in (12, 24):
        raise ValueError("num_words must be 12 or 24")
    strength = 128 if num_words == 12 else 256
    return Mnemonic("english").generate(strength=strength)


def validate_mnemonic(phrase: str) -> bool:
    """Strict BIP-39 check: known words, valid length, valid checksum."""
    words = _normalize(phrase).split()
    if len(words) not in _VALID_WORD_COUNTS:
        return False
    return bool(Mnemonic("english").check(" ".join(words)))


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    """
    Convert a checksum-valid mnemonic to its 64-byte BIP-39 seed.

    Raises InvalidMnemonic if the phrase does not validate.
    """
    if not validate_mnemonic(phrase):
        raise InvalidMnemonic("mnemonic failed BIP-39 checksum validation")
    words = " ".join(_normalize(phrase).split())
    return Mnemonic.to_seed(words, passphrase=passphrase)


def parse_path(path: str) -> List[int]:
    """
    Parse ``m/44'/118'/0'/0/0`` into child indexes (hardened ones offset by 2^31).
    Accepts ``'``, ``h`` or ``H`` as the hardened marker.
    """
    parts = path.strip().split("/")
    if not parts or parts[0] != "m":
        raise KeyDerivationError("derivation path must start with 'm'", path=path)
    out: List[int] = []
    for part in parts[1:]:
        hardened = part[-1:] in ("'", "h", "H")
        digits = part[:-1] if hardened else part
        if not digits.isdigit():
            raise KeyDerivationError(f"invalid path segment {part!r}", path=path)
        index = int(digits)
        if index >= HARDENED:
            raise KeyDerivationError(f"path index out of range: {part!r}", path=path)
        out.append(index + HARDENED if hardened else index)
    return out


def derive_private_key(seed: bytes, path: str = DEFAULT_PATH) -> ec.EllipticCurvePrivateKey:
    """BIP-32 derivation of the secp256k1 private key at ``path`` from a BIP-39 seed."""
    indexes = parse_path(path)
    digest = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
    key, chain = int.from_bytes(digest[:32], "big"), digest[32:]
    if key == 0 or key >= SECP256K1_N:
        raise KeyDerivationError("seed produced an invalid master key", path=path)

    for index in indexes:
        if index & HARDENED:
            data = b"\x00" + key.to_bytes(32, "big")
        else:
            data = _compressed_point(key)
        digest = hmac.new(chain, data + index.to_bytes(4, "big"), hashlib.sha512).digest()
        tweak = int.from_bytes(digest[:32], "big")
        child = (tweak + key) % SECP256K1_N
        if tweak >= SECP256K1_N or child == 0:
            # Probability ~2^-127; BIP-32 says skip to the next index, we refuse.
            raise KeyDerivationError(f"invalid child key at index {index}", path=path)
        key, chain = child, digest[32:]

    return ec.derive_private_key(key, ec.SECP256K1())


# ---------- Internal helpers ----------


def _normalize(s: str) -> str:
    return unicodedata.normalize("NFKD", s)


def _compressed_point(secret: int) -> bytes:
    public = ec.derive_private_key(secret, ec.SECP256K1()).public_key()
    return public.public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
    )


__all__ = [
    "DEFAULT_PATH",
    "create_mnemonic",
    "validate_mnemonic",
    "mnemonic_to_seed",
    "parse_path",
    "derive_private_key",
]
