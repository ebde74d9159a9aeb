"""
gevulot_sdk.wallet.signer
=========================

secp256k1 signing keys for Gevulot accounts.

A ``KeyHandle`` owns one private key for its lifetime and exposes only what
transaction signing needs: the compressed public key, the account address and
``sign(bytes)``. Raw private key bytes are never returned.

Signatures
----------
- ECDSA over SHA-256 of the message, as the Cosmos SDK ``SIGN_MODE_DIRECT``
  verifier expects.
- Deterministic nonces (RFC 6979) via ``cryptography``'s
  ``deterministic_signing``, so the same key and message always yield the
  same signature.
- Encoded as 64 bytes ``r || s`` with low-S normalisation; the ledger rejects
  high-S signatures.
"""

from __future__ import annotations

import binascii
from dataclasses import dataclass
from typing import Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature, encode_dss_signature)

from .. import address as addr
from ..errors import KeyDerivationError
from .mnemonic import (DEFAULT_PATH, SECP256K1_N, create_mnemonic,
                       derive_private_key, mnemonic_to_seed)

__all__ = [
    "SignerInfo",
    "KeyHandle",
    "derive",
    "verify_signature",
]

SIGNATURE_LEN = 64
_HALF_N = SECP256K1_N // 2


@dataclass(frozen=True)
class SignerInfo:
    """
    Public description of a signer.

    Attributes
    ----------
    public_key : bytes
        33-byte compressed secp256k1 public key.
    address : str
        Bech32 account address.
    path : Optional[str]
        HD path the key came from, when derived from a mnemonic.
    """

    public_key: bytes
    address: str
    path: Optional[str] = None


class KeyHandle:
    """Holds one secp256k1 private key and signs with it."""

    __slots__ = ("_key", "_public_key", "_hrp", "_path")

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        *,
        hrp: str = addr.DEFAULT_HRP,
        path: Optional[str] = None,
    ) -> None:
        if not isinstance(private_key.curve, ec.SECP256K1):
            raise KeyDerivationError("key is not on secp256k1", path=path)
        self._key = private_key
        self._public_key = private_key.public_key().public_bytes(
            serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
        )
        self._hrp = hrp
        self._path = path

    # ---- constructors ----

    @classmethod
    def from_mnemonic(
        cls,
        phrase: str,
        passphrase: str = "",
        *,
        path: str = DEFAULT_PATH,
        hrp: str = addr.DEFAULT_HRP,
    ) -> "KeyHandle":
        seed = mnemonic_to_seed(phrase, passphrase)
        return cls(derive_private_key(seed, path), hrp=hrp, path=path)

    @classmethod
    def from_private_key_hex(cls, key_hex: str, *, hrp: str = addr.DEFAULT_HRP) -> "KeyHandle":
        """Import a raw 32-byte private key given as hex (with or without 0x)."""
        s = key_hex[2:] if key_hex.lower().startswith("0x") else key_hex
        try:
            raw = binascii.unhexlify(s)
        except (binascii.Error, ValueError) as e:
            raise KeyDerivationError(f"private key is not valid hex: {e}") from e
        secret = int.from_bytes(raw, "big")
        if len(raw) != 32 or not 0 < secret < SECP256K1_N:
            raise KeyDerivationError("private key must be 32 bytes and within the curve order")
        return cls(ec.derive_private_key(secret, ec.SECP256K1()), hrp=hrp)

    @classmethod
    def generate(
        cls, *, num_words: int = 24, passphrase: str = "", hrp: str = addr.DEFAULT_HRP
    ) -> Tuple["KeyHandle", str]:
        """Create a fresh mnemonic and the handle derived from it."""
        phrase = create_mnemonic(num_words)
        return cls.from_mnemonic(phrase, passphrase, hrp=hrp), phrase

    # ---- properties ----

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def path(self) -> Optional[str]:
        return self._path

    def address(self) -> str:
        return addr.from_pubkey(self._public_key, hrp=self._hrp)

    def info(self) -> SignerInfo:
        return SignerInfo(public_key=self._public_key, address=self.address(), path=self._path)

    # ---- signing ----

    def sign(self, message: bytes) -> bytes:
        """Deterministic low-S ECDSA/SHA-256 signature, 64 bytes ``r || s``."""
        der = self._key.sign(
            bytes(message), ec.ECDSA(hashes.SHA256(), deterministic_signing=True)
        )
        r, s = decode_dss_signature(der)
        if s > _HALF_N:
            s = SECP256K1_N - s
        return r.to_bytes(32, "big") + s.to_bytes(32, "big")

    def verify(self, message: bytes, signature: bytes) -> bool:
        return verify_signature(self._public_key, message, signature)

    def __repr__(self) -> str:
        return f"KeyHandle(address={self.address()!r}, path={self._path!r})"


def derive(
    phrase: str,
    passphrase: str = "",
    *,
    path: str = DEFAULT_PATH,
    hrp: str = addr.DEFAULT_HRP,
) -> KeyHandle:
    """Derive the account key for ``phrase``; raises InvalidMnemonic on a bad checksum."""
    return KeyHandle.from_mnemonic(phrase, passphrase, path=path, hrp=hrp)


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Check a 64-byte ``r || s`` signature against a compressed public key."""
    if len(signature) != SIGNATURE_LEN:
        return False
    try:
        pub = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), public_key)
    except ValueError:
        return False
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    try:
        pub.verify(encode_dss_signature(r, s), bytes(message), ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True
