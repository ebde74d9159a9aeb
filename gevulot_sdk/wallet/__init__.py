"""
gevulot_sdk.wallet
==================

Convenience exports for wallet helpers:

- Mnemonic utilities (create/validate, BIP-39 seed, BIP-32 derivation).
- ``KeyHandle``: secp256k1 signer bound to one account.
"""

from .mnemonic import (DEFAULT_PATH, create_mnemonic, derive_private_key,
                       mnemonic_to_seed, validate_mnemonic)
from .signer import KeyHandle, SignerInfo, derive, verify_signature

__all__ = [
    # mnemonic
    "DEFAULT_PATH",
    "create_mnemonic",
    "validate_mnemonic",
    "mnemonic_to_seed",
    "derive_private_key",
    # signer
    "KeyHandle",
    "SignerInfo",
    "derive",
    "verify_signature",
]
