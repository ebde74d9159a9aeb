"""
Utility helpers for the Python SDK.

- bech32: address codec primitives
- retry: retry policy and backoff helpers
"""

from .bech32 import Bech32Error, decode_bytes, encode_bytes
from .retry import RetryDecision, RetryPolicy, aretry_call, backoff_delay

__all__ = [
    # bech32
    "Bech32Error",
    "encode_bytes",
    "decode_bytes",
    # retry
    "RetryPolicy",
    "RetryDecision",
    "backoff_delay",
    "aretry_call",
]
