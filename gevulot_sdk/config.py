"""
SDK configuration: endpoints, chain id, fees, and retry/timeouts.

- Loads sane defaults and supports overrides via environment variables (GEVULOT_*).
- Builds the retry policy and gas parameters the transaction pipeline consumes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .utils.retry import RetryPolicy
from .version import user_agent

_DEFAULT_GRPC = "http://127.0.0.1:9090"
_DEFAULT_RPC = "http://127.0.0.1:26657"

DEFAULT_CHAIN_ID = "gevulot"
DEFAULT_DENOM = "ucredit"
DEFAULT_HRP = "gvlt"
DEFAULT_GAS_PRICE = 0.025
DEFAULT_GAS_MULTIPLIER = 1.2


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


def _optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw.strip() == "" or raw.strip().lower() == "none":
        return None
    return float(raw)


@dataclass(slots=True)
class ClientConfig:
    # Endpoints
    grpc_url: str = field(default_factory=lambda: _DEFAULT_GRPC)
    rpc_url: str = field(default_factory=lambda: _DEFAULT_RPC)
    # Chain
    chain_id: str = DEFAULT_CHAIN_ID
    denom: str = DEFAULT_DENOM
    hrp: str = DEFAULT_HRP
    # Fees
    gas_price: float = DEFAULT_GAS_PRICE
    gas_multiplier: float = DEFAULT_GAS_MULTIPLIER
    # Per-call timeout (seconds)
    request_timeout: float = 10.0
    # Submission retry budget
    max_attempts: int = 5
    backoff_base: float = 0.5
    backoff_max: float = 8.0
    max_elapsed: Optional[float] = 120.0
    # Block inclusion
    inclusion_timeout: float = 30.0
    poll_interval: float = 1.0
    # Identity
    user_agent: str = field(default_factory=user_agent)

    @classmethod
    def from_env(cls, prefix: str = "GEVULOT_") -> "ClientConfig":
        """
        Create config from environment variables:

        GEVULOT_GRPC_URL           (http/https, gRPC endpoint)
        GEVULOT_RPC_URL            (http/https, Tendermint JSON-RPC)
        GEVULOT_CHAIN_ID           (str)
        GEVULOT_DENOM              (str)
        GEVULOT_HRP                (bech32 prefix)
        GEVULOT_GAS_PRICE          (float)
        GEVULOT_GAS_MULTIPLIER     (float)
        GEVULOT_TIMEOUT            (float seconds, per call)
        GEVULOT_MAX_ATTEMPTS       (int)
        GEVULOT_BACKOFF_BASE       (float seconds)
        GEVULOT_BACKOFF_MAX        (float seconds)
        GEVULOT_MAX_ELAPSED        (float seconds, or "none")
        GEVULOT_INCLUSION_TIMEOUT  (float seconds)
        GEVULOT_POLL_INTERVAL      (float seconds)
        """
        grpc_url = _env(f"{prefix}GRPC_URL", _DEFAULT_GRPC)
        rpc_url = _env(f"{prefix}RPC_URL", _DEFAULT_RPC)
        _ensure_scheme(grpc_url, ("http", "https"))
        _ensure_scheme(rpc_url, ("http", "https"))

        return cls(
            grpc_url=grpc_url or _DEFAULT_GRPC,
            rpc_url=rpc_url or _DEFAULT_RPC,
            chain_id=_env(f"{prefix}CHAIN_ID", DEFAULT_CHAIN_ID) or DEFAULT_CHAIN_ID,
            denom=_env(f"{prefix}DENOM", DEFAULT_DENOM) or DEFAULT_DENOM,
            hrp=_env(f"{prefix}HRP", DEFAULT_HRP) or DEFAULT_HRP,
            gas_price=float(_env(f"{prefix}GAS_PRICE", str(DEFAULT_GAS_PRICE))),
            gas_multiplier=float(
                _env(f"{prefix}GAS_MULTIPLIER", str(DEFAULT_GAS_MULTIPLIER))
            ),
            request_timeout=float(_env(f"{prefix}TIMEOUT", "10.0")),
            max_attempts=int(_env(f"{prefix}MAX_ATTEMPTS", "5")),
            backoff_base=float(_env(f"{prefix}BACKOFF_BASE", "0.5")),
            backoff_max=float(_env(f"{prefix}BACKOFF_MAX", "8.0")),
            max_elapsed=_optional_float(_env(f"{prefix}MAX_ELAPSED", "120.0")),
            inclusion_timeout=float(_env(f"{prefix}INCLUSION_TIMEOUT", "30.0")),
            poll_interval=float(_env(f"{prefix}POLL_INTERVAL", "1.0")),
        )

    @classmethod
    def with_overrides(
        cls, base: Optional["ClientConfig"] = None, **overrides: Any
    ) -> "ClientConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data})
        if "grpc_url" in overrides:
            _ensure_scheme(data["grpc_url"], ("http", "https"))
        if "rpc_url" in overrides:
            _ensure_scheme(data["rpc_url"], ("http", "https"))
        return cls(**data)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.backoff_base,
            max_delay=self.backoff_max,
            max_elapsed=self.max_elapsed,
        )

    def gas_params(self, gas_limit: Optional[int] = None) -> "GasParams":
        from .tx.build import GasParams

        return GasParams(
            gas_price=self.gas_price,
            gas_multiplier=self.gas_multiplier,
            denom=self.denom,
            gas_limit=gas_limit,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grpc_url": self.grpc_url,
            "rpc_url": self.rpc_url,
            "chain_id": self.chain_id,
            "denom": self.denom,
            "hrp": self.hrp,
            "gas_price": float(self.gas_price),
            "gas_multiplier": float(self.gas_multiplier),
            "request_timeout": float(self.request_timeout),
            "max_attempts": int(self.max_attempts),
            "backoff_base": float(self.backoff_base),
            "backoff_max": float(self.backoff_max),
            "max_elapsed": self.max_elapsed,
            "inclusion_timeout": float(self.inclusion_timeout),
            "poll_interval": float(self.poll_interval),
            "user_agent": self.user_agent,
        }


__all__ = [
    "ClientConfig",
    "DEFAULT_CHAIN_ID",
    "DEFAULT_DENOM",
    "DEFAULT_HRP",
    "DEFAULT_GAS_PRICE",
    "DEFAULT_GAS_MULTIPLIER",
]
