"""
Gevulot SDK for Python
Convenience exports for the most common client APIs.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import ClientConfig  # noqa: F401
from .errors import (  # noqa: F401
    CodecError,
    ErrorKind,
    GevulotSdkError,
    InvalidIntent,
    InvalidMnemonic,
    KeyDerivationError,
    LedgerRejection,
    MalformedMessage,
    NotFound,
    PermanentRejection,
    RetryExhausted,
    RpcError,
    SequenceMismatch,
    TransientRejection,
    TransportError,
    Unavailable,
)

# Client facade
from .client import GevulotClient  # noqa: F401

# Transport
from .rpc.channel import GrpcTransport  # noqa: F401
from .rpc.http import TendermintRpc  # noqa: F401

# Wallet
from .wallet.mnemonic import create_mnemonic, validate_mnemonic  # noqa: F401
from .wallet.signer import KeyHandle, derive  # noqa: F401

# Queries
from .query.client import EntityKind, PageOptions, QueryClient  # noqa: F401
from .query.gov import GovQueryClient  # noqa: F401

# Tx pipeline
from .tx.build import GasParams, TransactionBuilder  # noqa: F401
from .tx.send import (  # noqa: F401
    Broadcaster,
    Committed,
    Exhausted,
    RejectedPermanent,
    RejectedTransient,
    TxResult,
)
from .tx.session import AccountSession  # noqa: F401

# Events
from .events import EventFetcher, LedgerEvent, parse_events  # noqa: F401

# Utilities
from .utils.retry import RetryPolicy  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "ClientConfig",
    "ErrorKind", "GevulotSdkError",
    "KeyDerivationError", "InvalidMnemonic",
    "CodecError", "MalformedMessage", "InvalidIntent",
    "TransportError", "Unavailable", "RpcError", "NotFound",
    "LedgerRejection", "PermanentRejection", "TransientRejection",
    "SequenceMismatch", "RetryExhausted",
    # Client
    "GevulotClient",
    # Transport
    "GrpcTransport", "TendermintRpc",
    # Wallet
    "create_mnemonic", "validate_mnemonic", "KeyHandle", "derive",
    # Queries
    "EntityKind", "PageOptions", "QueryClient", "GovQueryClient",
    # Tx
    "GasParams", "TransactionBuilder", "AccountSession", "Broadcaster",
    "Committed", "Exhausted", "RejectedPermanent", "RejectedTransient", "TxResult",
    # Events
    "EventFetcher", "LedgerEvent", "parse_events",
    # Utilities
    "RetryPolicy",
]
