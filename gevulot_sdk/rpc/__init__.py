from .channel import GrpcTransport, parse_endpoint
from .http import TendermintRpc

__all__ = ["GrpcTransport", "TendermintRpc", "parse_endpoint"]
