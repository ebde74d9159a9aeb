"""
Version helpers for the Gevulot Python SDK.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def user_agent() -> str:
    """Value sent as the user agent / gRPC primary_user_agent."""
    return f"gevulot-sdk-py/{__version__}"


__all__ = ["__version__", "user_agent"]
