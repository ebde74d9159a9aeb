from .fetcher import EventFetcher, events_from_block_results  # noqa: F401
from .types import *  # noqa: F401,F403
from .types import __all__ as _types_all

__all__ = ["EventFetcher", "events_from_block_results", *_types_all]
