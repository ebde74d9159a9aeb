from .client import EntityKind, EntityStream, Page, PageOptions, QueryClient
from .gov import GovQueryClient

__all__ = ["EntityKind", "EntityStream", "Page", "PageOptions", "QueryClient", "GovQueryClient"]
