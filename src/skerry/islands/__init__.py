"""Island discovery, rendering strategy, and result caching (host side)."""

from skerry.islands.cache import (
    CacheStore,
    GenericStore,
    MemoryStore,
    NamespacedStore,
    ResultCache,
    build_store,
)
from skerry.islands.client import SSRClient
from skerry.islands.fullpage import FullPageRenderer
from skerry.islands.literals import parse_prop_literal
from skerry.islands.orchestrator import IslandOrchestrator, PageResult
from skerry.islands.resolver import ComponentResolver
from skerry.islands.scanner import ScannedIsland, ScanResult, scan_components
from skerry.islands.types import (
    ComponentReference,
    IslandFailure,
    IslandMarker,
    RenderFailure,
    RenderOutcome,
    RenderRequest,
    RenderSuccess,
    Strategy,
)

__all__ = [
    "CacheStore",
    "ComponentReference",
    "ComponentResolver",
    "FullPageRenderer",
    "GenericStore",
    "IslandFailure",
    "IslandMarker",
    "IslandOrchestrator",
    "MemoryStore",
    "NamespacedStore",
    "PageResult",
    "RenderFailure",
    "RenderOutcome",
    "RenderRequest",
    "RenderSuccess",
    "ResultCache",
    "SSRClient",
    "ScanResult",
    "ScannedIsland",
    "Strategy",
    "build_store",
    "parse_prop_literal",
    "scan_components",
]
