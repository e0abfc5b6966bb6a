"""Skerry: server-rendered component islands for HTML pages.

Scans rendered markup for component tags, renders them through an
out-of-process SSR service, and splices the HTML back with a hydration
payload. Broken components never break the page.

Host side::

    from skerry import IslandOrchestrator, IslandsConfig

    orchestrator = IslandOrchestrator(IslandsConfig(component_dirs=("components",)))
    html = orchestrator.transform('<main><UserBadge fullName="Ada" /></main>')

SSR service (``pip install skerry[server]``)::

    python -m skerry.ssr --port 5175
"""

__version__ = "0.1.0.dev0"
__all__ = [
    "ComponentResolver",
    "FullPageRenderError",
    "FullPageRenderer",
    "IslandOrchestrator",
    "IslandsConfig",
    "PageResult",
    "RenderError",
    "ResultCache",
    "SSRApp",
    "SSRClient",
    "SSRConfig",
    "SkerryError",
    "register_islands",
    "scan_components",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import skerry`` fast and lets the host side load without the
    service modules.
    """
    if name in ("IslandsConfig", "SSRConfig"):
        from skerry import config as _config

        return getattr(_config, name)

    if name in ("IslandOrchestrator", "PageResult"):
        from skerry.islands import orchestrator as _orchestrator

        return getattr(_orchestrator, name)

    if name == "FullPageRenderer":
        from skerry.islands.fullpage import FullPageRenderer

        return FullPageRenderer

    if name == "SSRClient":
        from skerry.islands.client import SSRClient

        return SSRClient

    if name == "ComponentResolver":
        from skerry.islands.resolver import ComponentResolver

        return ComponentResolver

    if name == "ResultCache":
        from skerry.islands.cache import ResultCache

        return ResultCache

    if name == "scan_components":
        from skerry.islands.scanner import scan_components

        return scan_components

    if name == "SSRApp":
        from skerry.ssr.app import SSRApp

        return SSRApp

    if name == "register_islands":
        from skerry.templating import register_islands

        return register_islands

    if name in ("SkerryError", "RenderError", "FullPageRenderError"):
        from skerry import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
