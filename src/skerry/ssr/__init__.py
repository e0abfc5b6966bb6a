"""The SSR execution service: compile, cache, and render kida components."""

from skerry.ssr.app import SSRApp, build_service
from skerry.ssr.bundles import BundleCache, BundleEntry
from skerry.ssr.compiler import BundleKey, CompiledComponent, KidaCompiler
from skerry.ssr.engine import Element, RenderService

__all__ = [
    "BundleCache",
    "BundleEntry",
    "BundleKey",
    "CompiledComponent",
    "Element",
    "KidaCompiler",
    "RenderService",
    "SSRApp",
    "build_service",
]
