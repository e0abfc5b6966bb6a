"""Render orchestrator: scan a page, render its islands, splice them back.

One ``render()`` call walks a page through::

    NO_ISLANDS                        nothing to do, markup unchanged
    INDIVIDUAL | BATCH | TREE         SSR calls for uncached islands
    COMMITTED                         every island spliced back in place

Strategy per top-level island:

- Flat islands (depth 0) go out as one batch call when batching is on
  and there is more than one of them, otherwise one call each.
- Nested islands (depth >= 1) go out as one tree call each when tree
  rendering is on. With tree rendering off they fail with a
  ``configuration`` error instead of silently losing their children.
- A batch or tree call that fails wholesale falls back to one
  individual call per affected top-level island.

No island failure escapes ``render()``: each becomes a failure marker in
the page and an ``IslandFailure`` in the result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from skerry.config import IslandsConfig
from skerry.errors import NestingConfigurationError, RenderError
from skerry.islands.cache import ResultCache
from skerry.islands.client import SSRClient
from skerry.islands.markers import island_markup, new_island_id, splice
from skerry.islands.overlay import render_failure
from skerry.islands.resolver import ComponentResolver
from skerry.islands.scanner import ScannedIsland, scan_components
from skerry.islands.types import (
    IslandFailure,
    IslandMarker,
    RenderFailure,
    RenderOutcome,
    RenderRequest,
    RenderSuccess,
    Strategy,
)

logger = logging.getLogger("skerry.islands")


@dataclass(frozen=True, slots=True)
class PageResult:
    """Outcome of one page render."""

    markup: str
    state: Strategy
    strategies: frozenset[Strategy] = frozenset()
    islands: tuple[IslandMarker, ...] = ()
    failures: tuple[IslandFailure, ...] = ()
    cache_hits: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass(frozen=True, slots=True)
class _Job:
    index: int
    request: RenderRequest
    cache_key: str

    @property
    def nested(self) -> bool:
        return bool(self.request.children)


class IslandOrchestrator:
    """Turns page markup with component tags into server-rendered islands.

    Usage::

        orchestrator = IslandOrchestrator(IslandsConfig(component_dirs=("app/components",)))
        html = orchestrator.transform('<main><UserBadge fullName="Ada" /></main>')

    Every collaborator can be injected; by default they are built from
    the config.
    """

    def __init__(
        self,
        config: IslandsConfig | None = None,
        *,
        client: SSRClient | None = None,
        resolver: ComponentResolver | None = None,
        cache: ResultCache | None = None,
        id_factory: Callable[[], str] = new_island_id,
    ) -> None:
        self.config = config if config is not None else IslandsConfig()
        self.client = client if client is not None else SSRClient(self.config)
        self.resolver = (
            resolver if resolver is not None else ComponentResolver(self.config.component_dirs)
        )
        self.cache = (
            cache
            if cache is not None
            else ResultCache(
                self.config.cache_store,
                ttl=self.config.ssr_cache_ttl_seconds,
                namespace=self.config.cache_namespace,
            )
        )
        self._id_factory = id_factory

    def transform(self, markup: str) -> str:
        """Return *markup* with every component tag replaced by its island."""
        return self.render(markup).markup

    def render(self, markup: str) -> PageResult:
        if not self.config.enabled or "<" not in markup:
            return PageResult(markup=markup, state=Strategy.NO_ISLANDS)

        scan = scan_components(markup)
        if not scan.has_islands:
            return PageResult(markup=markup, state=Strategy.NO_ISLANDS)

        if scan.max_depth > self.config.max_nesting_depth_warning:
            logger.warning(
                "Component nesting depth %d exceeds warning threshold %d",
                scan.max_depth,
                self.config.max_nesting_depth_warning,
            )

        outcomes: dict[int, RenderOutcome] = {}
        render_props: dict[int, dict[str, Any]] = {}
        flat_jobs: list[_Job] = []
        tree_jobs: list[_Job] = []
        cache_hits = 0

        for index, island in enumerate(scan.islands):
            request = island.request
            if request.children:
                render_props[index] = dict(request.props)
            else:
                render_props[index] = request.flat_props()

            planned = self._plan(index, island)
            if isinstance(planned, RenderFailure):
                outcomes[index] = planned
                continue

            cached = self.cache.get(planned.cache_key)
            if cached is not None:
                outcomes[index] = RenderSuccess(html=cached)
                cache_hits += 1
                continue

            (tree_jobs if planned.nested else flat_jobs).append(planned)

        strategies: set[Strategy] = set()
        rendered: dict[int, RenderOutcome] = {}
        if flat_jobs:
            rendered.update(self._render_flat(flat_jobs, strategies))
        for job in tree_jobs:
            rendered[job.index] = self._render_tree(job, strategies)

        jobs_by_index = {job.index: job for job in (*flat_jobs, *tree_jobs)}
        for index, outcome in rendered.items():
            if isinstance(outcome, RenderSuccess):
                self.cache.put(jobs_by_index[index].cache_key, outcome.html)
        outcomes.update(rendered)

        return self._commit(markup, scan.islands, outcomes, render_props, strategies, cache_hits)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> IslandOrchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- Planning --

    def _plan(self, index: int, island: ScannedIsland) -> _Job | RenderFailure:
        """Resolve paths and build the cache key, or fail the island up front."""
        request = island.request
        if request.children and not self.config.tree_rendering_enabled:
            logger.warning(
                "<%s> contains nested component tags but tree rendering is disabled",
                request.name,
            )
            error = NestingConfigurationError(
                f"<{request.name}> contains nested component tags but tree rendering is disabled",
                component=request.name,
            )
            return RenderFailure.from_error(error)

        names = list(dict.fromkeys(node.name for node in request.walk()))
        paths, missing = self.resolver.resolve_all(names)
        if missing:
            return RenderFailure(
                message=f"Component not found: {', '.join(missing)}",
                kind="resolution",
            )

        resolved = request.with_paths(paths)
        if resolved.children:
            children = {
                "children": [child.to_wire() for child in resolved.children],
                "htmlChildren": resolved.html_children,
            }
            key = self.cache.key_for(resolved.name, resolved.props, children)
        else:
            key = self.cache.key_for(resolved.name, resolved.flat_props())
        return _Job(index=index, request=resolved, cache_key=key)

    # -- Rendering --

    def _render_flat(self, jobs: list[_Job], strategies: set[Strategy]) -> dict[int, RenderOutcome]:
        # A lone uncached island goes out as a plain /render call.
        if self.config.batch_rendering_enabled and len(jobs) > 1:
            strategies.add(Strategy.BATCH)
            try:
                results = self.client.render_batch([job.request for job in jobs])
            except RenderError as exc:
                logger.warning(
                    "Batch render failed (%s); falling back to %d individual renders",
                    exc.message,
                    len(jobs),
                )
            else:
                return {job.index: outcome for job, outcome in zip(jobs, results, strict=True)}

        strategies.add(Strategy.INDIVIDUAL)
        return {job.index: self._render_individual(job) for job in jobs}

    def _render_tree(self, job: _Job, strategies: set[Strategy]) -> RenderOutcome:
        strategies.add(Strategy.TREE)
        try:
            return self.client.render_tree(job.request)
        except RenderError as exc:
            logger.warning(
                "Tree render of <%s> failed (%s); falling back to an individual render",
                job.request.name,
                exc.message,
            )
        strategies.add(Strategy.INDIVIDUAL)
        return self._render_individual(job)

    def _render_individual(self, job: _Job) -> RenderOutcome:
        request = job.request
        return self.client.render_one(
            request.reference.path, request.flat_props(), component=request.name
        )

    # -- Commit --

    def _commit(
        self,
        markup: str,
        islands: tuple[ScannedIsland, ...],
        outcomes: dict[int, RenderOutcome],
        render_props: dict[int, dict[str, Any]],
        strategies: set[Strategy],
        cache_hits: int,
    ) -> PageResult:
        markers: list[IslandMarker] = []
        failures: list[IslandFailure] = []
        replacements: list[tuple[int, int, str]] = []

        for index, island in enumerate(islands):
            name = island.request.name
            props = render_props[index]
            outcome = outcomes[index]
            if isinstance(outcome, RenderSuccess):
                marker = IslandMarker(
                    id=self._id_factory(), component=name, html=outcome.html, props=props
                )
                markers.append(marker)
                replacements.append((island.start, island.end, island_markup(marker)))
            else:
                logger.error("Island <%s> failed (%s): %s", name, outcome.kind, outcome.message)
                failures.append(IslandFailure(component=name, props=props, failure=outcome))
                text = render_failure(name, props, outcome, debug=self.config.debug)
                replacements.append((island.start, island.end, text))

        return PageResult(
            markup=splice(markup, replacements),
            state=Strategy.COMMITTED,
            strategies=frozenset(strategies),
            islands=tuple(markers),
            failures=tuple(failures),
            cache_hits=cache_hits,
        )
