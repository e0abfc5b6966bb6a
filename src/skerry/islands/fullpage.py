"""Full-page rendering.

Renders an entire response body from one component. Unlike islands, a
failure here raises ``FullPageRenderError``: there is no partial page to
fall back to, so the host framework's error handling takes over.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from skerry.config import IslandsConfig
from skerry.errors import FullPageRenderError
from skerry.islands.client import SSRClient
from skerry.islands.markers import new_island_id, page_markup
from skerry.islands.resolver import ComponentResolver
from skerry.islands.types import RenderSuccess

logger = logging.getLogger("skerry.islands")


class FullPageRenderer:
    """Render a page component and emit its hydration root and bundle reference."""

    def __init__(
        self,
        config: IslandsConfig | None = None,
        *,
        client: SSRClient | None = None,
        resolver: ComponentResolver | None = None,
        id_factory: Callable[[], str] = new_island_id,
    ) -> None:
        self.config = config if config is not None else IslandsConfig()
        self.client = client if client is not None else SSRClient(self.config)
        self.resolver = (
            resolver if resolver is not None else ComponentResolver(self.config.component_dirs)
        )
        self._id_factory = id_factory

    def render(
        self,
        component: str,
        props: Mapping[str, Any] | None = None,
        *,
        explicit_keys: Iterable[str] = (),
    ) -> str:
        """Render *component* as a full page.

        With props inference on, only the props the component declares
        (plus ``explicit_keys``) are sent. When nothing can be inferred,
        every prop is sent.
        """
        if not self.config.full_page_enabled:
            msg = "Full-page rendering is disabled"
            raise FullPageRenderError(msg, kind="configuration", component=component)

        path = self.resolver.resolve(component)
        if path is None:
            msg = f"Component not found: {component}"
            raise FullPageRenderError(msg, kind="resolution", component=component)

        page_props = dict(props or {})
        if self.config.props_inference_enabled:
            page_props = self._filter_props(path, page_props, explicit_keys)

        outcome = self.client.render_one(
            path, page_props, component=component, include_metadata=True
        )
        if not isinstance(outcome, RenderSuccess):
            logger.error("Full page %s failed (%s): %s", component, outcome.kind, outcome.message)
            raise FullPageRenderError(outcome.message, kind=outcome.kind, component=component)

        bundle_url = None
        if outcome.bundle_key:
            bundle_url = f"{self.config.bundle_url_base}/{outcome.bundle_key}"
        return page_markup(self._id_factory(), component, outcome.html, page_props, bundle_url)

    def _filter_props(
        self,
        path: str,
        props: dict[str, Any],
        explicit_keys: Iterable[str],
    ) -> dict[str, Any]:
        try:
            source = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Props inference skipped for %s: %s", path, exc)
            return props

        inferred = self.client.infer_props(source)
        if not inferred:
            return props
        allowed = set(inferred) | set(explicit_keys)
        return {key: value for key, value in props.items() if key in allowed}
