"""Render execution: one component, a batch, or a nested tree.

``RenderService`` never raises for an expected per-component failure;
every call returns a ``RenderOutcome``. The ASGI app and the in-process
test transport both sit on top of it.

Tree rendering is real composition: children render first, and the
parent receives them as ``Element`` objects (``elements``) and as a
single pre-rendered ``Markup`` block (``children``), so a parent
template can place, wrap, or iterate its children::

    <section class="card">
      {% for child in elements %}<div class="slot">{{ child }}</div>{% endfor %}
    </section>
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from kida.template import Markup

from skerry._internal.canonical import encoded_size
from skerry.errors import (
    ComponentResolutionError,
    MalformedRenderRequestError,
    PayloadTooLargeError,
    RenderError,
    RenderExecutionError,
)
from skerry.islands.types import RenderFailure, RenderOutcome, RenderSuccess
from skerry.ssr.bundles import BundleCache
from skerry.ssr.compiler import CompiledComponent
from skerry.ssr.inference import infer_props

logger = logging.getLogger("skerry.ssr")


@dataclass(frozen=True, slots=True)
class Element:
    """A rendered child handed to its parent during tree rendering."""

    component: str
    props: Mapping[str, Any] = field(default_factory=dict)
    html: Markup = field(default_factory=Markup)

    def __html__(self) -> str:
        return str(self.html)

    def __str__(self) -> str:
        return str(self.html)


class RenderService:
    """Render components through a ``BundleCache``.

    ``include_stack`` adds the Python traceback to failures; the app
    turns it on in development.
    """

    def __init__(
        self,
        bundles: BundleCache,
        *,
        max_payload_bytes: int | None = None,
        include_stack: bool = False,
    ) -> None:
        self._bundles = bundles
        self._max_payload_bytes = max_payload_bytes
        self._include_stack = include_stack

    @property
    def bundles(self) -> BundleCache:
        return self._bundles

    def render_one(
        self,
        path: str | None,
        props: Mapping[str, Any] | None = None,
        *,
        include_metadata: bool = False,
    ) -> RenderOutcome:
        """Render a single component. ``include_metadata`` adds the bundle key."""
        try:
            self._check_payload(props, component=path)
            context = self._props(props, component=path)
            with self._bundles.acquire(self._require_path(path)) as component:
                html = self._execute(component, context)
        except RenderError as exc:
            return self._failure(exc)
        bundle_key = component.bundle_key if include_metadata else None
        return RenderSuccess(html=html, bundle_key=bundle_key)

    def render_batch(self, specs: Sequence[Mapping[str, Any]]) -> list[RenderOutcome]:
        """Render independent components; output order matches *specs*."""
        results: list[RenderOutcome] = []
        for spec in specs:
            if not isinstance(spec, Mapping):
                results.append(RenderFailure("Batch entry must be an object", kind="render"))
                continue
            results.append(self.render_one(spec.get("componentPath"), spec.get("props")))
        return results

    def render_tree(self, tree: Mapping[str, Any]) -> RenderOutcome:
        """Render a root component with its children as nested elements."""
        try:
            if not isinstance(tree, Mapping):
                msg = "tree must be a component node"
                raise MalformedRenderRequestError(msg)
            self._check_payload(tree, component=tree.get("componentPath"))
            element = self._render_node(tree)
        except RenderError as exc:
            return self._failure(exc)
        return RenderSuccess(html=str(element.html))

    def infer_props(self, source: str) -> list[str]:
        return infer_props(source)

    # -- internals ---------------------------------------------------------

    def _render_node(self, node: Mapping[str, Any]) -> Element:
        path = self._require_path(node.get("componentPath"))
        props = self._props(node.get("props"), component=path)
        children = node.get("children") or []
        if not isinstance(children, (list, tuple)) or not all(
            isinstance(child, Mapping) for child in children
        ):
            msg = "children must be a list of component nodes"
            raise MalformedRenderRequestError(msg, component=path)
        html_children = node.get("htmlChildren") or ""
        if not isinstance(html_children, str):
            msg = "htmlChildren must be a string"
            raise MalformedRenderRequestError(msg, component=path)

        elements = tuple(self._render_node(child) for child in children)
        parts = [element.html for element in elements]
        if html_children.strip():
            parts.append(Markup(f"<div>{html_children}</div>"))

        context = {**props, "children": Markup("".join(parts)), "elements": elements}
        with self._bundles.acquire(path) as component:
            html = self._execute(component, context)
        return Element(component=str(node.get("component") or path), props=props, html=Markup(html))

    def _execute(self, component: CompiledComponent, context: dict[str, Any]) -> str:
        try:
            return component.render(context)
        except Exception as exc:
            msg = f"{type(exc).__name__}: {exc}"
            raise RenderExecutionError(msg, component=component.path) from exc

    def _check_payload(self, payload: Any, *, component: str | None) -> None:
        if self._max_payload_bytes is None or payload is None:
            return
        size = encoded_size(payload)
        if size > self._max_payload_bytes:
            raise PayloadTooLargeError(
                f"Payload too large: {size} bytes exceeds limit of {self._max_payload_bytes}",
                size=size,
                limit=self._max_payload_bytes,
                component=component,
            )

    @staticmethod
    def _props(props: Any, *, component: str | None) -> dict[str, Any]:
        if props is None:
            return {}
        if not isinstance(props, Mapping):
            msg = f"props must be an object, got {type(props).__name__}"
            raise MalformedRenderRequestError(msg, component=component)
        return dict(props)

    @staticmethod
    def _require_path(path: Any) -> str:
        if not isinstance(path, str) or not path:
            msg = "componentPath is required"
            raise ComponentResolutionError(msg)
        return path

    def _failure(self, exc: RenderError) -> RenderFailure:
        logger.error("Render failed for %s: %s", exc.component or "<unknown>", exc.message)
        stack = "".join(traceback.format_exception(exc)) if self._include_stack else None
        return RenderFailure(message=exc.message, kind=exc.kind, stack=stack)
