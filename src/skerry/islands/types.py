"""Island data model.

Frozen dataclasses for everything that flows between the scanner, the
orchestrator, and the SSR client. ``RenderOutcome`` is a tagged union:
every render path returns one and expected per-component failures are
values, not exceptions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, TypeAlias

from skerry._internal.canonical import script_safe_json
from skerry.errors import RenderError


@dataclass(frozen=True, slots=True)
class ComponentReference:
    """A component identified by its logical name (``UserBadge``, ``Admin.Nav``).

    ``path`` is filled in once the resolver has located the source file.
    """

    name: str
    path: str | None = None

    def resolved(self, path: str) -> ComponentReference:
        return replace(self, path=path)


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """One component to render, plus its nested component children.

    ``html_children`` holds the container's inner markup with nested
    component tags removed; it is empty for self-closing tags.
    """

    reference: ComponentReference
    props: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[RenderRequest, ...] = ()
    html_children: str = ""

    @property
    def name(self) -> str:
        return self.reference.name

    @property
    def depth(self) -> int:
        """Nesting depth below this node: 0 for a leaf."""
        if not self.children:
            return 0
        return 1 + max(child.depth for child in self.children)

    def walk(self):
        """Yield this request and every descendant, parents first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def with_paths(self, paths: Mapping[str, str]) -> RenderRequest:
        """Return a copy whose references carry resolved paths by name."""
        return replace(
            self,
            reference=self.reference.resolved(paths[self.name]),
            children=tuple(child.with_paths(paths) for child in self.children),
        )

    def flat_props(self) -> dict[str, Any]:
        """Props for a single-component render.

        Inner non-component markup of a container tag travels as the
        ``children`` prop unless the tag set one explicitly.
        """
        props = dict(self.props)
        if self.html_children and "children" not in props:
            props["children"] = self.html_children
        return props

    def to_wire(self) -> dict[str, Any]:
        """Tree-shaped JSON for the ``/render-tree`` endpoint."""
        return {
            "componentPath": self.reference.path,
            "component": self.name,
            "props": dict(self.props),
            "children": [child.to_wire() for child in self.children],
            "htmlChildren": self.html_children,
        }


@dataclass(frozen=True, slots=True)
class RenderSuccess:
    html: str
    bundle_key: str | None = None

    ok = True


@dataclass(frozen=True, slots=True)
class RenderFailure:
    message: str
    kind: str = "render"
    stack: str | None = None

    ok = False

    @classmethod
    def from_error(cls, error: RenderError) -> RenderFailure:
        return cls(message=error.message, kind=error.kind)


RenderOutcome: TypeAlias = RenderSuccess | RenderFailure


def outcome_from_wire(payload: Mapping[str, Any]) -> RenderOutcome:
    """Decode a ``{"html"}`` / ``{"error", "kind"}`` response object."""
    if "error" in payload and payload["error"] is not None:
        return RenderFailure(
            message=str(payload["error"]),
            kind=str(payload.get("kind") or "render"),
            stack=payload.get("stack"),
        )
    html = payload.get("html")
    if not isinstance(html, str):
        msg = "response entry has neither 'html' nor 'error'"
        raise ValueError(msg)
    return RenderSuccess(html=html, bundle_key=payload.get("bundleKey"))


def outcome_to_wire(outcome: RenderOutcome) -> dict[str, Any]:
    if isinstance(outcome, RenderSuccess):
        body: dict[str, Any] = {"html": outcome.html}
        if outcome.bundle_key is not None:
            body["bundleKey"] = outcome.bundle_key
        return body
    body = {"error": outcome.message, "kind": outcome.kind}
    if outcome.stack is not None:
        body["stack"] = outcome.stack
    return body


class Strategy(StrEnum):
    """Orchestrator states for one page render."""

    NO_ISLANDS = "no_islands"
    INDIVIDUAL = "individual"
    BATCH = "batch"
    TREE = "tree"
    COMMITTED = "committed"


@dataclass(frozen=True, slots=True)
class IslandMarker:
    """A rendered island as committed into the page."""

    id: str
    component: str
    html: str
    props: Mapping[str, Any]

    @property
    def script_payload(self) -> str:
        return script_safe_json(dict(self.props))


@dataclass(frozen=True, slots=True)
class IslandFailure:
    """An island that could not be rendered; replaced by a failure marker."""

    component: str
    props: Mapping[str, Any]
    failure: RenderFailure
