"""Island and page markup, and positional splicing.

The hydration bootstrap on the client relies on this exact shape::

    <div data-island-uuid="ID" data-component="Name">...html...</div>
    <script type="application/json" data-island-uuid="ID">{"props":"json"}</script>
"""

import html
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from skerry._internal.canonical import script_safe_json
from skerry.islands.types import IslandMarker


def new_island_id() -> str:
    return str(uuid.uuid4())


def island_markup(marker: IslandMarker) -> str:
    island_id = html.escape(marker.id, quote=True)
    component = html.escape(marker.component, quote=True)
    return (
        f'<div data-island-uuid="{island_id}" data-component="{component}">{marker.html}</div>'
        f'<script type="application/json" data-island-uuid="{island_id}">'
        f"{marker.script_payload}</script>"
    )


def page_markup(
    page_id: str,
    component: str,
    html_body: str,
    props: Mapping[str, Any],
    bundle_url: str | None,
) -> str:
    """Root container, props payload, and bundle reference for a full page."""
    page_id = html.escape(page_id, quote=True)
    parts = [
        f'<div data-page-uuid="{page_id}" data-component="{html.escape(component, quote=True)}">'
        f"{html_body}</div>",
        f'<script type="application/json" data-page-uuid="{page_id}">'
        f"{script_safe_json(dict(props))}</script>",
    ]
    if bundle_url is not None:
        src = html.escape(bundle_url, quote=True)
        parts.append(f'<script type="module" data-page-bundle="{src}"></script>')
    return "".join(parts)


def splice(markup: str, replacements: Iterable[tuple[int, int, str]]) -> str:
    """Replace ``(start, end)`` spans of *markup* with new text.

    Spans must not overlap. Applied right to left so earlier offsets stay
    valid while later regions change length.
    """
    result = markup
    for start, end, text in sorted(replacements, key=lambda item: item[0], reverse=True):
        result = result[:start] + text + result[end:]
    return result
