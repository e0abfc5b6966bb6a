"""Failure markup for islands that could not be rendered.

Two outputs, selected by ``IslandsConfig.debug``:

- Development: a self-contained diagnostic overlay (component, error
  kind, message, collapsible props, suggestions).
- Production: a hidden placeholder carrying ``data-skerry-error`` so
  monitoring can count failures without users seeing anything.

Plain f-strings, no template engine, so a broken template setup cannot
prevent error reporting. Every interpolation is HTML-escaped.
"""

import html
import json
from collections.abc import Mapping
from typing import Any

from skerry.islands.types import RenderFailure

_OVERLAY_STYLE = (
    "background:#1e1e1e;border:2px solid #ef4444;border-radius:8px;margin:16px 0;"
    "padding:24px;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',sans-serif;"
    "color:#e5e5e5"
)
_CODE_STYLE = (
    "background:#0a0a0a;border:1px solid #404040;border-radius:6px;padding:16px;"
    "font-family:Menlo,Monaco,monospace;font-size:13px;overflow-x:auto"
)

_SUGGESTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("not found", "cannot find", "no such file"),
        "Check that the component file exists in one of the configured component_dirs.",
    ),
    (
        ("not found", "cannot find"),
        "Component names are matched as PascalCase, snake_case, camelCase, and kebab-case.",
    ),
    (
        ("timed out", "timeout"),
        "The SSR service did not answer in time. "
        "Check that it is running and raise ssr_timeout if renders are slow.",
    ),
    (
        ("unreachable", "connection", "connect"),
        "Start the SSR service (python -m skerry.ssr) and check ssr_url.",
    ),
    (
        ("payload", "too large"),
        "Pass fewer or smaller props, or raise max_payload_bytes on both sides.",
    ),
    (
        ("undefined", "has no attribute", "keyerror"),
        "A prop the template reads was not passed. Check attribute names on the tag.",
    ),
    (
        ("syntax", "unexpected", "expected"),
        "The component template failed to compile. Check its kida syntax.",
    ),
    (
        ("tree rendering",),
        "Enable tree_rendering_enabled or avoid nesting component tags.",
    ),
)


def _esc(text: Any) -> str:
    return html.escape(str(text), quote=True)


def suggestions_for(message: str) -> list[str]:
    """Hints for a failure message, in a fixed order, without duplicates."""
    lowered = message.lower()
    found: list[str] = []
    for needles, hint in _SUGGESTIONS:
        if any(needle in lowered for needle in needles) and hint not in found:
            found.append(hint)
    return found


def render_overlay(component: str, props: Mapping[str, Any], failure: RenderFailure) -> str:
    """Development diagnostic box for a failed island."""
    error_class, _, detail = failure.message.partition(":")
    if not detail:
        error_class, detail = failure.kind, failure.message

    parts = [
        f'<div class="skerry-error-overlay" data-skerry-error="{_esc(failure.kind)}" '
        f'data-component="{_esc(component)}" style="{_OVERLAY_STYLE}">',
        '<h3 style="margin:0 0 8px 0;font-size:18px;color:#ef4444">Skerry SSR error</h3>',
        f'<p style="margin:0 0 16px 0;font-size:14px;color:#a3a3a3">Failed to render '
        f'<strong style="color:#60a5fa">&lt;{_esc(component)} /&gt;</strong> '
        f"({_esc(failure.kind)})</p>",
        f'<div style="{_CODE_STYLE};margin-bottom:16px">'
        f'<div style="color:#ef4444;font-weight:600;margin-bottom:8px">'
        f"{_esc(error_class.strip())}</div>"
        f'<div style="white-space:pre-wrap;word-break:break-word">{_esc(detail.strip())}</div>'
        f"</div>",
    ]

    if props:
        pretty = json.dumps(dict(props), indent=2, sort_keys=True, default=str)
        parts.append(
            '<details style="margin-bottom:16px"><summary style="cursor:pointer;'
            'font-weight:600;font-size:14px;color:#a3a3a3">Component props</summary>'
            f'<pre style="{_CODE_STYLE};margin:8px 0 0 0;color:#22d3ee">{_esc(pretty)}</pre>'
            "</details>"
        )

    if failure.stack:
        parts.append(
            '<details style="margin-bottom:16px"><summary style="cursor:pointer;'
            'font-weight:600;font-size:14px;color:#a3a3a3">Stack</summary>'
            f'<pre style="{_CODE_STYLE};margin:8px 0 0 0">{_esc(failure.stack)}</pre>'
            "</details>"
        )

    hints = suggestions_for(failure.message)
    if hints:
        items = "".join(f'<li style="margin-bottom:8px">{_esc(hint)}</li>' for hint in hints)
        parts.append(
            '<div style="border:1px solid #3b82f6;border-radius:6px;padding:16px">'
            '<div style="font-weight:600;color:#60a5fa;margin-bottom:12px">Suggestions</div>'
            f'<ul style="margin:0;padding-left:20px">{items}</ul></div>'
        )

    parts.append(
        '<p style="margin:16px 0 0 0;font-size:12px;color:#737373">'
        "Shown because islands debug mode is on. Production pages get a hidden placeholder.</p>"
    )
    parts.append("</div>")
    return "".join(parts)


def render_placeholder(component: str, failure: RenderFailure) -> str:
    """Production marker: hidden, machine-readable, no user-visible content."""
    comment = f"skerry: {component} failed to render ({failure.kind})".replace("--", "- -")
    return (
        f'<div data-skerry-error="{_esc(failure.kind)}" '
        f'data-component="{_esc(component)}" style="display: none;">'
        f"<!-- {_esc(comment)} --></div>"
    )


def render_failure(
    component: str,
    props: Mapping[str, Any],
    failure: RenderFailure,
    *,
    debug: bool,
) -> str:
    if debug:
        return render_overlay(component, props, failure)
    return render_placeholder(component, failure)
