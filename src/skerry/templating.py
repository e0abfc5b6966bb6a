"""Kida integration for host templates.

Registers filters so a host template can run its own output through the
islands pipeline::

    {% filter islands %}
      <h1>Team</h1>
      <UserBadge fullName="Ada" />
    {% endfilter %}

or pipe a pre-rendered fragment: ``{{ sidebar | islands }}``.
"""

import html
from typing import Any

from kida import Environment
from kida.template import Markup

from skerry._internal.canonical import canonical_json
from skerry.islands.orchestrator import IslandOrchestrator


def island_props(value: Any) -> Markup:
    """Serialize props for a ``data-*`` attribute (canonical, HTML-escaped JSON).

        <div data-props="{{ props | island_props }}"></div>
    """
    return Markup(html.escape(canonical_json(value), quote=True))


def islands_filter(orchestrator: IslandOrchestrator):
    """Build an ``islands`` filter bound to *orchestrator*."""

    def islands(value: Any) -> Markup:
        return Markup(orchestrator.transform(str(value)))

    return islands


def register_islands(env: Environment, orchestrator: IslandOrchestrator) -> Environment:
    """Add the ``islands`` and ``island_props`` filters to *env*."""
    env.update_filters(
        {
            "islands": islands_filter(orchestrator),
            "island_props": island_props,
        }
    )
    return env
