"""Shared fixtures: a component directory and an in-process SSR service."""

import itertools
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from kida import Environment

from skerry.config import IslandsConfig
from skerry.islands.cache import ResultCache
from skerry.islands.client import SSRClient
from skerry.islands.orchestrator import IslandOrchestrator
from skerry.ssr.bundles import BundleCache
from skerry.ssr.compiler import KidaCompiler, create_environment
from skerry.ssr.engine import RenderService
from skerry.testing import ServiceTransport

COMPONENTS = {
    "UserBadge.kida": '<span class="badge">{{ fullName }}</span>',
    "Card.kida": '<section class="card"><h2>{{ title }}</h2>{{ children }}</section>',
    "List.kida": (
        "<ul>{% for child in elements %}"
        '<li data-c="{{ child.component }}">{{ child.html }}</li>'
        "{% end %}</ul>"
    ),
    "Counter.kida": '<button data-count="{{ count }}">{{ label }}</button>',
    "Broken.kida": "<p>{{ name | explode }}</p>",
    "Malformed.kida": "<p>{% if %}</p>",
    "admin/nav_bar.kida": '<nav class="admin">{{ section }}</nav>',
    "widgets/date-picker/index.kida": '<input type="date" value="{{ value }}">',
}


def _explode(value: Any) -> str:
    msg = f"exploded on {value}"
    raise RuntimeError(msg)


@pytest.fixture
def components(tmp_path: Path) -> Path:
    root = tmp_path / "components"
    for name, source in COMPONENTS.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
    return root


@pytest.fixture
def env() -> Environment:
    environment = create_environment()
    environment.update_filters({"explode": _explode})
    return environment


@pytest.fixture
def compiler(tmp_path: Path, env: Environment) -> KidaCompiler:
    return KidaCompiler(artifact_dir=tmp_path / "artifacts", env=env)


@pytest.fixture
def bundles(compiler: KidaCompiler) -> BundleCache:
    return BundleCache(compiler, capacity=20)


@pytest.fixture
def service(bundles: BundleCache) -> RenderService:
    return RenderService(bundles)


@pytest.fixture
def transport(service: RenderService) -> ServiceTransport:
    return ServiceTransport(service)


@pytest.fixture
def island_ids() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"island-{next(counter)}"


@pytest.fixture
def make_orchestrator(
    components: Path,
    transport: ServiceTransport,
    island_ids: Callable[[], str],
) -> Iterator[Callable[..., IslandOrchestrator]]:
    """Build an orchestrator wired to the in-process service."""
    created: list[IslandOrchestrator] = []

    def factory(*, cache: ResultCache | None = None, **overrides: Any) -> IslandOrchestrator:
        settings = {"component_dirs": (components,), "retry_delay": 0.0, **overrides}
        config = IslandsConfig(**settings)
        client = SSRClient(config, transport=transport, sleep=lambda _: None)
        orchestrator = IslandOrchestrator(
            config, client=client, cache=cache, id_factory=island_ids
        )
        created.append(orchestrator)
        return orchestrator

    yield factory
    for orchestrator in created:
        orchestrator.close()
