"""Tests for the kida filters that run host output through the islands pipeline."""

from kida import Environment

from skerry.ssr.compiler import create_environment
from skerry.templating import island_props, register_islands


class TestIslandsFilter:
    def test_filter_renders_islands(self, make_orchestrator) -> None:
        env = register_islands(create_environment(), make_orchestrator())
        template = env.from_string("<main>{{ body | islands }}</main>")

        html = template.render({"body": '<h1>Team</h1><UserBadge fullName="Ada" />'})

        assert html.startswith("<main><h1>Team</h1><div data-island-uuid=")
        assert '<span class="badge">Ada</span>' in html
        assert html.endswith("</script></main>")

    def test_register_returns_environment(self, make_orchestrator) -> None:
        env = create_environment()
        assert register_islands(env, make_orchestrator()) is env

    def test_plain_text_passes_through(self, make_orchestrator, transport) -> None:
        env = register_islands(create_environment(), make_orchestrator())
        html = env.from_string("{{ body | islands }}").render({"body": "<p>plain</p>"})

        assert html == "<p>plain</p>"
        assert transport.calls == []


class TestIslandProps:
    def test_canonical_and_escaped(self) -> None:
        assert str(island_props({"b": 1, "a": "<x>"})) == (
            "{&quot;a&quot;:&quot;&lt;x&gt;&quot;,&quot;b&quot;:1}"
        )

    def test_in_attribute(self, make_orchestrator) -> None:
        env: Environment = register_islands(create_environment(), make_orchestrator())
        html = env.from_string('<div data-props="{{ props | island_props }}"></div>').render(
            {"props": {"n": 1}}
        )
        assert html == '<div data-props="{&quot;n&quot;:1}"></div>'
