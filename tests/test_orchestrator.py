"""End-to-end island rendering: scan, strategy, cache, fallback, commit."""

import logging
from pathlib import Path

from skerry.islands.cache import ResultCache
from skerry.islands.types import Strategy
from skerry.testing import ServiceTransport

BADGE_ADA = (
    '<div data-island-uuid="island-1" data-component="UserBadge">'
    '<span class="badge">Ada</span></div>'
    '<script type="application/json" data-island-uuid="island-1">{"fullName":"Ada"}</script>'
)


class TestNoIslands:
    def test_plain_markup_untouched(self, make_orchestrator, transport: ServiceTransport) -> None:
        markup = "<main><p>Hello</p></main>"
        result = make_orchestrator().render(markup)

        assert result.state == Strategy.NO_ISLANDS
        assert result.markup == markup
        assert transport.calls == []

    def test_disabled(self, make_orchestrator, transport: ServiceTransport) -> None:
        markup = '<UserBadge fullName="Ada" />'
        result = make_orchestrator(enabled=False).render(markup)

        assert result.markup == markup
        assert transport.calls == []


class TestSingleIsland:
    def test_exact_markup(self, make_orchestrator) -> None:
        result = make_orchestrator().render('<p><UserBadge fullName="Ada" /></p>')

        assert result.markup == f"<p>{BADGE_ADA}</p>"
        assert result.state == Strategy.COMMITTED
        assert result.strategies == frozenset({Strategy.INDIVIDUAL})
        assert result.ok

    def test_transform(self, make_orchestrator) -> None:
        assert make_orchestrator().transform('<UserBadge fullName="Ada" />') == BADGE_ADA

    def test_surrounding_markup_preserved(self, make_orchestrator) -> None:
        markup = '<header>A</header><Counter count={3} label="go" /><footer>B</footer>'
        result = make_orchestrator().render(markup)

        assert result.markup.startswith("<header>A</header><div data-island-uuid=")
        assert result.markup.endswith("</script><footer>B</footer>")
        assert '<button data-count="3">go</button>' in result.markup

    def test_hydration_payload_is_script_safe(self, make_orchestrator) -> None:
        result = make_orchestrator().render('<UserBadge fullName="</script><b>" />')

        assert "&lt;/script&gt;&lt;b&gt;" in result.markup
        assert '{"fullName":"\\u003c/script\\u003e\\u003cb\\u003e"}</script>' in result.markup
        assert result.islands[0].props == {"fullName": "</script><b>"}

    def test_dotted_and_kebab_components(self, make_orchestrator) -> None:
        result = make_orchestrator().render(
            '<Admin.NavBar section="users" /><Widgets.DatePicker value="2024-01-01" />'
        )

        assert result.ok
        assert '<nav class="admin">users</nav>' in result.markup
        assert 'value="2024-01-01"' in result.markup


class TestBatching:
    def test_one_batch_call_for_flat_islands(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        result = make_orchestrator().render(
            '<UserBadge fullName="Ada" /><UserBadge fullName="Grace" />'
        )

        assert len(transport.calls_to("/batch-render")) == 1
        assert transport.calls_to("/render") == []
        assert result.strategies == frozenset({Strategy.BATCH})
        assert [island.props["fullName"] for island in result.islands] == ["Ada", "Grace"]
        assert result.markup.index("Ada") < result.markup.index("Grace")

    def test_single_flat_island_skips_batch(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        result = make_orchestrator(batch_rendering_enabled=True).render(
            '<UserBadge fullName="Ada" />'
        )

        assert transport.calls_to("/batch-render") == []
        assert len(transport.calls_to("/render")) == 1
        assert result.strategies == frozenset({Strategy.INDIVIDUAL})

    def test_one_uncached_island_left_skips_batch(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        orchestrator = make_orchestrator(cache=ResultCache(ttl=60))
        orchestrator.render('<UserBadge fullName="Ada" />')

        result = orchestrator.render('<UserBadge fullName="Ada" /><UserBadge fullName="Grace" />')

        assert result.cache_hits == 1
        assert transport.calls_to("/batch-render") == []
        assert len(transport.calls_to("/render")) == 2
        assert result.strategies == frozenset({Strategy.INDIVIDUAL})

    def test_batch_disabled_uses_individual_calls(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        make_orchestrator(batch_rendering_enabled=False).render(
            '<UserBadge fullName="Ada" /><UserBadge fullName="Grace" />'
        )

        assert transport.calls_to("/batch-render") == []
        assert len(transport.calls_to("/render")) == 2

    def test_batch_failure_falls_back_to_individual(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        transport.failures["/batch-render"] = 503
        result = make_orchestrator().render(
            '<UserBadge fullName="Ada" /><UserBadge fullName="Grace" />'
            '<Counter count={1} label="x" />'
        )

        assert len(transport.calls_to("/batch-render")) == 1
        assert len(transport.calls_to("/render")) == 3
        assert result.strategies == frozenset({Strategy.BATCH, Strategy.INDIVIDUAL})
        assert result.ok
        assert len(result.islands) == 3


class TestFailureIsolation:
    def test_one_failure_does_not_break_the_page(self, make_orchestrator) -> None:
        result = make_orchestrator().render(
            '<Broken name="x" /><p>between</p><UserBadge fullName="Ada" />'
        )

        assert result.markup.count("data-skerry-error") == 1
        assert result.markup.count('<div data-island-uuid="') == 1
        assert "<p>between</p>" in result.markup
        assert [failure.component for failure in result.failures] == ["Broken"]
        assert result.failures[0].failure.kind == "render"
        assert not result.ok

    def test_production_placeholder(self, make_orchestrator, transport: ServiceTransport) -> None:
        result = make_orchestrator().render("<Missing />")

        assert result.markup == (
            '<div data-skerry-error="resolution" data-component="Missing" style="display: none;">'
            "<!-- skerry: Missing failed to render (resolution) --></div>"
        )
        assert transport.calls == []

    def test_debug_overlay(self, make_orchestrator) -> None:
        result = make_orchestrator(debug=True).render('<Broken name="<x>" />')

        assert 'class="skerry-error-overlay"' in result.markup
        assert 'data-skerry-error="render"' in result.markup
        assert "Component props" in result.markup
        assert "<x>" not in result.markup

    def test_failure_is_logged(self, make_orchestrator, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="skerry.islands"):
            make_orchestrator().render("<Missing />")

        assert "Island <Missing> failed (resolution)" in caplog.text

    def test_service_down(self, make_orchestrator, transport: ServiceTransport) -> None:
        transport.failures["/render"] = "connect"
        result = make_orchestrator(retry_attempts=1).render('<UserBadge fullName="Ada" />')

        assert result.failures[0].failure.kind == "transport"
        assert len(transport.calls_to("/render")) == 2


class TestNesting:
    def test_tree_render(self, make_orchestrator, transport: ServiceTransport) -> None:
        result = make_orchestrator().render(
            '<Card title="Team"><UserBadge fullName="Ada" /><UserBadge fullName="Grace" /></Card>'
        )

        assert len(transport.calls_to("/render-tree")) == 1
        assert result.strategies == frozenset({Strategy.TREE})
        assert (
            '<section class="card"><h2>Team</h2>'
            '<span class="badge">Ada</span><span class="badge">Grace</span></section>'
        ) in result.markup
        assert len(result.islands) == 1
        assert result.islands[0].props == {"title": "Team"}

    def test_tree_payload_carries_children(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        make_orchestrator().render('<List><Counter count={1} label="a" /></List>')

        (call,) = transport.calls_to("/render-tree")
        tree = call.body["tree"]
        assert tree["component"] == "List"
        assert tree["children"][0]["component"] == "Counter"
        assert tree["children"][0]["props"] == {"count": 1, "label": "a"}
        assert tree["children"][0]["componentPath"].endswith("Counter.kida")

    def test_flat_and_nested_on_one_page(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        result = make_orchestrator().render(
            '<UserBadge fullName="Ada" /><Card title="T"><UserBadge fullName="Grace" /></Card>'
        )

        assert result.strategies == frozenset({Strategy.INDIVIDUAL, Strategy.TREE})
        assert len(result.islands) == 2

    def test_tree_failure_falls_back(
        self, make_orchestrator, transport: ServiceTransport, components: Path
    ) -> None:
        (components / "Panel.kida").write_text('<div class="panel">{{ title }}</div>')
        transport.failures["/render-tree"] = 503

        result = make_orchestrator().render('<Panel title="P"><UserBadge fullName="Ada" /></Panel>')

        assert len(transport.calls_to("/render-tree")) == 1
        assert len(transport.calls_to("/render")) == 1
        assert result.strategies == frozenset({Strategy.TREE, Strategy.INDIVIDUAL})
        assert '<div class="panel">P</div>' in result.markup

    def test_nesting_without_tree_rendering(
        self, make_orchestrator, transport: ServiceTransport, caplog
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="skerry.islands"):
            result = make_orchestrator(tree_rendering_enabled=False).render(
                '<Card title="T"><UserBadge fullName="Ada" /></Card>'
            )

        assert result.failures[0].failure.kind == "configuration"
        assert 'data-skerry-error="configuration"' in result.markup
        assert transport.calls == []
        assert "tree rendering is disabled" in caplog.text

    def test_depth_warning(self, make_orchestrator, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="skerry.islands"):
            make_orchestrator(max_nesting_depth_warning=0).render(
                '<Card title="T"><UserBadge fullName="Ada" /></Card>'
            )

        assert "nesting depth 1 exceeds warning threshold 0" in caplog.text

    def test_missing_child_fails_root(self, make_orchestrator, transport: ServiceTransport) -> None:
        result = make_orchestrator().render('<Card title="T"><Ghost /></Card>')

        assert result.failures[0].failure.kind == "resolution"
        assert "Ghost" in result.failures[0].failure.message
        assert transport.calls == []


class TestResultCache:
    def test_repeat_render_served_from_cache(
        self, make_orchestrator, transport: ServiceTransport
    ) -> None:
        orchestrator = make_orchestrator(cache=ResultCache(ttl=60))

        first = orchestrator.render('<UserBadge fullName="Ada" />')
        assert len(transport.calls) == 1
        assert first.cache_hits == 0

        second = orchestrator.render('<UserBadge fullName="Ada" />')
        assert len(transport.calls) == 1
        assert second.cache_hits == 1
        assert '<span class="badge">Ada</span>' in second.markup

        third = orchestrator.render('<UserBadge fullName="Grace" />')
        assert len(transport.calls) == 2
        assert third.cache_hits == 0

    def test_failures_are_not_cached(self, make_orchestrator, transport: ServiceTransport) -> None:
        orchestrator = make_orchestrator(cache=ResultCache(ttl=60))
        orchestrator.render('<Broken name="x" />')
        orchestrator.render('<Broken name="x" />')

        assert len(transport.calls_to("/render")) == 2

    def test_tree_results_cached(self, make_orchestrator, transport: ServiceTransport) -> None:
        orchestrator = make_orchestrator(cache=ResultCache(ttl=60))
        markup = '<Card title="T"><UserBadge fullName="Ada" /></Card>'
        orchestrator.render(markup)
        orchestrator.render(markup)
        orchestrator.render('<Card title="T"><UserBadge fullName="Grace" /></Card>')

        assert len(transport.calls_to("/render-tree")) == 2

    def test_cache_hits_get_fresh_island_ids(self, make_orchestrator) -> None:
        orchestrator = make_orchestrator(cache=ResultCache(ttl=60))
        first = orchestrator.render('<UserBadge fullName="Ada" />')
        second = orchestrator.render('<UserBadge fullName="Ada" />')

        assert first.islands[0].id != second.islands[0].id
