"""Tests for component name resolution."""

import os
from pathlib import Path

import pytest

from skerry.islands.resolver import ComponentResolver, name_variants, to_kebab_case, to_snake_case


class TestNameVariants:
    @pytest.mark.parametrize(
        ("name", "snake", "kebab"),
        [
            ("UserBadge", "user_badge", "user-badge"),
            ("HTMLParser", "html_parser", "html-parser"),
            ("Card", "card", "card"),
            ("date-picker", "date_picker", "date-picker"),
        ],
    )
    def test_conversions(self, name: str, snake: str, kebab: str) -> None:
        assert to_snake_case(name) == snake
        assert to_kebab_case(name) == kebab

    def test_variants_are_unique_and_ordered(self) -> None:
        assert name_variants("UserBadge") == ("UserBadge", "user_badge", "userBadge", "user-badge")
        assert name_variants("card") == ("card",)


class TestResolve:
    def test_direct_file(self, components: Path) -> None:
        resolver = ComponentResolver([components])
        assert resolver.resolve("UserBadge") == str(components.resolve() / "UserBadge.kida")

    def test_snake_case_file(self, components: Path) -> None:
        resolver = ComponentResolver([components])
        assert resolver.resolve("Admin.NavBar").endswith(os.path.join("admin", "nav_bar.kida"))

    def test_index_file(self, components: Path) -> None:
        resolver = ComponentResolver([components])
        found = resolver.resolve("Widgets.DatePicker")
        assert found.endswith(os.path.join("widgets", "date-picker", "index.kida"))

    def test_recursive_case_insensitive_search(self, components: Path) -> None:
        nested = components / "deep" / "inner"
        nested.mkdir(parents=True)
        (nested / "profilecard.html").write_text("<div></div>")

        found = ComponentResolver([components]).resolve("ProfileCard")
        assert found == str(nested.resolve() / "profilecard.html")

    def test_first_directory_wins(self, components: Path, tmp_path: Path) -> None:
        override = tmp_path / "override"
        override.mkdir()
        (override / "UserBadge.kida").write_text("<b>override</b>")

        resolver = ComponentResolver([override, components])
        assert resolver.resolve("UserBadge") == str(override.resolve() / "UserBadge.kida")

    def test_explicit_path(self, components: Path) -> None:
        path = str(components / "Card.kida")
        assert ComponentResolver([]).resolve(path) == str(Path(path).resolve())

    def test_not_found_is_logged(self, components: Path, caplog) -> None:
        assert ComponentResolver([components]).resolve("Ghost") is None
        assert "Component 'Ghost' not found" in caplog.text

    def test_missing_directory_is_skipped(self, components: Path, tmp_path: Path) -> None:
        resolver = ComponentResolver([tmp_path / "absent", components])
        assert resolver.resolve("Card") is not None

    def test_resolve_all(self, components: Path) -> None:
        paths, missing = ComponentResolver([components]).resolve_all(["Card", "Ghost", "Card"])

        assert list(paths) == ["Card"]
        assert missing == ["Ghost"]


class TestCaching:
    def test_deleted_file_is_looked_up_again(self, components: Path, tmp_path: Path) -> None:
        fallback = tmp_path / "fallback"
        fallback.mkdir()
        (fallback / "Counter.kida").write_text("<i></i>")
        resolver = ComponentResolver([components, fallback])

        assert resolver.resolve("Counter") == str(components.resolve() / "Counter.kida")
        (components / "Counter.kida").unlink()
        assert resolver.resolve("Counter") == str(fallback.resolve() / "Counter.kida")

    def test_invalidate_by_path(self, components: Path) -> None:
        resolver = ComponentResolver([components])
        path = resolver.resolve("Card")
        renamed = components / "card.html"
        (components / "Card.kida").rename(renamed)
        resolver.invalidate(path=path)

        assert resolver.resolve("Card") == str(renamed.resolve())

    def test_clear(self, components: Path) -> None:
        resolver = ComponentResolver([components])
        resolver.resolve("Card")
        resolver.clear()
        (components / "Card.kida").unlink()

        assert resolver.resolve("Card") is None
