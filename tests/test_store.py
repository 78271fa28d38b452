"""
Tests for the menu document and its on-disk stores.

Tests MenuDocument conversion, MenuStore first-run defaults, ThemeStore
fallback and AppPaths resolution.
"""

import json

import pytest

from menu_maker.errors import PersistenceError, ValidationError
from menu_maker.forms import parse_column_value
from menu_maker.model import (
    DEFAULT_TITLE,
    Category,
    MenuDocument,
    MenuItem,
    clamp_column_count,
)
from menu_maker.store import AppPaths, MenuStore, ThemeStore
from menu_maker.themes import Theme


class TestMenuDocument:
    """Tests for MenuDocument parsing and helpers."""

    def test_from_dict_sorts_and_defaults(self):
        doc = MenuDocument.from_dict(
            {
                "categories": {
                    "Zeta": {"column": 1, "items": [{"label": "Z", "cmd": "z"}]},
                    "Alpha": {"column": 2, "items": []},
                    "Beta": {"items": []},
                },
            }
        )
        assert [c.name for c in doc.categories] == ["Beta", "Zeta", "Alpha"]
        assert doc.categories[1].items[0].description == "Item in Zeta"
        assert doc.settings.title == DEFAULT_TITLE
        assert doc.settings.columns == 1

    def test_round_trip_keeps_config_keys(self):
        doc = MenuDocument(
            categories=[Category(name="Dev", items=[MenuItem("Build", "make", "", True)])]
        )
        data = doc.to_dict()
        item = data["categories"]["Dev"]["items"][0]
        assert item == {
            "label": "Build",
            "cmd": "make",
            "info": "",
            "category": "Dev",
            "pause": True,
        }
        assert MenuDocument.from_dict(data).categories[0].items[0].pause is True

    def test_columns_clamped(self):
        assert clamp_column_count(9) == 6
        assert clamp_column_count(0) == 1
        assert clamp_column_count("nope") == 1

    def test_stored_columns_and_typed_columns_differ(self):
        """Garbage in a stored file falls back to 1; typed garbage is an error."""
        assert clamp_column_count("two") == 1
        with pytest.raises(ValidationError, match="Column must be a number"):
            parse_column_value("two", "Column must be a number")
        assert parse_column_value(" 9 ", "Column must be a number") == 6

    def test_ensure_category_creates_sorted(self):
        doc = MenuDocument(categories=[Category(name="B"), Category(name="D")])
        category = doc.ensure_category("C")
        assert doc.categories[1] is category
        assert category.expanded is True
        assert category.column == 1
        assert doc.ensure_category("C") is category

    def test_ensure_category_sorting_first_returns_new_category(self):
        doc = MenuDocument(categories=[Category(name="System Tools", items=[MenuItem("a", "a")])])
        category = doc.ensure_category("Dev")
        assert category.name == "Dev"
        assert [c.name for c in doc.categories] == ["Dev", "System Tools"]

    def test_sort_keeps_list_identity(self):
        categories = [Category(name="B"), Category(name="A")]
        doc = MenuDocument(categories=categories)
        doc.sort()
        assert doc.categories is categories
        assert [c.name for c in categories] == ["A", "B"]

    def test_ensure_default_saved_theme(self):
        doc = MenuDocument()
        assert doc.ensure_default_saved_theme() is True
        assert doc.ensure_default_saved_theme() is False
        assert [s.name for s in doc.saved_themes] == ["default"]


class TestMenuStore:
    """Tests for MenuStore load/save."""

    def test_first_run_writes_default(self, tmp_path):
        store = MenuStore(tmp_path / "menus.json")
        doc = store.load()

        assert (tmp_path / "menus.json").exists()
        assert [c.name for c in doc.categories] == ["System Tools"]
        assert doc.categories[0].items[0].command == "htop"
        assert doc.settings.theme_key == "saved:0"
        assert doc.saved_themes[0].name == "default"

    def test_save_then_load(self, tmp_path):
        store = MenuStore(tmp_path / "menus.json")
        doc = store.load()
        doc.settings.title = "Changed"
        store.save(doc)
        assert store.load().settings.title == "Changed"

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "menus.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError):
            MenuStore(path).load()

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "menus.json"
        path.write_text("[]")
        with pytest.raises(PersistenceError):
            MenuStore(path).load()


class TestThemeStore:
    """Tests for ThemeStore load/save."""

    def test_missing_file_yields_nord_and_writes_it(self, tmp_path):
        path = tmp_path / "theme.json"
        theme = ThemeStore(path).load()
        assert theme.name == "nord"
        assert json.loads(path.read_text())["skin"] == "nord"

    def test_preset_skin_loads_preset(self, tmp_path):
        path = tmp_path / "theme.json"
        path.write_text(json.dumps({"skin": "dracula", "colors": {}}))
        assert ThemeStore(path).load() == Theme.from_name("dracula")

    def test_custom_skin_keeps_colors(self, tmp_path):
        store = ThemeStore(tmp_path / "theme.json")
        theme = Theme.from_colors("Mine", {"primary": "#010203"})
        store.save(theme)
        loaded = store.load()
        assert loaded.name == "Mine"
        assert loaded.primary == "#010203"

    def test_saved_metadata(self, tmp_path):
        path = tmp_path / "theme.json"
        ThemeStore(path).save(Theme.from_name("nord"))
        data = json.loads(path.read_text())
        assert data["metadata"]["created_by"] == "Menu Maker"
        assert set(data["colors"]) == {
            "primary", "accent", "highlight", "background", "surface", "text"
        }

    def test_corrupt_file_falls_back(self, tmp_path):
        path = tmp_path / "theme.json"
        path.write_text("garbage")
        assert ThemeStore(path).load().name == "nord"


class TestAppPaths:
    def test_cli_value_wins(self, tmp_path):
        paths = AppPaths.resolve(str(tmp_path / "cli"), {"MENU_MAKER_HOME": "/elsewhere"})
        assert paths.config_dir == tmp_path / "cli"

    def test_environment_variable(self, tmp_path):
        paths = AppPaths.resolve(None, {"MENU_MAKER_HOME": str(tmp_path / "env")})
        assert paths.menus_file == tmp_path / "env" / "menus.json"

    def test_default_location(self):
        paths = AppPaths.resolve(None, {})
        assert paths.config_dir.parts[-2:] == (".local", "menu-maker")
        assert paths.bin_dir.name == "bin"
