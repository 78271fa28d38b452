"""
Tests for MenuController, driven headless with key presses and clicks.
"""

import json
import os

import pytest

from conftest import KeyPress, press, type_text

from menu_maker import importer
from menu_maker.controller import InfoPopup, MenuController, MessagePopup
from menu_maker.display import CategoryHeader, ItemEntry
from menu_maker.errors import ProcessError
from menu_maker.forms import (
    CategoryField,
    CategoryForm,
    FieldTarget,
    ItemField,
    ItemForm,
    OptionTarget,
    SettingsField,
    SettingsForm,
)
from menu_maker.layout import main_geometry
from menu_maker.model import MenuItem
from menu_maker.store import MenuStore
from menu_maker.themes import SavedTheme, Theme, default_saved_theme


def _saved(name: str, primary: str) -> dict:
    return SavedTheme(name, primary, "#222222", "#333333", "#444444", "#555555").to_dict()


def _two_category_menu() -> dict:
    return {
        "categories": {
            "Dev": {"items": [{"label": "Build", "cmd": "make"}]},
            "Ops": {"items": [{"label": "Deploy", "cmd": "deploy.sh", "pause": True}]},
        },
        "app_settings": {"title": "Test Menu", "columns": 1},
    }


def _add_item(ctrl, label: str, command: str, category: str) -> None:
    """Fill in and submit the new-item form."""
    ctrl.handle_key(press("n"))
    type_text(ctrl, label)
    ctrl.handle_key(press("tab"))
    type_text(ctrl, command)
    ctrl.handle_key(press("tab"))
    ctrl.handle_key(press("tab"))
    ctrl.handle_key(press("delete"))
    type_text(ctrl, category)
    ctrl.handle_key(press("enter"))


def _items_by_category(ctrl) -> dict:
    return {c.name: [item.label for item in c.items] for c in ctrl.categories}


def _assert_no_empty_category(ctrl) -> None:
    assert all(category.items for category in ctrl.categories)


class TestStartup:
    """Loading configuration when the controller is created."""

    def test_first_run_default_menu(self, controller, paths):
        assert [c.name for c in controller.categories] == ["System Tools"]
        assert controller.theme_key == "saved:0"
        assert controller.theme.name == "default"
        assert paths.menus_file.exists()
        assert paths.theme_file.exists()

    def test_missing_default_saved_theme_is_added_and_saved(self, empty_controller, paths):
        assert [s.name for s in empty_controller.document.saved_themes] == ["default"]
        stored = json.loads(paths.menus_file.read_text())
        assert stored["saved_themes"][0]["name"] == "default"

    def test_unreadable_menu_uses_defaults(self, paths, tmp_path):
        paths.menus_file.write_text("{broken")
        ctrl = MenuController(paths, import_dir=tmp_path / "import")
        assert isinstance(ctrl.popup, MessagePopup)
        assert ctrl.popup.message.startswith("Failed to load menu:")
        assert ctrl.status_message == "Using default menu"
        assert [c.name for c in ctrl.categories] == ["System Tools"]

    def test_status_text(self, controller):
        assert controller.status_text() == "Item 1/2 | Theme: default"
        controller.set_status("Hello")
        assert controller.status_text() == "Item 1/2 | Theme: default | Hello"


class TestMainKeys:
    """Main view keymap."""

    def test_move_wraps(self, write_menu, paths, tmp_path):
        write_menu(_two_category_menu())
        ctrl = MenuController(paths, import_dir=tmp_path / "import")
        ctrl.handle_key(press("k"))
        assert ctrl.selection == 3
        ctrl.handle_key(press("j"))
        assert ctrl.selection == 0
        ctrl.handle_key(press("down"))
        assert ctrl.selection == 1

    def test_quit(self, controller):
        controller.handle_key(press("q"))
        assert controller.should_quit

    def test_space_collapses_category(self, controller, paths):
        controller.handle_key(press("space"))
        assert controller.display.entries == [CategoryHeader(0)]
        assert controller.selection == 0
        assert MenuStore(paths.menus_file).load().categories[0].expanded is False

    def test_enter_on_header_toggles(self, controller):
        controller.handle_key(press("enter"))
        assert not controller.categories[0].expanded
        controller.handle_key(press("enter"))
        assert controller.categories[0].expanded

    def test_enter_on_item_queues_command(self, controller):
        controller.handle_key(press("j"))
        controller.handle_key(press("enter"))
        pending = controller.take_pending_command()
        assert pending.command == "htop"
        assert controller.status_message == "Running System Monitor"
        assert controller.take_pending_command() is None

    def test_info_popup(self, controller):
        controller.handle_key(press("j"))
        controller.handle_key(press("i"))
        assert isinstance(controller.popup, InfoPopup)
        assert "Command: htop" in controller.popup.text
        assert controller.popup.text.endswith("Press Enter or Esc to close.")
        controller.handle_key(press("j"))
        assert controller.selection == 1
        controller.handle_key(press("escape"))
        assert controller.popup is None
        assert not controller.should_quit

    def test_info_on_header_does_nothing(self, controller):
        controller.handle_key(press("i"))
        assert controller.popup is None

    def test_delete_last_item_removes_category(self, controller):
        controller.handle_key(press("j"))
        controller.handle_key(press("d"))
        assert controller.categories == []
        assert len(controller.display) == 0
        assert controller.status_message == "Item deleted"
        assert controller.status_text().startswith("Item 0/0")

    def test_reload(self, controller, paths):
        data = json.loads(paths.menus_file.read_text())
        data["app_settings"]["title"] = "Edited Elsewhere"
        paths.menus_file.write_text(json.dumps(data))
        controller.handle_key(press("r"))
        assert controller.title == "Edited Elsewhere"
        assert controller.status_message == "Configuration reloaded"

    def test_reload_failure_keeps_state(self, controller, paths):
        paths.menus_file.write_text("nope")
        controller.handle_key(press("r"))
        assert controller.status_message.startswith("Reload failed:")
        assert [c.name for c in controller.categories] == ["System Tools"]

    def test_settings_shortcuts_focus(self, controller):
        controller.handle_key(press("t"))
        assert isinstance(controller.popup, SettingsForm)
        assert controller.popup.focus == SettingsField.THEME
        controller.handle_key(press("escape"))
        assert controller.status_message == "Settings update cancelled"
        controller.handle_key(KeyPress("ctrl+t"))
        assert controller.popup.focus == SettingsField.TITLE


class TestRunPending:
    def test_exit_status_reported(self, controller):
        controller.handle_key(press("j"))
        controller.handle_key(press("enter"))
        pending = controller.take_pending_command()
        calls = []

        def runner(command, pause):
            calls.append((command, pause))
            return 3

        controller.run_pending(pending, runner)
        assert calls == [("htop", False)]
        assert controller.status_message == "Command exited with status 3"

    def test_spawn_failure_reported(self, controller):
        controller.handle_key(press("j"))
        controller.handle_key(press("enter"))

        def runner(command, pause):
            raise ProcessError("boom")

        controller.run_pending(controller.take_pending_command(), runner)
        assert controller.status_message == "Command failed: boom"


class TestItemEditing:
    """Item form flows through the controller."""

    def test_new_item_creates_category(self, empty_controller, paths):
        """Build/make in Dev yields [Header(Dev), Item(Build)]."""
        ctrl = empty_controller
        ctrl.handle_key(press("n"))
        assert isinstance(ctrl.popup, ItemForm)
        type_text(ctrl, "Build")
        ctrl.handle_key(press("tab"))
        type_text(ctrl, "make")
        ctrl.handle_key(press("tab"))
        ctrl.handle_key(press("tab"))
        ctrl.handle_key(press("delete"))
        type_text(ctrl, "Dev")
        ctrl.handle_key(press("enter"))

        assert ctrl.popup is None
        assert ctrl.display.entries == [CategoryHeader(0), ItemEntry(0, 0)]
        category = ctrl.categories[0]
        assert (category.name, category.expanded, category.column) == ("Dev", True, 1)
        assert category.items[0].command == "make"
        assert ctrl.selection == 1
        assert ctrl.status_message == "Item added"
        assert MenuStore(paths.menus_file).load().categories[0].name == "Dev"

    def test_invalid_item_keeps_form_open(self, controller):
        controller.handle_key(press("n"))
        controller.handle_key(press("enter"))
        assert isinstance(controller.popup, ItemForm)
        assert controller.popup.error == "Label is required"

    def test_edit_moves_item_to_other_category(self, controller):
        controller.handle_key(press("j"))
        controller.handle_key(press("e"))
        form = controller.popup
        assert form.heading == "Edit Menu Item"
        form.values[ItemField.CATEGORY] = "Other"
        controller.handle_key(press("enter"))
        assert [c.name for c in controller.categories] == ["Other"]
        assert controller.categories[0].items[0].label == "System Monitor"
        assert controller.status_message == "Item updated"
        assert controller.selection == 1

    def test_new_category_sorting_first_gets_the_item(self, controller, paths):
        """Dev sorts before System Tools; Build must land in Dev."""
        _add_item(controller, "Build", "make", "Dev")

        assert _items_by_category(controller) == {
            "Dev": ["Build"],
            "System Tools": ["System Monitor"],
        }
        _assert_no_empty_category(controller)
        assert controller.display.entries[:2] == [CategoryHeader(0), ItemEntry(0, 0)]
        assert controller.selection == 1
        stored = MenuStore(paths.menus_file).load()
        assert [c.items[0].label for c in stored.categories] == ["Build", "System Monitor"]

    def test_edit_into_new_category_sorting_first(self, controller):
        """The source category survives and the moved item lands in the new one."""
        controller.categories[0].items.append(MenuItem("Disk Usage", "df -h"))
        controller.rebuild_display()
        controller.handle_key(press("j"))
        controller.handle_key(press("e"))
        controller.popup.values[ItemField.CATEGORY] = "Alpha"
        controller.handle_key(press("enter"))

        assert _items_by_category(controller) == {
            "Alpha": ["System Monitor"],
            "System Tools": ["Disk Usage"],
        }
        _assert_no_empty_category(controller)
        assert controller.display.entries[controller.selection] == ItemEntry(0, 0)

    def test_stale_target_reports_error(self, controller):
        controller.handle_key(press("j"))
        controller.handle_key(press("e"))
        form = controller.popup
        controller.categories.clear()
        controller.handle_key(press("enter"))
        assert controller.popup is form
        assert form.error == "Item no longer exists"

    def test_cancel(self, controller):
        controller.handle_key(press("n"))
        controller.handle_key(press("escape"))
        assert controller.popup is None
        assert controller.status_message == "Item edit cancelled"


class TestCategoryEditing:
    """Category form flows through the controller."""

    def test_custom_colors_add_one_preset(self, controller, paths):
        """Background ff0000 / text 00ff00 adds exactly one preset."""
        controller.handle_key(press("e"))
        form = controller.popup
        assert isinstance(form, CategoryForm)
        form.values[CategoryField.PRESET_NAME] = "Alert"
        form.values[CategoryField.BACKGROUND] = "ff0000"
        form.values[CategoryField.TEXT] = "00ff00"
        controller.handle_key(press("enter"))

        assert controller.popup is None
        assert [p.name for p in controller.document.custom_colors] == ["Alert"]
        assert controller.categories[0].colors == {"background": "#ff0000", "text": "#00ff00"}
        assert controller.status_message == "Theme 'Alert' added | Category updated"

        controller.handle_key(press("e"))
        assert controller.popup.selected_preset.name == "Alert"
        controller.handle_key(press("enter"))
        assert len(controller.document.custom_colors) == 1
        stored = json.loads(paths.menus_file.read_text())
        assert stored["custom_colors"][0]["background"] == "#ff0000"

    def test_rename_and_move_column(self, controller):
        controller.handle_key(press("e"))
        form = controller.popup
        form.values[CategoryField.NAME] = "Tools"
        form.values[CategoryField.COLUMN] = "3"
        controller.handle_key(press("enter"))
        assert controller.categories[0].name == "Tools"
        assert controller.categories[0].column == 3
        assert controller.categories[0].colors is None

    def test_duplicate_name_rejected(self, write_menu, paths, tmp_path):
        write_menu(_two_category_menu())
        ctrl = MenuController(paths, import_dir=tmp_path / "import")
        ctrl.handle_key(press("e"))
        ctrl.popup.values[CategoryField.NAME] = "Ops"
        ctrl.handle_key(press("enter"))
        assert isinstance(ctrl.popup, CategoryForm)
        assert ctrl.popup.error == "Category name already exists"
        assert [c.name for c in ctrl.categories] == ["Dev", "Ops"]

    def test_delete_custom_preset(self, controller):
        controller.document.custom_colors.clear()
        controller.handle_key(press("e"))
        controller.popup.values[CategoryField.PRESET_NAME] = "Alert"
        controller.popup.values[CategoryField.BACKGROUND] = "#ff0000"
        controller.popup.values[CategoryField.TEXT] = "#00ff00"
        controller.handle_key(press("enter"))

        controller.handle_key(press("e"))
        form = controller.popup
        form.handle_click(FieldTarget(CategoryField.PALETTE))
        controller.handle_key(KeyPress("d", "d"))
        assert controller.document.custom_colors == []
        assert controller.status_message == "Theme 'Alert' deleted"
        assert controller.popup is form
        assert form.focus == CategoryField.PALETTE
        assert form.palette_index == len(form.presets) - 1


class TestSettings:
    """Settings form flows through the controller."""

    def test_preset_selection_creates_no_saved_theme(self, controller, paths):
        controller.handle_key(press("s"))
        form = controller.popup
        form.handle_click(OptionTarget(1))
        assert form.selected_option.key == "nord"
        for field in (
            SettingsField.PRIMARY,
            SettingsField.ACCENT,
            SettingsField.HIGHLIGHT,
            SettingsField.BACKGROUND,
            SettingsField.SURFACE,
            SettingsField.TEXT,
        ):
            form.values[field] = ""
        controller.handle_key(press("enter"))

        assert controller.popup is None
        assert controller.theme_key == "nord"
        assert controller.theme == Theme.from_name("nord")
        assert [s.name for s in controller.document.saved_themes] == ["default"]
        assert json.loads(paths.theme_file.read_text())["skin"] == "nord"
        assert controller.status_message == "Settings updated"

    def test_no_change(self, controller):
        controller.handle_key(press("s"))
        controller.handle_key(press("enter"))
        assert controller.status_message == "No settings changed"

    def test_title_and_columns(self, controller, paths):
        controller.handle_key(press("s"))
        form = controller.popup
        form.values[SettingsField.TITLE] = "My Menu"
        form.values[SettingsField.COLUMNS] = "3"
        controller.handle_key(press("enter"))
        assert controller.title == "My Menu"
        assert controller.column_count == 3
        assert len(controller.display.columns) == 3
        stored = json.loads(paths.menus_file.read_text())
        assert stored["app_settings"]["columns"] == 3

    def test_named_custom_theme_is_saved(self, controller, paths):
        controller.handle_key(press("s"))
        form = controller.popup
        form.values[SettingsField.CUSTOM_NAME] = "Sunset"
        form.values[SettingsField.PRIMARY] = "#ff8800"
        controller.handle_key(press("enter"))

        assert [s.name for s in controller.document.saved_themes] == ["default", "Sunset"]
        assert controller.theme_key == "saved:1"
        assert controller.theme.name == "Sunset"
        assert controller.theme.primary == "#ff8800"
        data = json.loads(paths.theme_file.read_text())
        assert data["skin"] == "Sunset"

    def test_unnamed_custom_theme_is_not_saved(self, controller):
        controller.handle_key(press("s"))
        controller.popup.values[SettingsField.CUSTOM_NAME] = ""
        controller.popup.values[SettingsField.PRIMARY] = "#ff8800"
        controller.handle_key(press("enter"))
        assert controller.theme_key == "custom"
        assert controller.theme.name == "Custom Theme"
        assert len(controller.document.saved_themes) == 1

    def test_invalid_custom_color_keeps_form(self, controller):
        controller.handle_key(press("s"))
        form = controller.popup
        form.values[SettingsField.PRIMARY] = "#12"
        controller.handle_key(press("enter"))
        assert controller.popup is form
        assert form.error == "Colors must use #RRGGBB format"
        assert controller.theme.name == "default"


class TestSavedThemeDeletion:
    """Deleting saved themes renumbers references."""

    @pytest.fixture
    def ctrl(self, write_menu, paths, tmp_path):
        write_menu(
            {
                "categories": {"Dev": {"items": [{"label": "Build", "cmd": "make"}]}},
                "app_settings": {"title": "T", "columns": 1, "theme_key": "saved:2"},
                "saved_themes": [
                    default_saved_theme().to_dict(),
                    _saved("Ocean", "#101010"),
                    _saved("Forest", "#202020"),
                ],
            }
        )
        return MenuController(paths, import_dir=tmp_path / "import")

    def test_later_reference_shifts_down(self, ctrl):
        assert ctrl.theme.name == "Forest"
        ctrl.open_settings(SettingsField.THEME)
        form = ctrl.popup
        form.handle_click(OptionTarget(6))
        assert form.selected_option.label == "Ocean"
        ctrl.handle_key(KeyPress("d", "d"))

        assert [s.name for s in ctrl.document.saved_themes] == ["default", "Forest"]
        assert ctrl.theme_key == "saved:1"
        assert ctrl.theme.name == "Forest"
        assert ctrl.status_message == "Custom theme deleted"
        assert form.selected_option.key == "saved:1"
        assert form.focus == SettingsField.THEME

    def test_active_theme_falls_back_to_nord(self, ctrl, paths):
        ctrl.open_settings(SettingsField.THEME)
        ctrl.handle_key(press("delete"))

        assert ctrl.theme_key == "nord"
        assert ctrl.theme == Theme.from_name("nord")
        assert json.loads(paths.theme_file.read_text())["skin"] == "nord"
        stored = json.loads(paths.menus_file.read_text())
        assert stored["app_settings"]["theme_key"] == "nord"
        assert len(stored["saved_themes"]) == 2


class TestMouse:
    """Clicks in the main view."""

    def test_click_header_toggles(self, controller):
        geometry = main_geometry(80, 24, controller.column_count)
        column = geometry.columns[0]
        controller.handle_click(column.x + 2, column.y)
        assert not controller.categories[0].expanded

    def test_click_item_queues_command(self, controller):
        column = main_geometry(80, 24, 1).columns[0]
        controller.handle_click(column.x + 2, column.y + 1)
        assert controller.selection == 1
        assert controller.take_pending_command().command == "htop"

    def test_click_footer_exit(self, controller):
        start = controller.footer.start_x(main_geometry(80, 24, 1).footer)
        controller.handle_click(start, 1)
        assert controller.should_quit

    def test_click_form_field(self, controller):
        controller.handle_key(press("n"))
        # Body starts at row 3; line 2 is the Command field.
        controller.handle_click(5, 5)
        assert controller.popup.focus == ItemField.COMMAND


class TestImportScan:
    """Ctrl+B moves executables into the bin directory."""

    def test_scan_adds_items(self, controller, paths, tmp_path):
        import_dir = tmp_path / "import"
        import_dir.mkdir()
        tool = import_dir / "my_tool-v2"
        tool.write_text("#!/bin/sh\necho hi\n")
        tool.chmod(0o755)
        (import_dir / "notes.txt").write_text("not executable")

        controller.handle_key(KeyPress("ctrl+b"))

        assert controller.status_message == "Bin directory scanned | 1 added"
        category = controller.categories[controller.document.find_category("Bin Executables")]
        item = category.items[0]
        assert item.label == "My Tool V2"
        assert item.command.endswith("/bin/my_tool-v2")
        assert item.description == "Executable: my_tool-v2"
        assert (paths.bin_dir / "my_tool-v2").exists()
        assert os.access(paths.bin_dir / "my_tool-v2", os.X_OK)
        assert not tool.exists()

    def test_scan_without_directory(self, controller):
        controller.handle_key(KeyPress("ctrl+b"))
        assert controller.status_message == "Bin directory scanned"

    def test_scan_items_stay_out_of_existing_categories(self, controller, tmp_path):
        """Bin Executables sorts before System Tools and must hold the imports."""
        import_dir = tmp_path / "import"
        import_dir.mkdir()
        tool = import_dir / "backup"
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o755)

        controller.handle_key(KeyPress("ctrl+b"))

        assert _items_by_category(controller) == {
            "Bin Executables": ["Backup"],
            "System Tools": ["System Monitor"],
        }
        _assert_no_empty_category(controller)

    def test_failed_move_reports_and_keeps_moved_items(
        self, controller, paths, tmp_path, monkeypatch
    ):
        import_dir = tmp_path / "import"
        import_dir.mkdir()
        for name in ("alpha", "beta"):
            tool = import_dir / name
            tool.write_text("#!/bin/sh\n")
            tool.chmod(0o755)
        real_move = importer.shutil.move
        calls = []

        def move(src, dst):
            calls.append(src)
            if len(calls) == 2:
                raise OSError("disk full")
            return real_move(src, dst)

        monkeypatch.setattr(importer.shutil, "move", move)
        controller.handle_key(KeyPress("ctrl+b"))

        assert controller.status_message == (
            "Bin directory scanned | 1 added | 1 failed: beta: disk full"
        )
        assert _items_by_category(controller)["Bin Executables"] == ["Alpha"]
        stored = MenuStore(paths.menus_file).load()
        assert stored.categories[0].items[0].command.endswith("/bin/alpha")
        assert (import_dir / "beta").exists()
