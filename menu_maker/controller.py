"""The application state machine, usable without a terminal."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from menu_maker.colors import NamedColorPair, available_color_presets
from menu_maker.display import CategoryHeader, DisplayModel, ItemEntry, build_display
from menu_maker.errors import MenuLookupError, PersistenceError, ProcessError, ValidationError
from menu_maker.forms import (
    CategoryForm,
    CategorySubmission,
    FormAction,
    FormResult,
    FormState,
    ItemForm,
    ItemSubmission,
    SettingsField,
    SettingsForm,
    SettingsSubmission,
)
from menu_maker.hittest import entry_at, footer_action_at, form_target_at
from menu_maker.importer import BIN_CATEGORY, scan_import_directory
from menu_maker.layout import (
    ShortcutAction,
    footer_bar,
    main_geometry,
    popup_geometry,
)
from menu_maker.model import (
    DEFAULT_CATEGORY,
    MenuDocument,
    MenuItem,
    default_document,
)
from menu_maker.navigation import clamp_selection, move_down, move_up
from menu_maker.runner import run_command
from menu_maker.store import AppPaths, MenuStore, ThemeStore
from menu_maker.themes import (
    CUSTOM_THEME_KEY,
    CUSTOM_THEME_LABEL,
    DEFAULT_THEME_KEY,
    SavedTheme,
    Theme,
    materialize_theme,
    parse_saved_theme_key,
    renumber_theme_key,
    resolve_theme_key,
    saved_theme_key,
    theme_options,
    upsert_saved_theme,
)


logger = logging.getLogger(__name__)


@dataclass
class InfoPopup:
    label: str
    command: str
    category: str
    description: str

    @property
    def text(self) -> str:
        return (
            f"Label: {self.label}\nCommand: {self.command}\nCategory: {self.category}\n"
            f"Description: {self.description}\n\nPress Enter or Esc to close."
        )


@dataclass
class MessagePopup:
    message: str

    @property
    def text(self) -> str:
        return f"{self.message}\n\nPress Enter or Esc to close."


@dataclass
class PendingCommand:
    label: str
    command: str
    pause: bool


Popup = Union[InfoPopup, MessagePopup, ItemForm, CategoryForm, SettingsForm]


class MenuController:
    """Owns the menu document, the active theme, the selection and the open modal.

    Input arrives as key events (anything with ``key`` and ``character``) and
    left clicks at terminal coordinates; the terminal size used for
    hit-testing is whatever was last passed to :meth:`resize`.
    """

    def __init__(self, paths: AppPaths, import_dir: Path = Path("./import")):
        self.paths = paths
        self.import_dir = Path(import_dir)
        self.menu_store = MenuStore(paths.menus_file)
        self.theme_store = ThemeStore(paths.theme_file)
        self.document = MenuDocument()
        self.theme = Theme.from_name(DEFAULT_THEME_KEY)
        self.theme_key = DEFAULT_THEME_KEY
        self.display = DisplayModel()
        self.selection = 0
        self.status_message: Optional[str] = None
        self.popup: Optional[Popup] = None
        self.pending_command: Optional[PendingCommand] = None
        self.should_quit = False
        self.size: Tuple[int, int] = (80, 24)
        self.footer = footer_bar(self.import_label)
        self.load()

    # State

    @property
    def categories(self):
        return self.document.categories

    @property
    def title(self) -> str:
        return self.document.settings.title

    @property
    def column_count(self) -> int:
        return self.document.settings.columns

    @property
    def import_label(self) -> str:
        label = self.import_dir.as_posix()
        if not self.import_dir.is_absolute() and not label.startswith("."):
            label = f"./{label}"
        return label

    def load(self) -> None:
        """Read both stores at startup, falling back to defaults on failure."""
        try:
            document = self.menu_store.load()
        except PersistenceError as e:
            logger.error("Failed to load menu, using defaults: %s", e)
            document = default_document()
            self.set_status("Using default menu")
            self.show_message(f"Failed to load menu: {e}")
        if document.ensure_default_saved_theme():
            logger.info("Added missing default saved theme")
            self._save_quietly(document)
        self._apply_document(document, self.theme_store.load())

    def reload(self) -> None:
        """Re-read the configuration from disk. Raises PersistenceError."""
        document = self.menu_store.load()
        self._apply_document(document, self.theme_store.load())

    def _apply_document(self, document: MenuDocument, live_theme: Theme) -> None:
        self.document = document
        self.theme_key = resolve_theme_key(
            document.settings.theme_key, live_theme, document.saved_themes
        )
        document.settings.theme_key = self.theme_key
        self.theme = materialize_theme(self.theme_key, live_theme, document.saved_themes)
        self.rebuild_display()

    def _save_quietly(self, document: MenuDocument) -> None:
        try:
            self.menu_store.save(document)
        except PersistenceError as e:
            logger.error("%s", e)

    def rebuild_display(self) -> None:
        self.document.sort()
        self.display = build_display(self.categories, self.column_count)
        self.selection = clamp_selection(self.selection, len(self.display))

    def commit(self, message: Optional[str] = None) -> None:
        """Rebuild the display, persist the menu and report ``message``."""
        self.rebuild_display()
        self.document.settings.theme_key = self.theme_key
        try:
            self.menu_store.save(self.document)
        except PersistenceError as e:
            logger.error("%s", e)
            message = f"{message} | {e}" if message else str(e)
        if message is not None:
            self.set_status(message)

    def save_theme(self) -> Optional[str]:
        """Write the active palette to theme.json; returns an error message on failure."""
        try:
            self.theme_store.save(self.theme)
        except PersistenceError as e:
            logger.error("%s", e)
            return str(e)
        return None

    def set_status(self, message: Optional[str]) -> None:
        self.status_message = message

    def status_text(self) -> str:
        total = len(self.display)
        current = self.selection + 1 if total else 0
        text = f"Item {current}/{total} | Theme: {self.theme.name}"
        if self.status_message:
            text = f"{text} | {self.status_message}"
        return text

    def resize(self, width: int, height: int) -> None:
        self.size = (width, height)

    # Selection

    @property
    def selected_entry(self) -> Optional[Union[CategoryHeader, ItemEntry]]:
        return self.display.get(self.selection)

    def selected_item(self) -> Optional[Tuple[int, int]]:
        entry = self.selected_entry
        if isinstance(entry, ItemEntry):
            return entry.category_index, entry.item_index
        return None

    def select_category(self, name: str) -> None:
        for index, entry in enumerate(self.display.entries):
            if isinstance(entry, CategoryHeader) and self.categories[entry.category_index].name == name:
                self.selection = index
                return

    def select_item(self, category_name: str, item: MenuItem) -> None:
        for index, entry in enumerate(self.display.entries):
            if not isinstance(entry, ItemEntry):
                continue
            category = self.categories[entry.category_index]
            if category.name == category_name and category.items[entry.item_index] is item:
                self.selection = index
                return

    def move_up(self) -> None:
        self.selection = move_up(self.selection, len(self.display))

    def move_down(self) -> None:
        self.selection = move_down(self.selection, len(self.display))

    def activate(self) -> None:
        entry = self.selected_entry
        if isinstance(entry, CategoryHeader):
            self.toggle_category()
        elif isinstance(entry, ItemEntry):
            self.prepare_command()

    def toggle_category(self) -> None:
        entry = self.selected_entry
        if not isinstance(entry, CategoryHeader):
            return
        category = self.categories[entry.category_index]
        category.expanded = not category.expanded
        self.commit()
        self.select_category(category.name)

    def prepare_command(self) -> None:
        target = self.selected_item()
        if target is None:
            return
        item = self.categories[target[0]].items[target[1]]
        if not item.command.strip():
            return
        self.pending_command = PendingCommand(item.label, item.command, item.pause)
        self.set_status(f"Running {item.label}")

    def take_pending_command(self) -> Optional[PendingCommand]:
        pending, self.pending_command = self.pending_command, None
        return pending

    def run_pending(
        self, pending: PendingCommand, runner: Callable[[str, bool], int] = run_command
    ) -> None:
        """Run a taken command; the caller must have released the terminal."""
        try:
            code = runner(pending.command, pending.pause)
        except ProcessError as e:
            self.set_status(f"Command failed: {e}")
            return
        self.set_status(f"Command exited with status {code}")

    # Key and mouse dispatch

    def handle_key(self, event) -> None:
        if self.popup is not None:
            self._handle_popup_key(event)
            return
        key = event.key
        if key in ("q", "escape"):
            self.should_quit = True
        elif key in ("up", "k"):
            self.move_up()
        elif key in ("down", "j"):
            self.move_down()
        elif key == "enter":
            self.activate()
        elif key == "space":
            self.toggle_category()
        elif key == "r":
            self.reload_from_disk()
        elif key == "i":
            self.show_info()
        elif key == "n":
            self.open_item_form(None)
        elif key == "e":
            self.edit_current()
        elif key == "d":
            self.delete_selected_item()
        elif key == "s":
            self.open_settings(SettingsField.TITLE)
        elif key == "t":
            self.open_settings(SettingsField.THEME)
        elif key == "ctrl+t":
            self.open_settings(SettingsField.TITLE)
        elif key == "ctrl+b":
            self.run_import_scan()

    def _handle_popup_key(self, event) -> None:
        popup = self.popup
        if isinstance(popup, (InfoPopup, MessagePopup)):
            if event.key in ("enter", "escape"):
                self.popup = None
            return
        self._apply_form_result(popup, popup.handle_key(event))

    def handle_click(self, x: int, y: int) -> None:
        """Left mouse button pressed at terminal cell ``(x, y)``."""
        width, height = self.size
        popup = self.popup
        if popup is not None:
            if isinstance(popup, FormState):
                target = form_target_at(
                    popup_geometry(width, height), popup.layout(self.theme), x, y
                )
                if target is not None:
                    self._apply_form_result(popup, popup.handle_click(target))
            return
        geometry = main_geometry(width, height, self.column_count)
        index = entry_at(geometry, self.display, self.selection, x, y)
        if index is not None:
            self.selection = index
            self.activate()
            return
        action = footer_action_at(geometry, self.footer, x, y)
        if action is not None:
            self.run_footer_action(action)

    def run_footer_action(self, action: ShortcutAction) -> None:
        if action == ShortcutAction.QUIT:
            self.should_quit = True
        elif action == ShortcutAction.EDIT:
            self.edit_current()
        elif action == ShortcutAction.EXECUTE:
            self.prepare_command()
        elif action == ShortcutAction.NEW_ITEM:
            self.open_item_form(None)
        elif action == ShortcutAction.DELETE:
            self.delete_selected_item()
        elif action == ShortcutAction.SETTINGS:
            self.open_settings(SettingsField.TITLE)
        elif action == ShortcutAction.SCAN:
            self.run_import_scan()

    def _apply_form_result(self, form: FormState, result: FormResult) -> None:
        if result.action == FormAction.CANCEL:
            self.popup = None
            self.set_status(form.cancel_message)
        elif result.action == FormAction.SUBMIT:
            try:
                self._apply_submission(result.payload)
            except (ValidationError, MenuLookupError) as e:
                form.error = str(e)
                return
            self.popup = None
        elif result.action == FormAction.DELETE_OPTION:
            try:
                if isinstance(form, CategoryForm):
                    self.delete_custom_preset(result.payload)
                elif isinstance(form, SettingsForm):
                    self.delete_saved_theme(result.payload)
            except MenuLookupError as e:
                form.error = str(e)

    def _apply_submission(self, payload) -> None:
        if isinstance(payload, ItemSubmission):
            self.apply_item(payload)
        elif isinstance(payload, CategorySubmission):
            self.apply_category(payload)
        elif isinstance(payload, SettingsSubmission):
            self.apply_settings(payload)

    def header_text(self) -> str:
        if isinstance(self.popup, FormState):
            return f"{self.title} - {self.popup.heading}"
        return self.title

    # Popups

    def show_info(self) -> None:
        target = self.selected_item()
        if target is None:
            return
        category = self.categories[target[0]]
        item = category.items[target[1]]
        self.popup = InfoPopup(item.label, item.command, category.name, item.description)

    def show_message(self, message: str) -> None:
        self.popup = MessagePopup(message)

    def open_item_form(self, target: Optional[Tuple[int, int]]) -> None:
        names = [category.name for category in self.categories] or [DEFAULT_CATEGORY]
        fallback = names[0]
        if target is not None:
            category = self.categories[target[0]]
            self.popup = ItemForm(
                names, fallback, target, category.items[target[1]], category.name
            )
        else:
            self.popup = ItemForm(names, fallback)

    def edit_current(self) -> None:
        entry = self.selected_entry
        if isinstance(entry, ItemEntry):
            self.open_item_form((entry.category_index, entry.item_index))
        elif isinstance(entry, CategoryHeader):
            category = self.categories[entry.category_index]
            self.popup = CategoryForm(
                entry.category_index,
                category,
                available_color_presets(self.document.custom_colors),
            )

    def open_settings(self, focus: SettingsField) -> None:
        self.popup = SettingsForm(
            self.title,
            self.column_count,
            self.theme_key,
            self.theme_options(),
            self.theme,
            focus,
        )

    def theme_options(self):
        return theme_options(self.document.saved_themes, self.theme_key, self.theme)

    # Mutations

    def reload_from_disk(self) -> None:
        try:
            self.reload()
        except PersistenceError as e:
            logger.error("Reload failed: %s", e)
            self.set_status(f"Reload failed: {e}")
            return
        logger.info("Configuration reloaded from %s", self.paths.config_dir)
        self.set_status("Configuration reloaded")

    def delete_selected_item(self) -> None:
        target = self.selected_item()
        if target is None:
            return
        category_index, item_index = target
        category = self.categories[category_index]
        del category.items[item_index]
        if not category.items:
            del self.categories[category_index]
        self.commit("Item deleted")

    def apply_item(self, submission: ItemSubmission) -> None:
        item = MenuItem(
            label=submission.label,
            command=submission.command,
            description=submission.description,
            pause=submission.pause,
        )
        if submission.target is not None:
            category_index, item_index = submission.target
            if category_index >= len(self.categories):
                raise MenuLookupError("Item no longer exists")
            source = self.categories[category_index]
            if item_index >= len(source.items):
                raise MenuLookupError("Item no longer exists")
            if source.name == submission.category:
                source.items[item_index] = item
            else:
                del source.items[item_index]
                if not source.items:
                    del self.categories[category_index]
                self._append_item(submission.category, item)
            message = "Item updated"
        else:
            self._append_item(submission.category, item)
            message = "Item added"
        self.commit(message)
        self.select_item(submission.category, item)

    def _append_item(self, category_name: str, item: MenuItem) -> None:
        destination = self.document.ensure_category(category_name)
        destination.expanded = True
        destination.items.append(item)

    def apply_category(self, submission: CategorySubmission) -> None:
        index = submission.category_index
        if index >= len(self.categories):
            raise MenuLookupError("Category no longer exists")
        category = self.categories[index]
        name = submission.name or category.name
        if name != category.name and self.document.find_category(name) is not None:
            raise ValidationError("Category name already exists")
        column = submission.column if submission.column is not None else category.column

        messages = []
        preset = submission.new_preset
        if preset is not None:
            self.document.custom_colors.append(
                NamedColorPair(name=preset.name, background=preset.background, text=preset.text)
            )
            logger.info("Added category color preset %r", preset.name)
            messages.append(f"Theme '{preset.name}' added")

        category.name = name
        category.column = column
        if submission.background is None and submission.text is None:
            category.colors = None
        else:
            category.colors = {"background": submission.background, "text": submission.text}
        messages.append("Category updated")
        self.commit(" | ".join(messages))
        self.select_category(name)

    def delete_custom_preset(self, index: int) -> None:
        custom_colors = self.document.custom_colors
        if not 0 <= index < len(custom_colors):
            raise MenuLookupError("Custom theme not found")
        removed = custom_colors.pop(index)
        name = removed.name or f"Custom Theme {index + 1}"
        logger.info("Deleted category color preset %r", name)
        self.commit(f"Theme '{name}' deleted")
        form = self.popup
        if isinstance(form, CategoryForm):
            presets = available_color_presets(custom_colors)
            form.refresh_presets(presets, min(form.palette_index, len(presets) - 1))

    def apply_settings(self, submission: SettingsSubmission) -> None:
        """Apply a validated settings form; nothing changes if the theme lookup fails."""
        title = submission.title or self.title
        columns = submission.columns if submission.columns is not None else self.column_count

        new_theme: Optional[Theme] = None
        new_key: Optional[str] = None
        saved: Optional[SavedTheme] = None
        custom = submission.custom
        if custom is not None:
            name = custom.name or CUSTOM_THEME_LABEL
            new_theme = Theme.from_hexes(
                name,
                custom.primary,
                custom.accent,
                custom.highlight,
                custom.background,
                custom.surface,
                custom.text,
            )
            new_key = CUSTOM_THEME_KEY
            if custom.name:
                saved = SavedTheme(
                    name=name,
                    primary=custom.primary,
                    accent=custom.accent,
                    background=custom.background,
                    surface=custom.surface,
                    text=custom.text,
                    highlight=custom.highlight,
                )
        else:
            key = submission.theme_key
            saved_index = parse_saved_theme_key(key)
            if saved_index is not None:
                if parse_saved_theme_key(self.theme_key) != saved_index:
                    if saved_index >= len(self.document.saved_themes):
                        raise MenuLookupError("Saved theme not found")
                    new_theme = Theme.from_saved(self.document.saved_themes[saved_index])
                    new_key = key
            elif key == CUSTOM_THEME_KEY:
                if self.theme_key != CUSTOM_THEME_KEY:
                    raise ValidationError("Enter custom colors to create a custom theme")
            elif key != self.theme_key:
                new_theme = Theme.from_name(key)
                if new_theme is None:
                    raise MenuLookupError("Unknown theme selected")
                new_key = key

        changed = False
        if title != self.title:
            self.document.settings.title = title
            changed = True
        if columns != self.column_count:
            self.document.settings.columns = columns
            changed = True
        messages = []
        if new_theme is not None:
            if saved is not None:
                new_key = saved_theme_key(upsert_saved_theme(self.document.saved_themes, saved))
            self.theme = new_theme
            self.theme_key = new_key
            logger.info("Theme changed to %s (%s)", new_theme.name, new_key)
            error = self.save_theme()
            if error:
                messages.append(error)
            changed = True
        messages.insert(0, "Settings updated" if changed else "No settings changed")
        self.commit(" | ".join(messages))

    def delete_saved_theme(self, index: int) -> None:
        saved_themes = self.document.saved_themes
        if not 0 <= index < len(saved_themes):
            raise MenuLookupError("Saved theme not found")
        removed = saved_themes.pop(index)
        logger.info("Deleted saved theme %r", removed.name)
        key = renumber_theme_key(self.theme_key, index)
        messages = ["Custom theme deleted"]
        if key is None:
            self.theme = Theme.from_name(DEFAULT_THEME_KEY)
            self.theme_key = DEFAULT_THEME_KEY
            error = self.save_theme()
            if error:
                messages.append(error)
        else:
            self.theme_key = key
        self.commit(" | ".join(messages))
        form = self.popup
        if isinstance(form, SettingsForm):
            form.refresh_options(self.theme_options(), self.theme_key, self.theme)

    def run_import_scan(self) -> None:
        existing = {item.command.strip() for category in self.categories for item in category.items}
        try:
            scan = scan_import_directory(self.import_dir, self.paths.bin_dir, existing)
        except OSError as e:
            logger.error("Import scan failed: %s", e)
            self.set_status(f"Bin scan failed: {e}")
            return
        if not scan.items:
            self.set_status(scan.summary())
            return
        for item in scan.items:
            self._append_item(BIN_CATEGORY, item)
        self.commit(scan.summary())
