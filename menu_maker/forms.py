"""Modal form state machines: item, category and settings forms.

Each form owns a transient copy of its field values, a focus cursor and an
inline error. Key presses and resolved clicks drive the same transitions and
yield a :class:`FormResult`; applying a submission to the menu is left to
the controller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from menu_maker.colors import (
    ColorPreset,
    FALLBACK_PRESET,
    hex_strings_equal,
    normalize_hex,
    parse_color_field,
    require_color_field,
    sanitize_hex_color_input,
)
from menu_maker.errors import ValidationError
from menu_maker.layout import ShortcutAction, ShortcutBar, form_bar
from menu_maker.model import Category, MenuItem, clamp_column_count, DEFAULT_CATEGORY
from menu_maker.themes import (
    CUSTOM_THEME_KEY,
    CUSTOM_THEME_LABEL,
    Theme,
    ThemeOption,
    parse_saved_theme_key,
)


ERROR_STYLE = "bold red"


class FormAction(Enum):
    CONTINUE = "continue"
    CANCEL = "cancel"
    SUBMIT = "submit"
    DELETE_OPTION = "delete_option"


@dataclass
class FormResult:
    action: FormAction
    payload: Any = None


CONTINUE = FormResult(FormAction.CONTINUE)


@dataclass(frozen=True)
class FieldTarget:
    field: Enum


@dataclass(frozen=True)
class OptionTarget:
    index: int


@dataclass
class FormLine:
    """One body row as ``(text, rich style)`` spans; highlighted rows span the width."""

    spans: List[Tuple[str, str]]
    highlight: bool = False

    @property
    def plain(self) -> str:
        return "".join(text for text, _ in self.spans)


@dataclass
class FormLayout:
    lines: List[FormLine]
    targets: Dict[int, Any]
    shortcuts: ShortcutBar
    focus_line: Optional[int] = None


def is_text_input(key: str, character: Optional[str]) -> bool:
    """True for printable characters typed without Ctrl."""
    if not character or key.startswith("ctrl+"):
        return False
    return character.isprintable()


def _display(value: str) -> str:
    return value if value.strip() else "(empty)"


def parse_column_value(value: str, message: str) -> Optional[int]:
    """Blank keeps the current value (None); otherwise an integer clamped to 1..6."""
    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        number = int(trimmed)
    except ValueError:
        raise ValidationError(message)
    return clamp_column_count(number)


class FormState:
    """Shared focus traversal, text editing and submission handling.

    Subclasses list their ``fields`` in focus order, keep editable text in
    ``self.values`` and may name one ``selection_field`` that cycles through
    options with Left/Right.
    """

    fields: Tuple[Enum, ...] = ()
    toggle_fields: Tuple[Enum, ...] = ()
    selection_field: Optional[Enum] = None
    heading = ""
    cancel_message = ""

    def __init__(self, focus: Optional[Enum] = None):
        self.focus = focus if focus is not None else self.fields[0]
        self.error: Optional[str] = None
        self.values: Dict[Enum, str] = {}

    def next_field(self) -> None:
        index = self.fields.index(self.focus)
        self.focus = self.fields[(index + 1) % len(self.fields)]

    def previous_field(self) -> None:
        index = self.fields.index(self.focus)
        self.focus = self.fields[(index - 1) % len(self.fields)]

    def handle_key(self, event) -> FormResult:
        """Apply one key press."""
        self.error = None
        key = event.key
        character = getattr(event, "character", None)
        if key == "escape":
            return FormResult(FormAction.CANCEL)
        if key == "enter":
            return self.submit()
        if key in ("tab", "down"):
            self.next_field()
        elif key in ("shift+tab", "up"):
            self.previous_field()
        elif key in ("left", "right"):
            if self.focus == self.selection_field:
                self.cycle_option(-1 if key == "left" else 1)
        elif key == "backspace":
            if self.focus in self.values:
                self.values[self.focus] = self.values[self.focus][:-1]
        elif key == "delete":
            if self.focus in self.values:
                self.values[self.focus] = ""
            elif self.focus == self.selection_field:
                return self.request_delete(quiet=True)
        elif key == "space" and self.focus in self.toggle_fields:
            self.toggle(self.focus)
        elif self.focus == self.selection_field:
            if character in ("d", "D"):
                return self.request_delete(quiet=True)
        elif self.focus in self.values and is_text_input(key, character):
            self.values[self.focus] += character
        return CONTINUE

    def handle_click(self, target) -> FormResult:
        """Apply a click resolved by the hit-tester."""
        self.error = None
        if isinstance(target, FieldTarget):
            self.focus = target.field
        elif isinstance(target, OptionTarget):
            if self.selection_field is not None:
                self.focus = self.selection_field
                self.select_option(target.index)
        elif target == ShortcutAction.NEXT_FIELD:
            self.next_field()
        elif target == ShortcutAction.SAVE:
            return self.submit()
        elif target == ShortcutAction.CANCEL:
            return FormResult(FormAction.CANCEL)
        elif target == ShortcutAction.TOGGLE:
            for field in self.toggle_fields:
                self.toggle(field)
        elif target == ShortcutAction.PREVIOUS_OPTION:
            self.cycle_option(-1)
        elif target == ShortcutAction.NEXT_OPTION:
            self.cycle_option(1)
        elif target == ShortcutAction.DELETE_OPTION:
            return self.request_delete(quiet=False)
        return CONTINUE

    def submit(self) -> FormResult:
        try:
            payload = self.build_submission()
        except ValidationError as e:
            self.error = str(e)
            return CONTINUE
        return FormResult(FormAction.SUBMIT, payload)

    def request_delete(self, quiet: bool) -> FormResult:
        index = self.deletable_index()
        if index is None:
            if not quiet:
                self.error = "Select a custom theme to delete"
            return CONTINUE
        return FormResult(FormAction.DELETE_OPTION, index)

    def build_submission(self):
        raise NotImplementedError

    def layout(self, theme: Theme) -> FormLayout:
        raise NotImplementedError

    def toggle(self, field: Enum) -> None:
        pass

    def cycle_option(self, step: int) -> None:
        pass

    def select_option(self, index: int) -> None:
        pass

    def deletable_index(self) -> Optional[int]:
        return None

    # Line builders

    def field_line(self, theme: Theme, field: Enum, label: str, color: bool = False) -> FormLine:
        value = self.values[field]
        value_style = theme.text
        if color:
            value_style = f"bold {sanitize_hex_color_input(value) or theme.text}"
        return FormLine(
            [(f"{label}: ", f"bold {theme.accent}"), (_display(value), value_style)],
            highlight=self.focus == field,
        )

    def error_line(self) -> Optional[FormLine]:
        if not self.error:
            return None
        return FormLine([(self.error, ERROR_STYLE)])


def heading_line(theme: Theme, text: str) -> FormLine:
    return FormLine([(text, f"bold {theme.accent}")])


def text_line(text: str = "") -> FormLine:
    return FormLine([(text, "")])


class _LayoutBuilder:
    """Collects lines and remembers which line maps to which click target."""

    def __init__(self):
        self.lines: List[FormLine] = []
        self.targets: Dict[int, Any] = {}
        self.focus_line: Optional[int] = None

    def add(self, line: Optional[FormLine], target=None, focused: bool = False) -> None:
        if line is None:
            return
        if target is not None:
            self.targets[len(self.lines)] = target
        if focused:
            self.focus_line = len(self.lines)
        self.lines.append(line)

    def build(self, shortcuts: ShortcutBar) -> FormLayout:
        return FormLayout(self.lines, self.targets, shortcuts, self.focus_line)


# Item form


class ItemField(Enum):
    LABEL = "label"
    COMMAND = "command"
    DESCRIPTION = "description"
    CATEGORY = "category"
    PAUSE = "pause"


@dataclass
class ItemSubmission:
    label: str
    command: str
    description: str
    category: str
    pause: bool
    target: Optional[Tuple[int, int]] = None


class ItemForm(FormState):
    """Create or edit a menu item."""

    fields = tuple(ItemField)
    toggle_fields = (ItemField.PAUSE,)
    cancel_message = "Item edit cancelled"

    def __init__(
        self,
        categories: List[str],
        fallback_category: str,
        target: Optional[Tuple[int, int]] = None,
        item: Optional[MenuItem] = None,
        category: str = "",
    ):
        super().__init__()
        self.target = target
        self.available_categories = list(categories)
        self.fallback_category = fallback_category
        item = item or MenuItem(label="", command="")
        self.values = {
            ItemField.LABEL: item.label,
            ItemField.COMMAND: item.command,
            ItemField.DESCRIPTION: item.description,
            ItemField.CATEGORY: category.strip() or fallback_category,
        }
        self.pause = item.pause
        self.heading = "Edit Menu Item" if target is not None else "New Menu Item"

    def toggle(self, field: Enum) -> None:
        if field == ItemField.PAUSE:
            self.pause = not self.pause

    def build_submission(self) -> ItemSubmission:
        label = self.values[ItemField.LABEL].strip()
        if not label:
            raise ValidationError("Label is required")
        command = self.values[ItemField.COMMAND].strip()
        if not command:
            raise ValidationError("Command is required")
        category = (
            self.values[ItemField.CATEGORY].strip()
            or self.fallback_category.strip()
            or DEFAULT_CATEGORY
        )
        return ItemSubmission(
            label=label,
            command=command,
            description=self.values[ItemField.DESCRIPTION].strip(),
            category=category,
            pause=self.pause,
            target=self.target,
        )

    def layout(self, theme: Theme) -> FormLayout:
        builder = _LayoutBuilder()
        builder.add(text_line("Fill in the menu item details below."))
        for field, label in (
            (ItemField.LABEL, "Label"),
            (ItemField.COMMAND, "Command"),
            (ItemField.DESCRIPTION, "Description"),
            (ItemField.CATEGORY, "Category"),
        ):
            builder.add(
                self.field_line(theme, field, label),
                FieldTarget(field),
                focused=self.focus == field,
            )
        builder.add(
            FormLine(
                [
                    ("Pause After Run: ", f"bold {theme.accent}"),
                    ("Yes" if self.pause else "No", "bold green" if self.pause else "bold red"),
                ],
                highlight=self.focus == ItemField.PAUSE,
            ),
            FieldTarget(ItemField.PAUSE),
            focused=self.focus == ItemField.PAUSE,
        )
        builder.add(self.error_line())
        if self.available_categories:
            builder.add(text_line())
            builder.add(heading_line(theme, "Available Categories:"))
            for name in self.available_categories:
                builder.add(text_line(f"  • {name}"))
        shortcuts = ShortcutBar()
        shortcuts.add("Tab", "Move", ShortcutAction.NEXT_FIELD)
        shortcuts.add("↵", "Save", ShortcutAction.SAVE)
        shortcuts.add("Esc", "Cancel", ShortcutAction.CANCEL)
        shortcuts.add("Space", "Toggle Pause", ShortcutAction.TOGGLE)
        return builder.build(shortcuts)


# Category form


class CategoryField(Enum):
    NAME = "name"
    COLUMN = "column"
    PALETTE = "palette"
    PRESET_NAME = "preset_name"
    BACKGROUND = "background"
    TEXT = "text"


@dataclass
class PresetSubmission:
    name: str
    background: str
    text: str


@dataclass
class CategorySubmission:
    category_index: int
    name: str
    column: Optional[int]
    background: Optional[str]
    text: Optional[str]
    new_preset: Optional[PresetSubmission] = None


class CategoryForm(FormState):
    """Rename a category, move it to another column and pick its colors."""

    fields = tuple(CategoryField)
    selection_field = CategoryField.PALETTE
    heading = "Edit Category"
    cancel_message = "Category edit cancelled"

    def __init__(self, category_index: int, category: Category, presets: List[ColorPreset]):
        super().__init__()
        self.category_index = category_index
        colors = category.colors or {}
        background = normalize_hex(colors["background"]) if colors.get("background") else ""
        text = normalize_hex(colors["text"]) if colors.get("text") else ""
        self.presets = list(presets) or [ColorPreset(**FALLBACK_PRESET)]
        self.palette_index = 0
        if background and text:
            for index, preset in enumerate(self.presets):
                if preset.matches(background, text):
                    self.palette_index = index
                    break
        self.values = {
            CategoryField.NAME: category.name,
            CategoryField.COLUMN: str(category.column),
            CategoryField.PRESET_NAME: self.presets[self.palette_index].name,
            CategoryField.BACKGROUND: background,
            CategoryField.TEXT: text,
        }

    @property
    def selected_preset(self) -> Optional[ColorPreset]:
        if 0 <= self.palette_index < len(self.presets):
            return self.presets[self.palette_index]
        return None

    def deletable_index(self) -> Optional[int]:
        preset = self.selected_preset
        return preset.custom_index if preset is not None else None

    def select_option(self, index: int) -> None:
        if not self.presets:
            return
        self.palette_index = max(0, min(index, len(self.presets) - 1))
        preset = self.presets[self.palette_index]
        self.values[CategoryField.BACKGROUND] = preset.background
        self.values[CategoryField.TEXT] = preset.text
        self.values[CategoryField.PRESET_NAME] = preset.name

    def cycle_option(self, step: int) -> None:
        if self.presets:
            self.select_option((self.palette_index + step) % len(self.presets))

    def refresh_presets(self, presets: List[ColorPreset], focus_index: int) -> None:
        """Swap in a rebuilt preset list and focus the palette at ``focus_index``."""
        self.presets = list(presets)
        if not self.presets:
            self.palette_index = 0
            self.focus = CategoryField.NAME
            return
        self.focus = CategoryField.PALETTE
        self.select_option(focus_index)

    def build_submission(self) -> CategorySubmission:
        background = parse_color_field(self.values[CategoryField.BACKGROUND])
        text = parse_color_field(self.values[CategoryField.TEXT])
        column = parse_column_value(self.values[CategoryField.COLUMN], "Column must be a number")
        new_preset = None
        if background and text:
            known = any(
                hex_strings_equal(preset.background, background)
                and hex_strings_equal(preset.text, text)
                for preset in self.presets
            )
            if not known:
                name = self.values[CategoryField.PRESET_NAME].strip() or CUSTOM_THEME_LABEL
                new_preset = PresetSubmission(name=name, background=background, text=text)
        return CategorySubmission(
            category_index=self.category_index,
            name=self.values[CategoryField.NAME].strip(),
            column=column,
            background=background,
            text=text,
            new_preset=new_preset,
        )

    def layout(self, theme: Theme) -> FormLayout:
        builder = _LayoutBuilder()
        builder.add(text_line("Update the category fields below."))
        for field, label in ((CategoryField.NAME, "Name"), (CategoryField.COLUMN, "Column")):
            builder.add(
                self.field_line(theme, field, label), FieldTarget(field), self.focus == field
            )
        builder.add(text_line())
        builder.add(
            heading_line(theme, "Color Theme (Tab to focus, ←/→ select)"),
            FieldTarget(CategoryField.PALETTE),
        )
        for index, preset in enumerate(self.presets):
            selected = index == self.palette_index
            label_style = f"bold {theme.text}" if selected else theme.text
            builder.add(
                FormLine(
                    [
                        (f"{index + 1:>2}. {preset.name}", label_style),
                        ("  ", ""),
                        ("     ", f"{preset.text} on {preset.background}"),
                        ("  ", ""),
                        (f"{preset.background} / {preset.text}", label_style),
                    ],
                    highlight=selected and self.focus == CategoryField.PALETTE,
                ),
                OptionTarget(index),
                focused=selected and self.focus == CategoryField.PALETTE,
            )
        builder.add(text_line())
        builder.add(
            heading_line(theme, "Custom Theme (#RRGGBB)"), FieldTarget(CategoryField.PRESET_NAME)
        )
        for field, label, color in (
            (CategoryField.PRESET_NAME, "Name", False),
            (CategoryField.BACKGROUND, "Background", True),
            (CategoryField.TEXT, "Text", True),
        ):
            builder.add(
                self.field_line(theme, field, label, color), FieldTarget(field), self.focus == field
            )
        builder.add(text_line())
        builder.add(self.error_line())
        delete_label = "Delete Theme" if self.deletable_index() is not None else None
        return builder.build(form_bar("Cancel", delete_label))


# Settings form


class SettingsField(Enum):
    TITLE = "title"
    COLUMNS = "columns"
    THEME = "theme"
    CUSTOM_NAME = "custom_name"
    PRIMARY = "primary"
    ACCENT = "accent"
    HIGHLIGHT = "highlight"
    BACKGROUND = "background"
    SURFACE = "surface"
    TEXT = "text"


COLOR_FIELDS = (
    (SettingsField.PRIMARY, "primary", "Primary"),
    (SettingsField.ACCENT, "accent", "Accent"),
    (SettingsField.HIGHLIGHT, "highlight", "Highlight"),
    (SettingsField.BACKGROUND, "background", "Background"),
    (SettingsField.SURFACE, "surface", "Surface"),
    (SettingsField.TEXT, "text", "Text"),
)


@dataclass
class CustomThemeSubmission:
    name: str
    primary: str
    accent: str
    highlight: str
    background: str
    surface: str
    text: str


@dataclass
class SettingsSubmission:
    title: str
    columns: Optional[int]
    theme_key: str
    custom: Optional[CustomThemeSubmission] = None


class SettingsForm(FormState):
    """Application title, column count and theme selection or creation."""

    fields = tuple(SettingsField)
    selection_field = SettingsField.THEME
    heading = "Application Settings"
    cancel_message = "Settings update cancelled"

    def __init__(
        self,
        title: str,
        columns: int,
        theme_key: str,
        options: List[ThemeOption],
        current_theme: Theme,
        focus: SettingsField = SettingsField.TITLE,
    ):
        super().__init__(focus)
        self.current_key = theme_key
        self.current_theme_name = current_theme.name
        self.options = list(options)
        self.theme_index = self._index_of(theme_key)
        self.values = {SettingsField.TITLE: title, SettingsField.COLUMNS: str(columns)}
        for field, _, _ in COLOR_FIELDS:
            self.values[field] = ""
        self.values[SettingsField.CUSTOM_NAME] = (
            current_theme.name if theme_key == CUSTOM_THEME_KEY else ""
        )
        self.populate_from_selection()

    def _index_of(self, key: str) -> int:
        for index, option in enumerate(self.options):
            if option.key == key:
                return index
        return 0

    @property
    def selected_option(self) -> Optional[ThemeOption]:
        if 0 <= self.theme_index < len(self.options):
            return self.options[self.theme_index]
        return None

    def populate_from_selection(self) -> None:
        """Copy the selected option's colors into the custom fields."""
        option = self.selected_option
        if option is None:
            return
        for field, role, _ in COLOR_FIELDS:
            self.values[field] = getattr(option, role)
        if option.is_saved:
            self.values[SettingsField.CUSTOM_NAME] = option.label
        elif option.key != CUSTOM_THEME_KEY:
            self.values[SettingsField.CUSTOM_NAME] = ""

    def select_option(self, index: int) -> None:
        if not self.options or not 0 <= index < len(self.options):
            return
        if index != self.theme_index:
            self.theme_index = index
            self.populate_from_selection()

    def cycle_option(self, step: int) -> None:
        if self.options:
            self.theme_index = (self.theme_index + step) % len(self.options)
            self.populate_from_selection()

    def deletable_index(self) -> Optional[int]:
        option = self.selected_option
        return parse_saved_theme_key(option.key) if option is not None else None

    def refresh_options(self, options: List[ThemeOption], active_key: str, theme: Theme) -> None:
        """Rebuild the option list after a saved theme was removed."""
        self.options = list(options)
        self.current_key = active_key
        self.current_theme_name = theme.name
        self.theme_index = self._index_of(active_key)
        self.focus = SettingsField.THEME
        self.populate_from_selection()

    def uses_custom_colors(self) -> bool:
        """Decide whether the custom fields describe a new theme.

        Colors that differ from the selected option, or a name that does not
        belong to it, turn the submission into a custom theme.
        """
        option = self.selected_option
        name = self.values[SettingsField.CUSTOM_NAME].strip()
        colors = {role: self.values[field].strip() for field, role, _ in COLOR_FIELDS}
        has_color_input = any(colors.values())
        colors_match = option is not None and all(
            hex_strings_equal(value, getattr(option, role)) for role, value in colors.items()
        )
        if not name:
            name_matches = True
        elif option is None:
            name_matches = False
        elif option.is_saved:
            name_matches = name.lower() == option.label.lower()
        elif option.key == CUSTOM_THEME_KEY:
            name_matches = name.lower() == self.current_theme_name.lower()
        else:
            name_matches = False
        if has_color_input:
            return option is None or not (colors_match and name_matches)
        if not name:
            return False
        return not name_matches or option is None

    def build_submission(self) -> SettingsSubmission:
        columns = parse_column_value(self.values[SettingsField.COLUMNS], "Columns must be a number")
        option = self.selected_option
        theme_key = option.key if option is not None else self.current_key
        custom = None
        if self.uses_custom_colors():
            colors = {
                role: require_color_field(self.values[field], label)
                for field, role, label in COLOR_FIELDS
            }
            custom = CustomThemeSubmission(
                name=self.values[SettingsField.CUSTOM_NAME].strip(), **colors
            )
        return SettingsSubmission(
            title=self.values[SettingsField.TITLE].strip(),
            columns=columns,
            theme_key=theme_key,
            custom=custom,
        )

    def layout(self, theme: Theme) -> FormLayout:
        builder = _LayoutBuilder()
        builder.add(text_line("Adjust application settings below."))
        for field, label in (
            (SettingsField.TITLE, "Title"),
            (SettingsField.COLUMNS, "Columns (1-6)"),
        ):
            builder.add(
                self.field_line(theme, field, label), FieldTarget(field), self.focus == field
            )
        builder.add(text_line())
        builder.add(self.error_line())
        builder.add(text_line())
        builder.add(
            heading_line(theme, "Theme Presets (Tab to focus, ←/→ select)"),
            FieldTarget(SettingsField.THEME),
        )
        for index, option in enumerate(self.options):
            selected = index == self.theme_index
            style = f"bold {theme.text}" if selected else theme.text
            spans = [
                (f"{index + 1:>2}. {option.label}", style),
                ("  ", ""),
                ("     ", f"on {option.surface}"),
                (" ", ""),
                ("     ", f"on {option.accent}"),
                (" ", ""),
                ("     ", f"on {option.highlight}"),
            ]
            for _, role, label in COLOR_FIELDS:
                spans.append(("  ", ""))
                spans.append((f"{label} {getattr(option, role).upper()}", style))
            builder.add(
                FormLine(spans, highlight=selected and self.focus == SettingsField.THEME),
                OptionTarget(index),
                focused=selected and self.focus == SettingsField.THEME,
            )
        builder.add(text_line())
        builder.add(
            heading_line(theme, "Custom Theme Colors (#RRGGBB, leave blank to keep preset)"),
            FieldTarget(SettingsField.CUSTOM_NAME),
        )
        builder.add(
            self.field_line(theme, SettingsField.CUSTOM_NAME, "Custom Theme Name"),
            FieldTarget(SettingsField.CUSTOM_NAME),
            self.focus == SettingsField.CUSTOM_NAME,
        )
        for field, _, label in COLOR_FIELDS:
            builder.add(
                self.field_line(theme, field, label, color=True),
                FieldTarget(field),
                self.focus == field,
            )
        delete_label = "Delete theme" if self.deletable_index() is not None else None
        return builder.build(form_bar("Cancel/Exit", delete_label))
