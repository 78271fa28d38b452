"""Menu document: categories, items, settings and saved palettes."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from menu_maker.colors import NamedColorPair, sanitize_color_pair
from menu_maker.themes import SavedTheme, default_saved_theme, saved_theme_key


MIN_COLUMNS = 1
MAX_COLUMNS = 6
DEFAULT_TITLE = "Menu Maker — Enhanced Categorized Menu System"
DEFAULT_CATEGORY = "General"


def clamp_column_count(value: Any) -> int:
    """Clamp a stored column number to the supported range; garbage becomes 1.

    The garbage fallback is only for values loaded from menus.json. Typed
    input goes through ``forms.parse_column_value``, which rejects
    non-numbers with a ValidationError and only then clamps the range here.
    """
    try:
        count = int(value)
    except (TypeError, ValueError):
        return MIN_COLUMNS
    return max(MIN_COLUMNS, min(MAX_COLUMNS, count))


@dataclass
class MenuItem:
    """A runnable menu entry."""

    label: str
    command: str
    description: str = ""
    pause: bool = False

    @classmethod
    def from_config(cls, data: Dict[str, Any], category: str) -> "MenuItem":
        info = data.get("info")
        return cls(
            label=str(data.get("label", "")),
            command=str(data.get("cmd", "")),
            description=str(info) if info is not None else f"Item in {category}",
            pause=bool(data.get("pause", False)),
        )

    def to_config(self, category: str) -> Dict[str, Any]:
        return {
            "label": self.label,
            "cmd": self.command,
            "info": self.description,
            "category": category,
            "pause": self.pause,
        }


@dataclass
class Category:
    """A named group of items placed in one display column."""

    name: str
    expanded: bool = True
    column: int = 1
    colors: Optional[Dict[str, Optional[str]]] = None
    items: List[MenuItem] = field(default_factory=list)

    @classmethod
    def from_config(cls, name: str, data: Dict[str, Any]) -> "Category":
        return cls(
            name=name,
            expanded=bool(data.get("expanded", True)),
            column=clamp_column_count(data.get("column", 1)),
            colors=sanitize_color_pair(data.get("colors")),
            items=[MenuItem.from_config(entry, name) for entry in data.get("items", [])],
        )

    def to_config(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "expanded": self.expanded,
            "column": self.column,
            "items": [item.to_config(self.name) for item in self.items],
        }
        if self.colors:
            data["colors"] = dict(self.colors)
        return data


@dataclass
class AppSettings:
    title: str = DEFAULT_TITLE
    columns: int = 1
    theme_key: Optional[str] = None

    @classmethod
    def from_config(cls, data: Dict[str, Any]) -> "AppSettings":
        return cls(
            title=str(data.get("title", DEFAULT_TITLE)),
            columns=clamp_column_count(data.get("columns", 1)),
            theme_key=data.get("theme_key"),
        )

    def to_config(self) -> Dict[str, Any]:
        return {"title": self.title, "columns": self.columns, "theme_key": self.theme_key}


@dataclass
class MenuDocument:
    """Everything stored in ``menus.json``."""

    categories: List[Category] = field(default_factory=list)
    settings: AppSettings = field(default_factory=AppSettings)
    custom_colors: List[NamedColorPair] = field(default_factory=list)
    saved_themes: List[SavedTheme] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MenuDocument":
        categories = [
            Category.from_config(name, entry)
            for name, entry in (data.get("categories") or {}).items()
            if isinstance(entry, dict)
        ]
        return cls(
            categories=sort_categories(categories),
            settings=AppSettings.from_config(data.get("app_settings") or {}),
            custom_colors=[
                NamedColorPair.from_dict(entry)
                for entry in data.get("custom_colors", [])
                if isinstance(entry, dict)
            ],
            saved_themes=[
                SavedTheme.from_dict(entry)
                for entry in data.get("saved_themes", [])
                if isinstance(entry, dict)
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": {category.name: category.to_config() for category in self.categories},
            "app_settings": self.settings.to_config(),
            "custom_colors": [pair.to_dict() for pair in self.custom_colors],
            "saved_themes": [saved.to_dict() for saved in self.saved_themes],
        }

    def find_category(self, name: str) -> Optional[int]:
        for index, category in enumerate(self.categories):
            if category.name == name:
                return index
        return None

    def ensure_category(self, name: str) -> Category:
        """Return the category called ``name``, creating an expanded column-1 one if needed."""
        index = self.find_category(name)
        if index is not None:
            return self.categories[index]
        category = Category(name=name)
        self.categories.append(category)
        self.sort()
        return category

    def sort(self) -> None:
        """Reorder the category list in place so existing references stay valid."""
        self.categories.sort(key=category_sort_key)

    def ensure_default_saved_theme(self) -> bool:
        """Append the ``default`` saved theme when missing. Returns True if added."""
        if any(saved.name.lower() == "default" for saved in self.saved_themes):
            return False
        self.saved_themes.append(default_saved_theme())
        return True


def category_sort_key(category: Category) -> Tuple[int, str]:
    return (category.column, category.name)


def sort_categories(categories: List[Category]) -> List[Category]:
    """Order categories by ``(column, name)``; ties keep their original order."""
    return sorted(categories, key=category_sort_key)


def default_document() -> MenuDocument:
    """The document written on first run."""
    return MenuDocument(
        categories=[
            Category(
                name="System Tools",
                expanded=True,
                column=1,
                items=[
                    MenuItem(
                        label="System Monitor",
                        command="htop",
                        description="Interactive process viewer",
                        pause=False,
                    )
                ],
            )
        ],
        settings=AppSettings(title=DEFAULT_TITLE, columns=1, theme_key=saved_theme_key(0)),
        saved_themes=[default_saved_theme()],
    )
