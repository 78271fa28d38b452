"""On-disk configuration: menus.json, theme.json and the config directory."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from menu_maker.errors import PersistenceError
from menu_maker.model import MenuDocument, default_document
from menu_maker.themes import DEFAULT_THEME_KEY, Theme, is_preset_theme_key


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MENU_MAKER_HOME"
DEFAULT_CONFIG_DIR = Path("~/.local/menu-maker")


class AppPaths:
    """Locations of every file Menu Maker reads or writes."""

    def __init__(self, config_dir: Path):
        self.config_dir = Path(config_dir).expanduser()

    @classmethod
    def resolve(
        cls, config_dir: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
    ) -> "AppPaths":
        """CLI value first, then ``$MENU_MAKER_HOME``, then ``~/.local/menu-maker``."""
        environ = os.environ if environ is None else environ
        if config_dir:
            return cls(Path(config_dir))
        if environ.get(CONFIG_ENV_VAR):
            return cls(Path(environ[CONFIG_ENV_VAR]))
        return cls(DEFAULT_CONFIG_DIR)

    @property
    def menus_file(self) -> Path:
        return self.config_dir / "menus.json"

    @property
    def theme_file(self) -> Path:
        return self.config_dir / "theme.json"

    @property
    def bin_dir(self) -> Path:
        return self.config_dir / "bin"

    @property
    def log_file(self) -> Path:
        return self.config_dir / "menu-maker.log"

    def ensure(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)


def _write_json(path: Path, data: Dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise PersistenceError(f"Could not write {path.name}: {e}") from e


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Could not read {path.name}: {e}") from e
    if not isinstance(data, dict):
        raise PersistenceError(f"Could not read {path.name}: expected a JSON object")
    return data


class MenuStore:
    """Loads and saves the menu document."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> MenuDocument:
        """Read the document, writing the default one on first run."""
        if not self.path.exists():
            logger.info("No menu file at %s, creating default menu", self.path)
            document = default_document()
            self.save(document)
            return document
        document = MenuDocument.from_dict(_read_json(self.path))
        logger.debug("Loaded %d categories from %s", len(document.categories), self.path)
        return document

    def save(self, document: MenuDocument) -> None:
        _write_json(self.path, document.to_dict())


class ThemeStore:
    """Loads and saves the active palette in Midnight Commander skin format."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Theme:
        """Read the active theme; a missing or broken file resets to nord."""
        try:
            data = _read_json(self.path)
            return self._theme_from_data(data)
        except PersistenceError as e:
            if self.path.exists():
                logger.warning("%s, falling back to %s", e, DEFAULT_THEME_KEY)
            theme = Theme.from_name(DEFAULT_THEME_KEY)
            try:
                self.save(theme)
            except PersistenceError as save_error:
                logger.error("%s", save_error)
            return theme

    @staticmethod
    def _theme_from_data(data: Dict[str, Any]) -> Theme:
        skin = data.get("skin")
        if not isinstance(skin, str) or not skin:
            raise PersistenceError("Theme file has no skin name")
        if is_preset_theme_key(skin):
            return Theme.from_name(skin)
        colors = data.get("colors")
        if not isinstance(colors, dict):
            colors = {}
        return Theme.from_colors(
            skin, {role: value for role, value in colors.items() if isinstance(value, str)}
        )

    def save(self, theme: Theme) -> None:
        _write_json(
            self.path,
            {
                "skin": theme.name,
                "description": f"Menu Maker theme: {theme.name}",
                "colors": theme.colors(),
                "metadata": {
                    "created_by": "Menu Maker",
                    "version": "2.0",
                    "compatible_with": "textual",
                },
            },
        )
