"""Pytest configuration and shared fixtures."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytest

from menu_maker.controller import MenuController
from menu_maker.store import AppPaths


@dataclass
class KeyPress:
    """Stand-in for a Textual key event: only ``key`` and ``character`` are read."""

    key: str
    character: Optional[str] = None


def press(key: str) -> KeyPress:
    """A key press; single characters carry themselves as ``character``."""
    if len(key) == 1:
        return KeyPress(key, key)
    if key == "space":
        return KeyPress(key, " ")
    return KeyPress(key)


def type_text(target, text: str) -> None:
    """Feed ``text`` one character at a time to a form or controller."""
    for ch in text:
        target.handle_key(KeyPress(ch, ch))


@pytest.fixture
def paths(tmp_path) -> AppPaths:
    app_paths = AppPaths(tmp_path / "config")
    app_paths.ensure()
    return app_paths


@pytest.fixture
def write_menu(paths):
    """Write a raw menus.json document before the controller loads it."""

    def _write(data: dict) -> Path:
        paths.menus_file.write_text(json.dumps(data))
        return paths.menus_file

    return _write


@pytest.fixture
def controller(paths, tmp_path) -> MenuController:
    """Controller on a fresh config directory (the default menu is written)."""
    ctrl = MenuController(paths, import_dir=tmp_path / "import")
    ctrl.resize(80, 24)
    return ctrl


@pytest.fixture
def empty_controller(paths, write_menu, tmp_path) -> MenuController:
    """Controller whose menu starts with no categories."""
    write_menu({"categories": {}, "app_settings": {"title": "Test Menu", "columns": 1}})
    ctrl = MenuController(paths, import_dir=tmp_path / "import")
    ctrl.resize(80, 24)
    return ctrl
