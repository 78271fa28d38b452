"""Screen geometry shared by the renderer and the hit-tester.

Everything here is a pure function of the terminal size and the current
state, so a click can be resolved against exactly what was drawn.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from rich.cells import cell_len


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def inner(self, horizontal: int, vertical: int) -> "Rect":
        """Shrink by a margin on every side, never below zero size."""
        width = max(0, self.width - 2 * horizontal)
        height = max(0, self.height - 2 * vertical)
        return Rect(self.x + horizontal, self.y + vertical, width, height)


@dataclass(frozen=True)
class MainGeometry:
    header: Rect
    footer: Rect
    content: Rect
    status: Rect
    columns: List[Rect]


@dataclass(frozen=True)
class PopupGeometry:
    header: Rect
    shortcuts: Rect
    content: Rect
    body: Rect
    status: Rect


CONTENT_MARGIN = (1, 1)
POPUP_BODY_MARGIN = (3, 1)
POPUP_MIN_CONTENT = 3


def split_columns(area: Rect, count: int) -> List[Rect]:
    """Split ``area`` into ``count`` equal-width columns."""
    count = max(1, count)
    columns = []
    for index in range(count):
        left = area.x + (index * area.width) // count
        right = area.x + ((index + 1) * area.width) // count
        columns.append(Rect(left, area.y, right - left, area.height))
    return columns


def main_geometry(width: int, height: int, column_count: int) -> MainGeometry:
    """Title bar, shortcut footer, content and status bar, top to bottom."""
    header = Rect(0, 0, width, min(1, height))
    footer = Rect(0, 1, width, 1 if height > 1 else 0)
    content_height = max(0, height - 3)
    content = Rect(0, 2, width, content_height)
    status = Rect(0, 2 + content_height, width, 1 if height > 2 else 0)
    inner = content.inner(*CONTENT_MARGIN)
    return MainGeometry(header, footer, content, status, split_columns(inner, column_count))


def popup_geometry(width: int, height: int) -> PopupGeometry:
    """Full-screen form layout: title, shortcut bar, body and status bar."""
    content_height = max(POPUP_MIN_CONTENT, height - 3)
    header = Rect(0, 0, width, 1)
    shortcuts = Rect(0, 1, width, 1)
    content = Rect(0, 2, width, content_height)
    status = Rect(0, 2 + content_height, width, 1)
    return PopupGeometry(header, shortcuts, content, content.inner(*POPUP_BODY_MARGIN), status)


def centered_rect(area: Rect, width_percent: int, height_percent: int) -> Rect:
    """A box of the given percentage size centered inside ``area``."""
    width = area.width * width_percent // 100
    height = area.height * height_percent // 100
    x = area.x + (area.width - width) // 2
    y = area.y + (area.height - height) // 2
    return Rect(x, y, width, height)


def scroll_offset(focus: Optional[int], total: int, visible: int) -> int:
    """First visible row so that ``focus`` stays on screen."""
    if focus is None or visible <= 0 or total <= visible:
        return 0
    offset = max(0, focus - visible + 1)
    return min(offset, total - visible)


def column_offsets(columns: List[List[int]], selection: int, visible: int) -> List[int]:
    """Scroll offset per column; only the column holding the selection scrolls."""
    offsets = []
    for entries in columns:
        focus = entries.index(selection) if selection in entries else None
        offsets.append(scroll_offset(focus, len(entries), visible))
    return offsets


class ShortcutAction(Enum):
    QUIT = "quit"
    EDIT = "edit"
    EXECUTE = "execute"
    NEW_ITEM = "new_item"
    DELETE = "delete"
    SETTINGS = "settings"
    SCAN = "scan"
    NEXT_FIELD = "next_field"
    SAVE = "save"
    CANCEL = "cancel"
    TOGGLE = "toggle"
    PREVIOUS_OPTION = "previous_option"
    NEXT_OPTION = "next_option"
    DELETE_OPTION = "delete_option"


@dataclass(frozen=True)
class ShortcutSegment:
    """A clickable ``key label`` span, in cells from the start of the bar."""

    key: str
    label: str
    separator: str
    start: int
    end: int
    action: ShortcutAction


@dataclass
class ShortcutBar:
    segments: List[ShortcutSegment] = field(default_factory=list)
    width: int = 0

    def add(
        self, key: str, label: str, action: ShortcutAction, separator: str = " | "
    ) -> "ShortcutBar":
        """Append a segment; the separator is only emitted between segments."""
        if not self.segments:
            separator = ""
        start = self.width + cell_len(separator)
        end = start + cell_len(key) + (cell_len(label) + 1 if label else 0)
        self.segments.append(ShortcutSegment(key, label, separator, start, end, action))
        self.width = end
        return self

    def start_x(self, area: Rect) -> int:
        return area.x + (area.width - min(self.width, area.width)) // 2

    def segment_at(self, area: Rect, x: int) -> Optional[ShortcutSegment]:
        """Segment under column ``x`` when the bar is centered in ``area``."""
        if area.is_empty or not self.segments:
            return None
        start = self.start_x(area)
        if x < start or x >= start + min(self.width, area.width):
            return None
        relative = x - start
        for segment in self.segments:
            if segment.start <= relative < segment.end:
                return segment
        return None


def footer_bar(import_label: str = "./import") -> ShortcutBar:
    bar = ShortcutBar()
    bar.add("q", "Exit", ShortcutAction.QUIT)
    bar.add("e", "Edit", ShortcutAction.EDIT)
    bar.add("↵", "Execute", ShortcutAction.EXECUTE)
    bar.add("n", "New Item", ShortcutAction.NEW_ITEM)
    bar.add("d", "Delete", ShortcutAction.DELETE)
    bar.add("s", "Settings", ShortcutAction.SETTINGS)
    bar.add("^b", f"Scan {import_label}", ShortcutAction.SCAN)
    return bar


def form_bar(cancel_label: str, delete_label: Optional[str]) -> ShortcutBar:
    """Shortcut bar of the forms that carry a selection list."""
    bar = ShortcutBar()
    bar.add("Tab", "Move", ShortcutAction.NEXT_FIELD)
    bar.add("↵", "Save", ShortcutAction.SAVE)
    bar.add("Esc", cancel_label, ShortcutAction.CANCEL)
    bar.add("←", "", ShortcutAction.PREVIOUS_OPTION)
    bar.add("→", "Select", ShortcutAction.NEXT_OPTION, separator="/")
    if delete_label:
        bar.add("d", delete_label, ShortcutAction.DELETE_OPTION)
    return bar
