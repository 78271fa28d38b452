"""Mapping screen coordinates back to entries, shortcuts and form lines."""

from typing import Any, Optional

from menu_maker.display import DisplayModel
from menu_maker.forms import FormLayout
from menu_maker.layout import (
    MainGeometry,
    PopupGeometry,
    Rect,
    ShortcutAction,
    ShortcutBar,
    column_offsets,
    scroll_offset,
)


def entry_at(
    geometry: MainGeometry, display: DisplayModel, selection: int, x: int, y: int
) -> Optional[int]:
    """Display entry index drawn at ``(x, y)``, if any."""
    if not geometry.columns:
        return None
    visible = geometry.columns[0].height
    offsets = column_offsets(display.columns, selection, visible)
    for column_index, rect in enumerate(geometry.columns):
        if not rect.contains(x, y):
            continue
        if column_index >= len(display.columns):
            return None
        entries = display.columns[column_index]
        row = y - rect.y + offsets[column_index]
        if 0 <= row < len(entries):
            return entries[row]
        return None
    return None


def shortcut_at(bar: ShortcutBar, area: Rect, x: int, y: int) -> Optional[ShortcutAction]:
    if not area.contains(x, y):
        return None
    segment = bar.segment_at(area, x)
    return segment.action if segment is not None else None


def footer_action_at(
    geometry: MainGeometry, bar: ShortcutBar, x: int, y: int
) -> Optional[ShortcutAction]:
    return shortcut_at(bar, geometry.footer, x, y)


def form_target_at(geometry: PopupGeometry, layout: FormLayout, x: int, y: int) -> Any:
    """Shortcut action, field or option under ``(x, y)`` inside a full-screen form."""
    if geometry.shortcuts.contains(x, y):
        return shortcut_at(layout.shortcuts, geometry.shortcuts, x, y)
    body = geometry.body
    if body.is_empty or not body.contains(x, y):
        return None
    offset = scroll_offset(layout.focus_line, len(layout.lines), body.height)
    line = y - body.y + offset
    if line >= len(layout.lines):
        return None
    return layout.targets.get(line)
