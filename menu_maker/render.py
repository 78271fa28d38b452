"""Drawing the controller state as a Rich ``Text`` frame."""

from typing import List, Optional, Sequence, Tuple

from rich.cells import cell_len
from rich.text import Text

from menu_maker.controller import InfoPopup, MenuController, MessagePopup
from menu_maker.display import CategoryHeader, ItemEntry
from menu_maker.forms import FormState
from menu_maker.layout import (
    Rect,
    ShortcutBar,
    centered_rect,
    column_offsets,
    main_geometry,
    popup_geometry,
    scroll_offset,
)
from menu_maker.themes import Theme


FOOTER_BACKGROUND = "#76B3C5"
FOOTER_KEY = "#FDA009"
FOOTER_LABEL = "#2E3544"


def _fit(text: Text, width: int) -> Text:
    """Crop or pad ``text`` to exactly ``width`` cells."""
    text = text.copy()
    text.truncate(max(0, width), overflow="crop", pad=True)
    return text


def _spans(spans: Sequence[Tuple[str, str]], base: str) -> Text:
    text = Text(style=base, no_wrap=True, end="")
    for content, style in spans:
        text.append(content, style=style or None)
    return text


def _centered(text: Text, width: int, base: str) -> Text:
    used = min(cell_len(text.plain), width)
    left = (width - used) // 2
    row = Text(" " * left, style=base, no_wrap=True, end="")
    row.append_text(text)
    return _fit(row, width)


def _blank(width: int, base: str) -> Text:
    return Text(" " * max(0, width), style=base, no_wrap=True, end="")


def shortcut_text(bar: ShortcutBar, key_style: str, label_style: str) -> Text:
    text = Text(no_wrap=True, end="")
    for segment in bar.segments:
        text.append(segment.separator, style=label_style)
        text.append(segment.key, style=key_style)
        if segment.label:
            text.append(f" {segment.label}", style=label_style)
    return text


def _bar_style(theme: Theme) -> str:
    return f"bold {theme.text} on {theme.primary}"


def entry_text(controller: MenuController, index: int) -> Tuple[str, str]:
    """Line text and style of one display entry."""
    theme = controller.theme
    entry = controller.display.entries[index]
    category = controller.categories[entry.category_index]
    foreground, background = theme.text, theme.surface
    if category.colors:
        background = category.colors.get("background") or background
        foreground = category.colors.get("text") or foreground
    if isinstance(entry, CategoryHeader):
        marker = "▼" if category.expanded else "▶"
        line, style = f"{marker} {category.name}", f"bold {foreground} on {background}"
    elif isinstance(entry, ItemEntry):
        label = category.items[entry.item_index].label
        line, style = f"    {label}", f"{foreground} on {background}"
    if index == controller.selection:
        style = f"bold {theme.background} on {theme.highlight}"
    return line, style


def render_main(controller: MenuController, width: int, height: int) -> List[Text]:
    theme = controller.theme
    geometry = main_geometry(width, height, controller.column_count)
    surface = f"{theme.text} on {theme.surface}"
    rows = [
        _centered(Text(controller.title), width, _bar_style(theme)),
        _centered(
            shortcut_text(
                controller.footer,
                f"bold {FOOTER_KEY} on {FOOTER_BACKGROUND}",
                f"{FOOTER_LABEL} on {FOOTER_BACKGROUND}",
            ),
            width,
            f"on {FOOTER_BACKGROUND}",
        ),
    ]
    columns = geometry.columns
    visible = columns[0].height if columns else 0
    offsets = column_offsets(controller.display.columns, controller.selection, visible)
    for y in range(geometry.content.y, geometry.content.bottom):
        if not columns or not columns[0].y <= y < columns[0].bottom:
            rows.append(_blank(width, surface))
            continue
        row = _blank(columns[0].x, surface)
        for column_index, rect in enumerate(columns):
            entries = controller.display.columns[column_index]
            position = y - rect.y + offsets[column_index]
            if position < len(entries):
                line, style = entry_text(controller, entries[position])
                cell = _fit(Text(line, style=style, no_wrap=True, end=""), rect.width)
            else:
                cell = _blank(rect.width, surface)
            row.append_text(cell)
        rows.append(_fit(row, width))
    rows.append(_centered(Text(controller.status_text()), width, _bar_style(theme)))
    return rows[:height]


def _overlay(rows: List[Text], area: Rect, box: List[Text]) -> None:
    for offset, line in enumerate(box):
        y = area.y + offset
        if not 0 <= y < len(rows):
            continue
        row = rows[y]
        rows[y] = Text.assemble(row[: area.x], line, row[area.right:], no_wrap=True, end="")


def popup_box(title: str, body: str, width: int, height: int, style: str) -> List[Text]:
    """A bordered box of exactly ``width`` x ``height`` cells."""
    if width < 4 or height < 2:
        return []
    inner = width - 4
    top = f"┌─ {title} " if cell_len(title) + 5 <= width else "┌"
    lines = [_fit(Text(top + "─" * width, style=style), width - 1)]
    lines[0].append("┐", style=style)
    body_lines = body.split("\n")
    for index in range(height - 2):
        content = body_lines[index] if index < len(body_lines) else ""
        line = Text("│ ", style=style, no_wrap=True, end="")
        line.append_text(_fit(Text(content, style=style), inner))
        line.append(" │", style=style)
        lines.append(line)
    lines.append(Text("└" + "─" * (width - 2) + "┘", style=style))
    return lines


def render_form(controller: MenuController, form: FormState, width: int, height: int) -> List[Text]:
    theme = controller.theme
    geometry = popup_geometry(width, height)
    layout = form.layout(theme)
    surface = f"{theme.text} on {theme.surface}"
    highlight = f"bold {theme.background} on {theme.highlight}"
    rows = [
        _centered(Text(controller.header_text()), width, _bar_style(theme)),
        _centered(
            shortcut_text(
                layout.shortcuts,
                f"bold {theme.accent} on {theme.highlight}",
                f"{theme.surface} on {theme.highlight}",
            ),
            width,
            f"bold on {theme.highlight}",
        ),
    ]
    body = geometry.body
    offset = scroll_offset(layout.focus_line, len(layout.lines), body.height)
    for y in range(geometry.content.y, geometry.content.bottom):
        row = _blank(body.x, surface)
        index = y - body.y + offset
        if body.y <= y < body.bottom and index < len(layout.lines):
            line = layout.lines[index]
            if line.highlight:
                cell = _fit(Text(line.plain, style=highlight), body.width)
            else:
                cell = _fit(_spans(line.spans, surface), body.width)
            row.append_text(cell)
        rows.append(_fit(row, width))
    rows.append(_centered(Text(controller.status_text()), width, _bar_style(theme)))
    return rows[:height]


def render_frame(controller: MenuController, width: int, height: int) -> Text:
    """Full-screen frame for the current state."""
    if width <= 0 or height <= 0:
        return Text("")
    popup = controller.popup
    if isinstance(popup, FormState):
        rows = render_form(controller, popup, width, height)
    else:
        rows = render_main(controller, width, height)
        box: Optional[List[Text]] = None
        area = Rect(0, 0, width, height)
        style = f"{controller.theme.text} on {controller.theme.surface}"
        if isinstance(popup, InfoPopup):
            area = centered_rect(area, 60, 40)
            box = popup_box("Item Info", popup.text, area.width, area.height, style)
        elif isinstance(popup, MessagePopup):
            area = centered_rect(area, 50, 30)
            box = popup_box("Message", popup.text, area.width, area.height, style)
        if box:
            _overlay(rows, area, box)
    frame = Text(no_wrap=True, overflow="crop", end="")
    for index, row in enumerate(rows):
        if index:
            frame.append("\n")
        frame.append_text(row)
    return frame
