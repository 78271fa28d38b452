"""Selection movement over the flattened display list."""


def move_up(selection: int, count: int) -> int:
    """Move one entry up, wrapping to the last entry."""
    if count <= 0:
        return selection
    return (selection - 1) % count


def move_down(selection: int, count: int) -> int:
    """Move one entry down, wrapping to the first entry."""
    if count <= 0:
        return selection
    return (selection + 1) % count


def clamp_selection(selection: int, count: int) -> int:
    """Keep a selection valid after the list was rebuilt."""
    if count <= 0:
        return 0
    return max(0, min(selection, count - 1))
