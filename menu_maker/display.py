"""Flattening of categories and items into a column-partitioned display order."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from menu_maker.model import Category


@dataclass(frozen=True)
class CategoryHeader:
    category_index: int


@dataclass(frozen=True)
class ItemEntry:
    category_index: int
    item_index: int


DisplayEntry = Union[CategoryHeader, ItemEntry]


@dataclass
class DisplayModel:
    """Flat entry list plus, per column, the entry indices shown in it."""

    entries: List[DisplayEntry] = field(default_factory=list)
    columns: List[List[int]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, index: int) -> Optional[DisplayEntry]:
        if 0 <= index < len(self.entries):
            return self.entries[index]
        return None

    def position_of(self, index: int) -> Optional[Tuple[int, int]]:
        """Return ``(column, row)`` for an entry index."""
        for column_index, column in enumerate(self.columns):
            if index in column:
                return column_index, column.index(index)
        return None


def build_display(categories: List[Category], column_count: int) -> DisplayModel:
    """Build the display model for categories already sorted by ``(column, name)``.

    Every header lands in the column its category asks for, clamped to the
    columns available; items of an expanded category follow their header.
    """
    column_count = max(1, column_count)
    model = DisplayModel(columns=[[] for _ in range(column_count)])
    for category_index, category in enumerate(categories):
        column = max(0, min(category.column - 1, column_count - 1))
        model.columns[column].append(len(model.entries))
        model.entries.append(CategoryHeader(category_index))
        if not category.expanded:
            continue
        for item_index in range(len(category.items)):
            model.columns[column].append(len(model.entries))
            model.entries.append(ItemEntry(category_index, item_index))
    return model
