"""Position changes on ordered, id-keyed sequences.

Order only affects display and export. Every function returns a new list and
leaves the input untouched; boundary moves return an unchanged copy.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, TypeVar


class Identified(Protocol):
    @property
    def id(self) -> Any: ...


T = TypeVar("T", bound=Identified)


class UnknownItemError(KeyError):
    def __init__(self, item_id: object) -> None:
        self.item_id = item_id
        super().__init__(f"No item with id={item_id}")


def index_of(items: Sequence[T], item_id: object) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    raise UnknownItemError(item_id)


def move_to_index(items: Sequence[T], item_id: object, target_index: int) -> list[T]:
    """Remove the item and reinsert it at `target_index`.

    This is the drop operation of a pointer drag: the target index is the
    current index of the row the item was dropped on.
    """
    source_index = index_of(items, item_id)
    reordered = list(items)
    if target_index < 0 or target_index >= len(reordered):
        raise IndexError(f"target_index {target_index} out of range for {len(reordered)} items")
    if source_index == target_index:
        return reordered
    moved = reordered.pop(source_index)
    reordered.insert(target_index, moved)
    return reordered


def move_onto(items: Sequence[T], dragged_id: object, target_id: object) -> list[T]:
    if dragged_id == target_id:
        index_of(items, dragged_id)
        return list(items)
    return move_to_index(items, dragged_id, index_of(items, target_id))


def move_up(items: Sequence[T], item_id: object) -> list[T]:
    index = index_of(items, item_id)
    if index == 0:
        return list(items)
    return move_to_index(items, item_id, index - 1)


def move_down(items: Sequence[T], item_id: object) -> list[T]:
    index = index_of(items, item_id)
    if index == len(items) - 1:
        return list(items)
    return move_to_index(items, item_id, index + 1)


__all__ = ["UnknownItemError", "index_of", "move_down", "move_onto", "move_to_index", "move_up"]
