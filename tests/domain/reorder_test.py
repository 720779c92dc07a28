from dataclasses import dataclass

import pytest

from domain.reorder import UnknownItemError, index_of, move_down, move_onto, move_to_index, move_up


@dataclass(frozen=True)
class _Item:
    id: str


def _items(*ids: str) -> list[_Item]:
    return [_Item(item_id) for item_id in ids]


def _ids(items: list[_Item]) -> list[str]:
    return [item.id for item in items]


def test_index_of() -> None:
    items = _items("a", "b", "c")

    assert index_of(items, "c") == 2
    with pytest.raises(UnknownItemError):
        index_of(items, "z")


def test_move_to_index_forward_and_backward() -> None:
    items = _items("a", "b", "c", "d")

    assert _ids(move_to_index(items, "a", 2)) == ["b", "c", "a", "d"]
    assert _ids(move_to_index(items, "d", 0)) == ["d", "a", "b", "c"]
    assert _ids(items) == ["a", "b", "c", "d"]


def test_move_to_same_index_returns_copy() -> None:
    items = _items("a", "b")

    moved = move_to_index(items, "b", 1)

    assert moved == items
    assert moved is not items


def test_move_to_index_out_of_range() -> None:
    with pytest.raises(IndexError):
        move_to_index(_items("a", "b"), "a", 2)
    with pytest.raises(IndexError):
        move_to_index(_items("a", "b"), "a", -1)


def test_move_onto_takes_target_position() -> None:
    items = _items("a", "b", "c")

    assert _ids(move_onto(items, "c", "a")) == ["c", "a", "b"]
    assert _ids(move_onto(items, "a", "c")) == ["b", "c", "a"]
    assert _ids(move_onto(items, "b", "b")) == ["a", "b", "c"]


def test_move_onto_unknown_ids() -> None:
    with pytest.raises(UnknownItemError):
        move_onto(_items("a"), "x", "a")
    with pytest.raises(UnknownItemError):
        move_onto(_items("a"), "a", "x")


def test_move_up_and_down_at_boundaries() -> None:
    items = _items("a", "b", "c")

    assert _ids(move_up(items, "b")) == ["b", "a", "c"]
    assert _ids(move_down(items, "b")) == ["a", "c", "b"]
    assert _ids(move_up(items, "a")) == ["a", "b", "c"]
    assert _ids(move_down(items, "c")) == ["a", "b", "c"]
