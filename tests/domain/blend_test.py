from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from domain.blend import (
    BlendProduct,
    BlendState,
    ProductRemovalError,
    add_product,
    blended_price,
    edit_percentage,
    edit_price,
    is_valid_percentage,
    remove_product,
    rename_product,
    summarize,
    total_percentage,
)
from domain.reorder import UnknownItemError


def _blend(*pairs: tuple[str, str]) -> BlendState:
    return BlendState(products=[BlendProduct(price=Decimal(p), percentage=Decimal(pct)) for p, pct in pairs])


def test_initial_blend_has_two_empty_products() -> None:
    state = BlendState.initial()

    assert len(state.products) == 2
    assert all(p.price == 0 and p.percentage == 0 and p.name == "" for p in state.products)
    assert state.products[0].id != state.products[1].id


def test_even_split_blend() -> None:
    valid = summarize(_blend(("10", "50"), ("20", "50")))
    invalid = summarize(_blend(("10", "50"), ("20", "40")))

    assert (valid.blended_price, valid.total_percentage, valid.is_valid) == (Decimal("15"), Decimal("100"), True)
    assert (invalid.blended_price, invalid.total_percentage, invalid.is_valid) == (Decimal(0), Decimal("90"), False)


def test_blended_price_is_weighted_average() -> None:
    state = _blend(("20", "60"), ("25", "40"))

    summary = summarize(state)

    assert summary.total_percentage == Decimal("100")
    assert summary.is_valid
    assert summary.blended_price == Decimal("22")
    assert summary.warning is None


def test_blended_price_is_zero_when_percentages_do_not_add_up() -> None:
    state = _blend(("20", "60"), ("25", "30"))

    summary = summarize(state)

    assert summary.total_percentage == Decimal("90")
    assert not summary.is_valid
    assert summary.blended_price == 0
    assert summary.warning == "Percentages add up to 90%, they must total 100%"


def test_percentage_tolerance() -> None:
    assert is_valid_percentage(Decimal("99.995"))
    assert is_valid_percentage(Decimal("100.009"))
    assert not is_valid_percentage(Decimal("99.99"))
    assert not is_valid_percentage(Decimal("100.01"))


def test_blend_of_one_product() -> None:
    state = _blend(("21.5", "100"))

    assert total_percentage(state) == Decimal("100")
    assert blended_price(state) == Decimal("21.5")


def test_percentage_out_of_range_is_rejected_by_model() -> None:
    with pytest.raises(ValidationError):
        BlendProduct(percentage=Decimal("101"))
    with pytest.raises(ValidationError):
        BlendProduct(percentage=Decimal("-1"))


def test_edits_parse_or_discard() -> None:
    state = BlendState.initial()
    product_id = state.products[0].id

    state = edit_price(state, product_id, "1,234.5")
    state = edit_percentage(state, product_id, "55")
    assert state.products[0].price == Decimal("1234.5")
    assert state.products[0].percentage == Decimal("55")

    assert edit_price(state, product_id, "abc") == state
    assert edit_percentage(state, product_id, "") == state
    assert edit_percentage(state, product_id, "150") == state


def test_add_rename_remove_products() -> None:
    state = add_product(BlendState.initial(), "Premium")
    assert len(state.products) == 3
    assert state.products[-1].name == "Premium"

    first_id = state.products[0].id
    state = rename_product(state, first_id, "Regular")
    assert state.products[0].name == "Regular"

    state = remove_product(state, first_id)
    assert first_id not in {p.id for p in state.products}


def test_cannot_remove_last_product() -> None:
    state = _blend(("20", "100"))

    with pytest.raises(ProductRemovalError):
        remove_product(state, state.products[0].id)


def test_unknown_product_raises() -> None:
    with pytest.raises(UnknownItemError):
        edit_price(BlendState.initial(), uuid4(), "1")


def test_with_fresh_ids_keeps_values() -> None:
    state = _blend(("20", "60"), ("25", "40"))

    fresh = state.with_fresh_ids()

    assert [p.id for p in fresh.products] != [p.id for p in state.products]
    assert [(p.price, p.percentage) for p in fresh.products] == [(p.price, p.percentage) for p in state.products]
