from __future__ import annotations

import logging
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from utils.formatting import parse_formatted_number

from .base_types import ProductId
from .conversion import ZERO
from .reorder import index_of

logger = logging.getLogger(__name__)

FULL_PERCENTAGE = Decimal(100)
PERCENTAGE_TOLERANCE = Decimal("0.01")
INITIAL_PRODUCT_COUNT = 2


class ProductRemovalError(ValueError):
    pass


class BlendProduct(BaseModel):
    id: ProductId = Field(default_factory=uuid4)
    name: str = ""
    price: Decimal = ZERO
    percentage: Decimal = ZERO

    @model_validator(mode="after")
    def _validate_percentage(self) -> BlendProduct:
        if not ZERO <= self.percentage <= FULL_PERCENTAGE:
            raise ValueError("percentage must be between 0 and 100")
        return self


class BlendState(BaseModel):
    products: list[BlendProduct]

    @model_validator(mode="after")
    def _validate_products(self) -> BlendState:
        if not self.products:
            raise ValueError("BlendState must have at least one product")
        if len({product.id for product in self.products}) != len(self.products):
            raise ValueError("Product ids must be unique")
        return self

    @classmethod
    def initial(cls) -> BlendState:
        return cls(products=[BlendProduct() for _ in range(INITIAL_PRODUCT_COUNT)])

    def with_fresh_ids(self) -> BlendState:
        """Copy with new product ids, as done when a saved preset is loaded."""
        return BlendState(products=[product.model_copy(update={"id": uuid4()}) for product in self.products])


class BlendSummary(BaseModel):
    total_percentage: Decimal
    is_valid: bool
    blended_price: Decimal
    warning: str | None = None


def total_percentage(state: BlendState) -> Decimal:
    return sum((product.percentage for product in state.products), start=ZERO)


def is_valid_percentage(total: Decimal) -> bool:
    return abs(total - FULL_PERCENTAGE) < PERCENTAGE_TOLERANCE


def blended_price(state: BlendState) -> Decimal:
    """Weighted average price, or zero while the percentages do not add up to 100."""
    if not is_valid_percentage(total_percentage(state)):
        return ZERO
    weighted = sum((product.price * product.percentage for product in state.products), start=ZERO)
    return weighted / FULL_PERCENTAGE


def summarize(state: BlendState) -> BlendSummary:
    total = total_percentage(state)
    valid = is_valid_percentage(total)
    warning = None if valid else f"Percentages add up to {total}%, they must total 100%"
    return BlendSummary(
        total_percentage=total,
        is_valid=valid,
        blended_price=blended_price(state),
        warning=warning,
    )


def add_product(state: BlendState, name: str = "") -> BlendState:
    return BlendState(products=[*state.products, BlendProduct(name=name)])


def remove_product(state: BlendState, product_id: ProductId) -> BlendState:
    index_of(state.products, product_id)
    if len(state.products) <= 1:
        raise ProductRemovalError("The blend must keep at least one product")
    return BlendState(products=[p for p in state.products if p.id != product_id])


def rename_product(state: BlendState, product_id: ProductId, name: str) -> BlendState:
    index_of(state.products, product_id)
    return BlendState(
        products=[p.model_copy(update={"name": name}) if p.id == product_id else p for p in state.products]
    )


def edit_price(state: BlendState, product_id: ProductId, raw: str) -> BlendState:
    return _edit_number(state, product_id, "price", raw)


def edit_percentage(state: BlendState, product_id: ProductId, raw: str) -> BlendState:
    return _edit_number(state, product_id, "percentage", raw)


def _edit_number(state: BlendState, product_id: ProductId, field_name: str, raw: str) -> BlendState:
    index_of(state.products, product_id)
    value = parse_formatted_number(raw)
    if value is None:
        logger.debug("Discarding unparseable %s input %r", field_name, raw)
        return state
    if field_name == "percentage" and not ZERO <= value <= FULL_PERCENTAGE:
        logger.debug("Discarding out of range percentage %s", value)
        return state
    return BlendState(
        products=[p.model_copy(update={field_name: value}) if p.id == product_id else p for p in state.products]
    )


__all__ = [
    "BlendProduct",
    "BlendState",
    "BlendSummary",
    "ProductRemovalError",
    "add_product",
    "blended_price",
    "edit_percentage",
    "edit_price",
    "is_valid_percentage",
    "remove_product",
    "rename_product",
    "summarize",
    "total_percentage",
]
