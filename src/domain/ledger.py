from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base_types import REPRESENTATIONS, ConceptId, Representation
from .conversion import (
    ZERO,
    gallons_to_liters,
    liters_to_gallons,
    mxn_per_ltr_to_usd_per_gal,
    mxn_to_usd,
    safe_divide,
    usd_per_gal_to_mxn_per_ltr,
    usd_to_mxn,
)
from .reorder import index_of, move_down, move_onto, move_to_index, move_up

BASE_CONCEPT_NAME = "Molecule Price"
NEW_CONCEPT_NAME = "New Cost"
DECIMAL_PLACES_CHOICES = (2, 4)


class ConceptRemovalError(ValueError):
    pass


class Concept(BaseModel):
    """A priced line item.

    `value` is stored in the units named by `input_type`, which is whichever
    column was last edited. The base concept's own `value` is unused: its price
    lives on `LedgerState.base_price`.
    """

    id: ConceptId = Field(default_factory=uuid4)
    name: str
    value: Decimal = ZERO
    input_type: Representation = Representation.MXN_PER_LITER
    is_base: bool = False


class LedgerState(BaseModel):
    exchange_rate: Decimal = ZERO
    base_price: Decimal = ZERO
    base_price_input_type: Representation = Representation.USD_PER_GALLON
    gallons: Decimal = ZERO
    liters: Decimal = ZERO
    concepts: list[Concept]
    margin: Decimal = ZERO
    margin_input_type: Representation = Representation.MXN_PER_LITER
    decimal_places: int = 4

    @model_validator(mode="after")
    def _validate_fields(self) -> LedgerState:
        if not self.concepts:
            raise ValueError("LedgerState must have at least one concept")
        base_count = sum(1 for concept in self.concepts if concept.is_base)
        if base_count != 1:
            raise ValueError(f"LedgerState must have exactly one base concept, got {base_count}")
        if len({concept.id for concept in self.concepts}) != len(self.concepts):
            raise ValueError("Concept ids must be unique")
        if self.decimal_places not in DECIMAL_PLACES_CHOICES:
            raise ValueError(f"decimal_places must be one of {DECIMAL_PLACES_CHOICES}")
        return self

    @classmethod
    def initial(cls) -> LedgerState:
        base = Concept(name=BASE_CONCEPT_NAME, input_type=Representation.USD_PER_GALLON, is_base=True)
        return cls(concepts=[base])

    @property
    def base_concept(self) -> Concept:
        return next(concept for concept in self.concepts if concept.is_base)

    def concept(self, concept_id: ConceptId) -> Concept:
        return self.concepts[index_of(self.concepts, concept_id)]


class RepresentationValues(BaseModel):
    """One price expressed in all four representations."""

    model_config = ConfigDict(frozen=True)

    mxn_per_liter: Decimal = ZERO
    mxn_total: Decimal = ZERO
    usd_total: Decimal = ZERO
    usd_per_gallon: Decimal = ZERO

    def get(self, representation: Representation) -> Decimal:
        return getattr(self, _FIELD_BY_REPRESENTATION[representation])

    def __add__(self, other: RepresentationValues) -> RepresentationValues:
        return RepresentationValues(
            mxn_per_liter=self.mxn_per_liter + other.mxn_per_liter,
            mxn_total=self.mxn_total + other.mxn_total,
            usd_total=self.usd_total + other.usd_total,
            usd_per_gallon=self.usd_per_gallon + other.usd_per_gallon,
        )


_FIELD_BY_REPRESENTATION: dict[Representation, str] = {
    Representation.MXN_PER_LITER: "mxn_per_liter",
    Representation.MXN_TOTAL: "mxn_total",
    Representation.USD_TOTAL: "usd_total",
    Representation.USD_PER_GALLON: "usd_per_gallon",
}


@dataclass(frozen=True)
class PricingBasis:
    """The live inputs every derivation depends on."""

    rate: Decimal
    gallons: Decimal
    liters: Decimal

    @classmethod
    def of(cls, state: LedgerState) -> PricingBasis:
        return cls(rate=state.exchange_rate, gallons=state.gallons, liters=state.liters)


_Derivation = Callable[[Decimal, PricingBasis], Decimal]

R = Representation
_DERIVATIONS: dict[tuple[Representation, Representation], _Derivation] = {
    (R.MXN_PER_LITER, R.MXN_PER_LITER): lambda v, b: v,
    (R.MXN_TOTAL, R.MXN_PER_LITER): lambda v, b: safe_divide(v, b.liters),
    (R.USD_TOTAL, R.MXN_PER_LITER): lambda v, b: safe_divide(usd_to_mxn(v, b.rate), b.liters),
    (R.USD_PER_GALLON, R.MXN_PER_LITER): lambda v, b: usd_per_gal_to_mxn_per_ltr(v, b.rate),
    (R.MXN_PER_LITER, R.MXN_TOTAL): lambda v, b: v * b.liters,
    (R.MXN_TOTAL, R.MXN_TOTAL): lambda v, b: v,
    (R.USD_TOTAL, R.MXN_TOTAL): lambda v, b: usd_to_mxn(v, b.rate),
    (R.USD_PER_GALLON, R.MXN_TOTAL): lambda v, b: usd_per_gal_to_mxn_per_ltr(v, b.rate) * b.liters,
    (R.MXN_PER_LITER, R.USD_TOTAL): lambda v, b: mxn_to_usd(v * b.liters, b.rate),
    (R.MXN_TOTAL, R.USD_TOTAL): lambda v, b: mxn_to_usd(v, b.rate),
    (R.USD_TOTAL, R.USD_TOTAL): lambda v, b: v,
    (R.USD_PER_GALLON, R.USD_TOTAL): lambda v, b: v * b.gallons,
    (R.MXN_PER_LITER, R.USD_PER_GALLON): lambda v, b: mxn_per_ltr_to_usd_per_gal(v, b.rate),
    (R.MXN_TOTAL, R.USD_PER_GALLON): lambda v, b: safe_divide(mxn_to_usd(v, b.rate), b.gallons),
    (R.USD_TOTAL, R.USD_PER_GALLON): lambda v, b: safe_divide(v, b.gallons),
    (R.USD_PER_GALLON, R.USD_PER_GALLON): lambda v, b: v,
}
del R


def derive(value: Decimal, source: Representation, target: Representation, basis: PricingBasis) -> Decimal:
    return _DERIVATIONS[(source, target)](value, basis)


def all_representations(value: Decimal, source: Representation, basis: PricingBasis) -> RepresentationValues:
    return RepresentationValues(
        **{_FIELD_BY_REPRESENTATION[target]: derive(value, source, target, basis) for target in REPRESENTATIONS}
    )


def concept_values(state: LedgerState, concept: Concept) -> RepresentationValues:
    basis = PricingBasis.of(state)
    if concept.is_base:
        return all_representations(state.base_price, Representation.USD_PER_GALLON, basis)
    return all_representations(concept.value, concept.input_type, basis)


def totals(state: LedgerState) -> RepresentationValues:
    return sum((concept_values(state, concept) for concept in state.concepts), start=RepresentationValues())


def margin_values(state: LedgerState) -> RepresentationValues:
    return all_representations(state.margin, state.margin_input_type, PricingBasis.of(state))


def sale_price(state: LedgerState) -> RepresentationValues:
    return totals(state) + margin_values(state)


class ConceptRow(BaseModel):
    id: ConceptId
    name: str
    is_base: bool
    prices: RepresentationValues


class LedgerBreakdown(BaseModel):
    """Flat snapshot of every computed figure, used for display and export."""

    exchange_rate: Decimal
    gallons: Decimal
    liters: Decimal
    decimal_places: int
    rows: list[ConceptRow]
    totals: RepresentationValues
    margin: RepresentationValues
    sale_price: RepresentationValues


def compute_breakdown(state: LedgerState) -> LedgerBreakdown:
    rows = [
        ConceptRow(id=concept.id, name=concept.name, is_base=concept.is_base, prices=concept_values(state, concept))
        for concept in state.concepts
    ]
    total = sum((row.prices for row in rows), start=RepresentationValues())
    margin = margin_values(state)
    return LedgerBreakdown(
        exchange_rate=state.exchange_rate,
        gallons=state.gallons,
        liters=state.liters,
        decimal_places=state.decimal_places,
        rows=rows,
        totals=total,
        margin=margin,
        sale_price=total + margin,
    )


# State transitions. Each returns a new state and never mutates its input.


def set_concept_value(
    state: LedgerState, concept_id: ConceptId, value: Decimal, input_type: Representation
) -> LedgerState:
    target = state.concept(concept_id)
    if target.is_base:
        return set_base_price(state, value, input_type)
    concepts = [
        concept.model_copy(update={"value": value, "input_type": input_type}) if concept.id == concept_id else concept
        for concept in state.concepts
    ]
    return state.model_copy(update={"concepts": concepts})


def set_base_price(state: LedgerState, value: Decimal, input_type: Representation) -> LedgerState:
    usd_per_gallon = derive(value, input_type, Representation.USD_PER_GALLON, PricingBasis.of(state))
    return state.model_copy(update={"base_price": usd_per_gallon, "base_price_input_type": input_type})


def set_margin(state: LedgerState, value: Decimal, input_type: Representation) -> LedgerState:
    return state.model_copy(update={"margin": value, "margin_input_type": input_type})


def set_exchange_rate(state: LedgerState, rate: Decimal) -> LedgerState:
    return state.model_copy(update={"exchange_rate": rate})


def set_gallons(state: LedgerState, gallons: Decimal) -> LedgerState:
    return state.model_copy(update={"gallons": gallons, "liters": gallons_to_liters(gallons)})


def set_liters(state: LedgerState, liters: Decimal) -> LedgerState:
    return state.model_copy(update={"liters": liters, "gallons": liters_to_gallons(liters)})


def toggle_decimal_places(state: LedgerState) -> LedgerState:
    return state.model_copy(update={"decimal_places": 2 if state.decimal_places == 4 else 4})


def add_concept(state: LedgerState, name: str = NEW_CONCEPT_NAME) -> LedgerState:
    return state.model_copy(update={"concepts": [*state.concepts, Concept(name=name)]})


def remove_concept(state: LedgerState, concept_id: ConceptId) -> LedgerState:
    target = state.concept(concept_id)
    if target.is_base:
        raise ConceptRemovalError("The base concept cannot be removed")
    if len(state.concepts) <= 1:
        raise ConceptRemovalError("The ledger must keep at least one concept")
    return state.model_copy(update={"concepts": [c for c in state.concepts if c.id != concept_id]})


def rename_concept(state: LedgerState, concept_id: ConceptId, name: str) -> LedgerState:
    state.concept(concept_id)
    concepts = [c.model_copy(update={"name": name}) if c.id == concept_id else c for c in state.concepts]
    return state.model_copy(update={"concepts": concepts})


def move_concept_to_index(state: LedgerState, concept_id: ConceptId, target_index: int) -> LedgerState:
    return state.model_copy(update={"concepts": move_to_index(state.concepts, concept_id, target_index)})


def drop_concept_onto(state: LedgerState, dragged_id: ConceptId, target_id: ConceptId) -> LedgerState:
    return state.model_copy(update={"concepts": move_onto(state.concepts, dragged_id, target_id)})


def move_concept_up(state: LedgerState, concept_id: ConceptId) -> LedgerState:
    return state.model_copy(update={"concepts": move_up(state.concepts, concept_id)})


def move_concept_down(state: LedgerState, concept_id: ConceptId) -> LedgerState:
    return state.model_copy(update={"concepts": move_down(state.concepts, concept_id)})
