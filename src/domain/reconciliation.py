"""Edit commands for the price ledger and the last-edited-field-wins rule.

A UI binds each committed field edit (blur/change) to one command and hands
it to `reconcile`. Text is parsed here; unparseable input leaves the state
untouched and the display falls back to the formatted canonical value. An
accepted edit makes the edited column the canonical one for its entity, and
every other figure is re-derived from canonical values only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any, Callable, Union

from pydantic import BaseModel

from utils.formatting import format_number, parse_formatted_number

from . import ledger
from .base_types import REPRESENTATIONS, ConceptId, Representation
from .ledger import LedgerBreakdown, LedgerState, RepresentationValues

logger = logging.getLogger(__name__)

EXCHANGE_RATE_PLACES = 4
VOLUME_PLACES = 2


@dataclass(frozen=True)
class EditConceptValue:
    concept_id: ConceptId
    representation: Representation
    raw: str


@dataclass(frozen=True)
class EditBasePrice:
    representation: Representation
    raw: str


@dataclass(frozen=True)
class EditMargin:
    representation: Representation
    raw: str


@dataclass(frozen=True)
class EditGallons:
    raw: str


@dataclass(frozen=True)
class EditLiters:
    raw: str


@dataclass(frozen=True)
class EditExchangeRate:
    raw: str


@dataclass(frozen=True)
class RenameConcept:
    concept_id: ConceptId
    name: str


@dataclass(frozen=True)
class AddConcept:
    name: str = ledger.NEW_CONCEPT_NAME


@dataclass(frozen=True)
class RemoveConcept:
    concept_id: ConceptId


@dataclass(frozen=True)
class MoveConceptToIndex:
    concept_id: ConceptId
    target_index: int


@dataclass(frozen=True)
class DropConceptOnto:
    dragged_id: ConceptId
    target_id: ConceptId


@dataclass(frozen=True)
class MoveConceptUp:
    concept_id: ConceptId


@dataclass(frozen=True)
class MoveConceptDown:
    concept_id: ConceptId


@dataclass(frozen=True)
class ToggleDecimalPlaces:
    pass


@dataclass(frozen=True)
class LoadLedger:
    state: LedgerState


LedgerCommand = Union[
    EditConceptValue,
    EditBasePrice,
    EditMargin,
    EditGallons,
    EditLiters,
    EditExchangeRate,
    RenameConcept,
    AddConcept,
    RemoveConcept,
    MoveConceptToIndex,
    DropConceptOnto,
    MoveConceptUp,
    MoveConceptDown,
    ToggleDecimalPlaces,
    LoadLedger,
]


class FieldKind(StrEnum):
    CONCEPT = "concept"
    MARGIN = "margin"
    GALLONS = "gallons"
    LITERS = "liters"
    EXCHANGE_RATE = "exchange_rate"


@dataclass(frozen=True)
class FieldRef:
    kind: FieldKind
    concept_id: ConceptId | None = None
    representation: Representation | None = None


@dataclass(frozen=True)
class _Outcome:
    state: LedgerState
    accepted: bool = True
    edited: FieldRef | None = None
    verbatim: str | None = None


class DisplayRow(BaseModel):
    id: ConceptId
    name: str
    is_base: bool
    cells: dict[Representation, str]


class LedgerDisplay(BaseModel):
    """Text for every field of the ledger table, as the UI should show it."""

    exchange_rate: str
    gallons: str
    liters: str
    decimal_places: int
    rows: list[DisplayRow]
    totals: dict[Representation, str]
    margin: dict[Representation, str]
    sale_price: dict[Representation, str]


@dataclass(frozen=True)
class Reconciliation:
    state: LedgerState
    display: LedgerDisplay
    accepted: bool
    breakdown: LedgerBreakdown = field(repr=False)


def _parse_or_reject(state: LedgerState, raw: str, build: Callable[[Decimal], _Outcome]) -> _Outcome:
    value = parse_formatted_number(raw)
    if value is None:
        logger.debug("Discarding unparseable input %r", raw)
        return _Outcome(state=state, accepted=False)
    return build(value)


def _edit_concept_value(state: LedgerState, command: EditConceptValue) -> _Outcome:
    return _parse_or_reject(
        state,
        command.raw,
        lambda value: _Outcome(
            state=ledger.set_concept_value(state, command.concept_id, value, command.representation),
            edited=FieldRef(FieldKind.CONCEPT, command.concept_id, command.representation),
            verbatim=command.raw.strip(),
        ),
    )


def _edit_base_price(state: LedgerState, command: EditBasePrice) -> _Outcome:
    return _edit_concept_value(
        state, EditConceptValue(state.base_concept.id, command.representation, command.raw)
    )


def _edit_margin(state: LedgerState, command: EditMargin) -> _Outcome:
    return _parse_or_reject(
        state,
        command.raw,
        lambda value: _Outcome(
            state=ledger.set_margin(state, value, command.representation),
            edited=FieldRef(FieldKind.MARGIN, representation=command.representation),
            verbatim=command.raw.strip(),
        ),
    )


def _edit_gallons(state: LedgerState, command: EditGallons) -> _Outcome:
    return _parse_or_reject(
        state,
        command.raw,
        lambda value: _Outcome(
            state=ledger.set_gallons(state, value),
            edited=FieldRef(FieldKind.GALLONS),
            verbatim=command.raw.strip(),
        ),
    )


def _edit_liters(state: LedgerState, command: EditLiters) -> _Outcome:
    return _parse_or_reject(
        state,
        command.raw,
        lambda value: _Outcome(
            state=ledger.set_liters(state, value),
            edited=FieldRef(FieldKind.LITERS),
            verbatim=command.raw.strip(),
        ),
    )


def _edit_exchange_rate(state: LedgerState, command: EditExchangeRate) -> _Outcome:
    return _parse_or_reject(
        state,
        command.raw,
        lambda value: _Outcome(
            state=ledger.set_exchange_rate(state, value),
            edited=FieldRef(FieldKind.EXCHANGE_RATE),
            verbatim=command.raw.strip(),
        ),
    )


_HANDLERS: dict[type, Callable[[LedgerState, Any], _Outcome]] = {
    EditConceptValue: _edit_concept_value,
    EditBasePrice: _edit_base_price,
    EditMargin: _edit_margin,
    EditGallons: _edit_gallons,
    EditLiters: _edit_liters,
    EditExchangeRate: _edit_exchange_rate,
    RenameConcept: lambda s, c: _Outcome(ledger.rename_concept(s, c.concept_id, c.name)),
    AddConcept: lambda s, c: _Outcome(ledger.add_concept(s, c.name)),
    RemoveConcept: lambda s, c: _Outcome(ledger.remove_concept(s, c.concept_id)),
    MoveConceptToIndex: lambda s, c: _Outcome(ledger.move_concept_to_index(s, c.concept_id, c.target_index)),
    DropConceptOnto: lambda s, c: _Outcome(ledger.drop_concept_onto(s, c.dragged_id, c.target_id)),
    MoveConceptUp: lambda s, c: _Outcome(ledger.move_concept_up(s, c.concept_id)),
    MoveConceptDown: lambda s, c: _Outcome(ledger.move_concept_down(s, c.concept_id)),
    ToggleDecimalPlaces: lambda s, c: _Outcome(ledger.toggle_decimal_places(s)),
    LoadLedger: lambda s, c: _Outcome(c.state),
}


def reconcile(state: LedgerState, command: LedgerCommand) -> Reconciliation:
    try:
        handler = _HANDLERS[type(command)]
    except KeyError as exc:
        raise TypeError(f"Unsupported ledger command: {type(command).__name__}") from exc

    outcome = handler(state, command)
    breakdown = ledger.compute_breakdown(outcome.state)
    display = render_display(breakdown, edited=outcome.edited, verbatim=outcome.verbatim)
    return Reconciliation(state=outcome.state, display=display, accepted=outcome.accepted, breakdown=breakdown)


def _cells(values: RepresentationValues, places: int) -> dict[Representation, str]:
    return {rep: format_number(values.get(rep), places) for rep in REPRESENTATIONS}


def render_display(
    breakdown: LedgerBreakdown,
    *,
    edited: FieldRef | None = None,
    verbatim: str | None = None,
) -> LedgerDisplay:
    places = breakdown.decimal_places
    rows = [
        DisplayRow(id=row.id, name=row.name, is_base=row.is_base, cells=_cells(row.prices, places))
        for row in breakdown.rows
    ]
    display = LedgerDisplay(
        exchange_rate=format_number(breakdown.exchange_rate, EXCHANGE_RATE_PLACES),
        gallons=format_number(breakdown.gallons, VOLUME_PLACES),
        liters=format_number(breakdown.liters, VOLUME_PLACES),
        decimal_places=places,
        rows=rows,
        totals=_cells(breakdown.totals, places),
        margin=_cells(breakdown.margin, places),
        sale_price=_cells(breakdown.sale_price, places),
    )
    if edited is None or verbatim is None:
        return display

    # The field being edited keeps the text as typed.
    if edited.kind is FieldKind.CONCEPT and edited.representation is not None:
        for display_row in display.rows:
            if display_row.id == edited.concept_id:
                display_row.cells[edited.representation] = verbatim
    elif edited.kind is FieldKind.MARGIN and edited.representation is not None:
        display.margin[edited.representation] = verbatim
    elif edited.kind is FieldKind.GALLONS:
        display.gallons = verbatim
    elif edited.kind is FieldKind.LITERS:
        display.liters = verbatim
    elif edited.kind is FieldKind.EXCHANGE_RATE:
        display.exchange_rate = verbatim
    return display


class LedgerController:
    """Owns the current ledger state for one calculator session."""

    def __init__(self, state: LedgerState | None = None) -> None:
        self._state = state or LedgerState.initial()
        self._display = render_display(ledger.compute_breakdown(self._state))

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def display(self) -> LedgerDisplay:
        return self._display

    def dispatch(self, command: LedgerCommand) -> Reconciliation:
        result = reconcile(self._state, command)
        if result.accepted:
            logger.debug("Applied %s", type(command).__name__)
        self._state = result.state
        self._display = result.display
        return result

    def breakdown(self) -> LedgerBreakdown:
        return ledger.compute_breakdown(self._state)


__all__ = [
    "AddConcept",
    "DropConceptOnto",
    "EditBasePrice",
    "EditConceptValue",
    "EditExchangeRate",
    "EditGallons",
    "EditLiters",
    "EditMargin",
    "FieldKind",
    "FieldRef",
    "LedgerCommand",
    "LedgerController",
    "LedgerDisplay",
    "LoadLedger",
    "MoveConceptDown",
    "MoveConceptToIndex",
    "MoveConceptUp",
    "Reconciliation",
    "RemoveConcept",
    "RenameConcept",
    "ToggleDecimalPlaces",
    "reconcile",
    "render_display",
]
