from __future__ import annotations

from enum import StrEnum
from typing import NewType
from uuid import UUID

ConceptId = NewType("ConceptId", UUID)
ProductId = NewType("ProductId", UUID)
PresetId = NewType("PresetId", UUID)
UserId = NewType("UserId", str)


class Representation(StrEnum):
    """The four units a price can be displayed and edited in.

    Values are the tags stored in saved presets.
    """

    MXN_PER_LITER = "mxnLtr"
    MXN_TOTAL = "mxn"
    USD_TOTAL = "usd"
    USD_PER_GALLON = "usdGal"


REPRESENTATIONS: tuple[Representation, ...] = (
    Representation.MXN_PER_LITER,
    Representation.MXN_TOTAL,
    Representation.USD_TOTAL,
    Representation.USD_PER_GALLON,
)
