"""Domain models and pure calculations for the fuel pricing calculators.

This package holds the conversion kernel, the concept ledger with its
reconciliation commands, reordering helpers and the blend calculator. Models
are Pydantic and independent from persistence so pricing logic can be tested
without a database or HTTP layer.
"""

__all__ = [
    "base_types",
    "blend",
    "conversion",
    "ledger",
    "presets",
    "reconciliation",
    "reorder",
]
