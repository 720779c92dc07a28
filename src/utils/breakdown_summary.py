from __future__ import annotations

from domain.base_types import REPRESENTATIONS, Representation
from domain.blend import BlendState, BlendSummary
from domain.ledger import LedgerBreakdown, RepresentationValues
from services.market_data_service import MarketDataSnapshot

from .formatting import format_number, format_percent

COLUMN_LABELS: dict[Representation, str] = {
    Representation.MXN_PER_LITER: "MXN/Ltr",
    Representation.MXN_TOTAL: "MXN",
    Representation.USD_TOTAL: "USD",
    Representation.USD_PER_GALLON: "USD/Gal",
}


def share_text(breakdown: LedgerBreakdown) -> str:
    return (
        f"Exchange Rate: {format_number(breakdown.exchange_rate, 4)}\n"
        f"Total Cost: {format_number(breakdown.totals.mxn_total, breakdown.decimal_places)} MXN"
    )


def render_ledger_breakdown(breakdown: LedgerBreakdown) -> str:
    places = breakdown.decimal_places

    def cells(values: RepresentationValues) -> list[str]:
        return [format_number(values.get(rep), places) for rep in REPRESENTATIONS]

    rows: list[tuple[str, list[str]]] = [(row.name, cells(row.prices)) for row in breakdown.rows]
    footer: list[tuple[str, list[str]]] = [
        ("Total", cells(breakdown.totals)),
        ("Margin", cells(breakdown.margin)),
        ("Sale Price", cells(breakdown.sale_price)),
    ]

    labels = [COLUMN_LABELS[rep] for rep in REPRESENTATIONS]
    name_width = max(len("Concept"), max(len(name) for name, _ in rows + footer))
    widths = [
        max(len(label), max(len(values[i]) for _, values in rows + footer)) for i, label in enumerate(labels)
    ]

    def line(name: str, values: list[str]) -> str:
        numbers = " ".join(f"{value:>{width}}" for value, width in zip(values, widths))
        return f"{name:<{name_width}} {numbers}"

    header = line("Concept", labels)
    lines = [
        f"Exchange rate: {format_number(breakdown.exchange_rate, 4)} MXN/USD",
        f"Volume: {format_number(breakdown.gallons, 2)} gal / {format_number(breakdown.liters, 2)} L",
        header,
        "-" * len(header),
    ]
    lines.extend(line(name, values) for name, values in rows)
    lines.append("-" * len(header))
    lines.extend(line(name, values) for name, values in footer)
    return "\n".join(lines)


def render_blend_summary(state: BlendState, summary: BlendSummary) -> str:
    lines = ["Blend:"]
    for index, product in enumerate(state.products, start=1):
        name = product.name or f"Product {index}"
        lines.append(f"  {name}: {format_number(product.price, 4)} x {format_number(product.percentage, 2)}%")
    lines.append(f"  Total percentage: {format_number(summary.total_percentage, 2)}%")
    if summary.warning:
        lines.append(f"  Blended price: invalid ({summary.warning})")
    else:
        lines.append(f"  Blended price: {format_number(summary.blended_price, 4)}")
    return "\n".join(lines)


def render_market_data(snapshot: MarketDataSnapshot) -> str:
    if snapshot.prices is None:
        return f"Market data unavailable: {snapshot.error or 'not loaded'}"

    lines = ["Reference prices:"]
    titles = (
        ("RBOB Gasoline", snapshot.prices.gasoline),
        ("Heating Oil", snapshot.prices.heating_oil),
        ("USD/MXN", snapshot.prices.usd_mxn),
    )
    for title, price in titles:
        text = f"  {title:<14} {format_number(price.price, 4)} {format_percent(price.change_percent)}"
        stats = price.stats()
        if stats is not None:
            text += (
                f" (30d high {format_number(stats.high, 4)},"
                f" low {format_number(stats.low, 4)}, avg {format_number(stats.average, 4)})"
            )
        lines.append(text)
    if snapshot.error:
        lines.append(f"  Last refresh failed: {snapshot.error}")
    return "\n".join(lines)
