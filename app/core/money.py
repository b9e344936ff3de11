from decimal import ROUND_HALF_UP, Decimal


def D(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_money(x) -> float:
    """Two decimal places, half-up (0.125 -> 0.13), returned as float for JSON."""
    return float(D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_amount(x) -> str:
    """Thousands separators, no trailing zeros: 1000 -> '1,000', 1500.5 -> '1,500.5'."""
    value = round_money(x)
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")
