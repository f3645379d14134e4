"""Integer arithmetic utilities for cents-based auction prices.

All prices, increments and bid amounts use int (cents). No float, no Decimal.
"""


def validate_positive_cents(value: int, field: str) -> None:
    """Raise ValueError unless value is a strictly positive cents amount."""
    if value <= 0:
        raise ValueError(f"{field} must be greater than 0 cents, got {value}")


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"
