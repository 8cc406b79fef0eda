"""Fixed-point arithmetic for house-balance amounts and asset prices.

All balances, stakes, payouts and prices are int "units" with 8 decimal
places (1 unit = 0.00000001). Multipliers are int basis points (2.0x = 20000).
No float anywhere on the money path.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

UNIT_DECIMALS = 8
UNITS_PER_WHOLE = 10**UNIT_DECIMALS
BPS_PER_WHOLE = 10_000

_UNIT_QUANTUM = Decimal(1).scaleb(-UNIT_DECIMALS)
_BPS_QUANTUM = Decimal("0.0001")


def to_units(value: Decimal | int | str) -> int:
    """Convert a decimal amount to units: Decimal('1.5') -> 150000000.

    Raises ValueError if the value has more than 8 decimal places.
    """
    try:
        dec = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {value!r}") from None
    if not dec.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    scaled = dec * UNITS_PER_WHOLE
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount has more than {UNIT_DECIMALS} decimal places: {value}")
    return int(scaled)


def from_units(units: int) -> Decimal:
    """Convert units back to a Decimal with exactly 8 decimal places."""
    return (Decimal(units) / UNITS_PER_WHOLE).quantize(_UNIT_QUANTUM)


def units_to_display(units: int) -> str:
    """150000000 -> '1.50000000', -1200000000 -> '-12.00000000'."""
    return f"{from_units(units):,}"


def to_bps(multiplier: Decimal | int | str) -> int:
    """Convert a multiplier to basis points: Decimal('2.5') -> 25000."""
    try:
        dec = Decimal(multiplier)
    except InvalidOperation:
        raise ValueError(f"Not a decimal multiplier: {multiplier!r}") from None
    if not dec.is_finite() or dec.quantize(_BPS_QUANTUM, rounding=ROUND_DOWN) != dec:
        raise ValueError(f"Multiplier must have at most 4 decimal places: {multiplier}")
    return int(dec * BPS_PER_WHOLE)


def bps_to_multiplier(bps: int) -> Decimal:
    return (Decimal(bps) / BPS_PER_WHOLE).quantize(_BPS_QUANTUM)


def apply_multiplier(amount: int, multiplier_bps: int) -> int:
    """amount * multiplier, floored to whole units (house never overpays)."""
    return amount * multiplier_bps // BPS_PER_WHOLE


def rescale(value: int, from_decimals: int, to_decimals: int = UNIT_DECIMALS) -> int:
    """Rescale an integer between decimal precisions, flooring on precision loss.

    Used for on-chain coin amounts (USDC: 6 decimals) and oracle prices
    (Pyth: exponent-scaled integers).
    """
    shift = to_decimals - from_decimals
    if shift >= 0:
        return value * 10**shift
    return value // 10 ** (-shift)
