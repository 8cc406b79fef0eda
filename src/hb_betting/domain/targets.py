"""Target cells a bet can be placed on.

Preset cells have fixed ids "1".."8". Dynamic grid targets are encoded as
"<DIRECTION>-<multiplier>", e.g. "UP-2.50", and always ask for a $10 move.
"""

from dataclasses import dataclass

from src.hb_common.amounts import UNITS_PER_WHOLE, to_bps
from src.hb_common.enums import BetDirection
from src.hb_common.errors import InvalidTargetError

DYNAMIC_PRICE_CHANGE_USD = 10


@dataclass(frozen=True)
class TargetCell:
    id: str
    label: str
    direction: BetDirection
    multiplier_bps: int
    price_change: int  # signed units


def _cell(cell_id: str, usd: int, multiplier_bps: int) -> TargetCell:
    direction = BetDirection.UP if usd > 0 else BetDirection.DOWN
    sign = "+" if usd > 0 else "-"
    return TargetCell(
        id=cell_id,
        label=f"{sign}${abs(usd)} in 30s",
        direction=direction,
        multiplier_bps=multiplier_bps,
        price_change=usd * UNITS_PER_WHOLE,
    )


DEFAULT_TARGET_CELLS: tuple[TargetCell, ...] = (
    _cell("1", 5, 15_000),
    _cell("2", 10, 20_000),
    _cell("3", 20, 30_000),
    _cell("4", 50, 50_000),
    _cell("5", 100, 100_000),
    _cell("6", -5, 15_000),
    _cell("7", -10, 20_000),
    _cell("8", -20, 30_000),
)

_PRESETS = {cell.id: cell for cell in DEFAULT_TARGET_CELLS}


def resolve_target(target_id: str) -> TargetCell:
    """Look up a preset cell or decode a dynamic "UP-2.50" / "DOWN-1.80" target."""
    preset = _PRESETS.get(target_id)
    if preset is not None:
        return preset

    direction_part, sep, multiplier_part = target_id.partition("-")
    if not sep or direction_part not in (BetDirection.UP.value, BetDirection.DOWN.value):
        raise InvalidTargetError(f"unknown target {target_id!r}")
    try:
        multiplier_bps = to_bps(multiplier_part)
    except ValueError:
        raise InvalidTargetError(f"bad multiplier in target {target_id!r}") from None

    direction = BetDirection(direction_part)
    usd = DYNAMIC_PRICE_CHANGE_USD if direction == BetDirection.UP else -DYNAMIC_PRICE_CHANGE_USD
    return TargetCell(
        id=target_id,
        label=f"{direction.value} x{multiplier_part}",
        direction=direction,
        multiplier_bps=multiplier_bps,
        price_change=usd * UNITS_PER_WHOLE,
    )
