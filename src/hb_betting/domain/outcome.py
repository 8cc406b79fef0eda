"""Bet validation and the outcome rule — pure functions, no I/O."""

from src.hb_betting.domain.models import Bet, Resolution
from src.hb_common.amounts import BPS_PER_WHOLE, apply_multiplier
from src.hb_common.enums import BetDirection
from src.hb_common.errors import InvalidAmountError, InvalidTargetError


def validate_bet(
    amount: int, direction: str, multiplier_bps: int, price_change_target: int
) -> None:
    """Admission rules. Raises InvalidAmountError / InvalidTargetError."""
    if amount <= 0:
        raise InvalidAmountError(amount)
    if multiplier_bps <= BPS_PER_WHOLE:
        raise InvalidTargetError(f"multiplier must exceed 1.0, got {multiplier_bps} bps")
    if direction == BetDirection.UP:
        if price_change_target <= 0:
            raise InvalidTargetError("UP bets need a positive price change target")
    elif direction == BetDirection.DOWN:
        if price_change_target >= 0:
            raise InvalidTargetError("DOWN bets need a negative price change target")
    else:
        raise InvalidTargetError(f"unknown direction {direction!r}")


def resolve(bet: Bet, end_price: int) -> Resolution:
    """UP wins iff delta >= target; DOWN wins iff delta <= target (target < 0)."""
    delta = end_price - bet.reference_price
    if bet.direction == BetDirection.UP:
        won = delta >= bet.price_change_target
    else:
        won = delta <= bet.price_change_target
    payout = apply_multiplier(bet.amount, bet.multiplier_bps) if won else 0
    return Resolution(won=won, payout=payout, end_price=end_price, delta=delta)
