"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class OperationType(str, Enum):
    """audit_entries.operation_type"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    BET_PLACED = "bet_placed"
    BET_WON = "bet_won"
    BET_LOST = "bet_lost"


class BetDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


class BetStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"


class Asset(str, Enum):
    BTC = "BTC"
    SUI = "SUI"
    SOL = "SOL"


class ChainEventType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class ApplyOutcome(str, Enum):
    """Result of handing one chain event to the ledger."""
    APPLIED = "APPLIED"
    DUPLICATE = "DUPLICATE"
    DROPPED = "DROPPED"    # malformed, never retried
    REJECTED = "REJECTED"  # well-formed but refused by the ledger (overdraft)
