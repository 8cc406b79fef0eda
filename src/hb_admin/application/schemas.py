"""Pydantic schemas for hb_admin API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.hb_betting.application.schemas import BetSummary
from src.hb_common.amounts import from_units


class ReconcileRequest(BaseModel):
    expected_treasury_balance: Decimal = Field(..., ge=0, decimal_places=8)


class ReconciliationReport(BaseModel):
    """discrepancy = ledger_total - expected. Positive: ledger owes more than the treasury holds."""

    ledger_total: Decimal
    ledger_total_units: int
    expected: Decimal
    expected_units: int
    discrepancy: Decimal
    discrepancy_units: int
    ok: bool

    @classmethod
    def from_units(cls, ledger_total: int, expected: int) -> "ReconciliationReport":
        discrepancy = ledger_total - expected
        return cls(
            ledger_total=from_units(ledger_total),
            ledger_total_units=ledger_total,
            expected=from_units(expected),
            expected_units=expected,
            discrepancy=from_units(discrepancy),
            discrepancy_units=discrepancy,
            ok=discrepancy == 0,
        )


class InvariantReport(BaseModel):
    ok: bool
    accounts_checked: int
    violations: list[str]


class OverdueBetsResponse(BaseModel):
    items: list[BetSummary]
