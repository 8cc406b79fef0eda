"""Ledger invariant checks — pure functions over accounts and audit rows."""

import logging
from collections import defaultdict

from src.hb_common.enums import OperationType
from src.hb_ledger.domain.models import Account, AuditEntry

logger = logging.getLogger(__name__)

_CREDITS = {OperationType.DEPOSIT.value, OperationType.BET_WON.value}
_DEBITS = {OperationType.WITHDRAWAL.value, OperationType.BET_PLACED.value}


def check_audit_chains(accounts: list[Account], entries: list[AuditEntry]) -> list[str]:
    """Returns one message per violation; empty means the ledger is consistent.

    `entries` must be ordered by (address, id). Per account:
      * balance never negative,
      * each entry's balance_after equals the next entry's balance_before,
      * each entry moves the balance by its amount in its operation's direction,
      * the last balance_after equals the account balance.
    """
    violations: list[str] = []
    by_address: dict[str, list[AuditEntry]] = defaultdict(list)
    for entry in entries:
        by_address[entry.address].append(entry)

    for account in accounts:
        if account.balance < 0:
            violations.append(f"{account.address}: negative balance {account.balance}")

        chain = by_address.pop(account.address, [])
        for prev, cur in zip(chain, chain[1:]):
            if prev.balance_after != cur.balance_before:
                violations.append(
                    f"{account.address}: entry {cur.id} starts at {cur.balance_before} "
                    f"but entry {prev.id} ended at {prev.balance_after}"
                )
        for entry in chain:
            expected = _expected_delta(entry)
            if expected is not None and entry.signed_amount != expected:
                violations.append(
                    f"{account.address}: entry {entry.id} ({entry.operation_type}) moved "
                    f"{entry.signed_amount}, expected {expected}"
                )
        if chain and chain[-1].balance_after != account.balance:
            violations.append(
                f"{account.address}: last audit balance {chain[-1].balance_after} "
                f"!= account balance {account.balance}"
            )
        if not chain and account.balance != 0:
            violations.append(f"{account.address}: balance {account.balance} with no audit trail")

    for address in by_address:
        violations.append(f"{address}: audit entries without an account")

    for msg in violations:
        logger.error("Ledger invariant violated: %s", msg)
    return violations


def _expected_delta(entry: AuditEntry) -> int | None:
    if entry.operation_type in _CREDITS:
        return entry.amount
    if entry.operation_type in _DEBITS:
        return -entry.amount
    if entry.operation_type == OperationType.BET_LOST.value:
        return 0
    return None
