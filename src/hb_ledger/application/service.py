"""LedgerApplicationService — command surface for balances and chain movements.

Mutations run inside unit_of_work() while holding the address lock, so a
command either commits balance + audit row together or leaves no trace.
Reads (get_balance, list_audit) run without an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_common.database import unit_of_work
from src.hb_common.enums import OperationType
from src.hb_common.errors import DuplicateTransactionError
from src.hb_common.locks import AddressLocks
from src.hb_ledger.application.schemas import (
    AuditEntryItem,
    AuditResponse,
    BalanceResponse,
    MovementResponse,
    cursor_decode,
    cursor_encode,
)
from src.hb_ledger.domain.models import LedgerMutation
from src.hb_ledger.domain.repository import LedgerRepositoryProtocol
from src.hb_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerApplicationService:
    def __init__(
        self,
        locks: AddressLocks,
        repo: LedgerRepositoryProtocol | None = None,
    ) -> None:
        self._locks = locks
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def get_balance(self, db: AsyncSession, address: str) -> BalanceResponse:
        account = await self._repo.get_account(db, address)
        # No account yet is a zero balance, not an error.
        return BalanceResponse.from_units(address, account.balance if account else 0)

    async def record_deposit(
        self, db: AsyncSession, address: str, amount: int, transaction_hash: str
    ) -> MovementResponse:
        try:
            async with self._locks.hold(address):
                async with unit_of_work(db):
                    mutation = await self._repo.credit_for_deposit(
                        db, address, amount, transaction_hash
                    )
        except DuplicateTransactionError:
            return await self._duplicate_response(
                db, address, amount, transaction_hash, OperationType.DEPOSIT
            )
        logger.info(
            "Deposit %s: %s +%d units -> %d", transaction_hash, address, amount,
            mutation.new_balance,
        )
        return _movement_response(mutation, amount, transaction_hash)

    async def record_withdrawal(
        self, db: AsyncSession, address: str, amount: int, transaction_hash: str
    ) -> MovementResponse:
        try:
            async with self._locks.hold(address):
                async with unit_of_work(db):
                    mutation = await self._repo.debit_for_withdrawal(
                        db, address, amount, transaction_hash
                    )
        except DuplicateTransactionError:
            return await self._duplicate_response(
                db, address, amount, transaction_hash, OperationType.WITHDRAWAL
            )
        logger.info(
            "Withdrawal %s: %s -%d units -> %d", transaction_hash, address, amount,
            mutation.new_balance,
        )
        return _movement_response(mutation, amount, transaction_hash)

    async def list_audit(
        self,
        db: AsyncSession,
        address: str,
        cursor: str | None,
        limit: int,
        operation_type: str | None,
    ) -> AuditResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_audit_entries(
            db, address, cursor_id, limit + 1, operation_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return AuditResponse(
            items=[AuditEntryItem.from_entry(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def _duplicate_response(
        self,
        db: AsyncSession,
        address: str,
        amount: int,
        transaction_hash: str,
        operation_type: OperationType,
    ) -> MovementResponse:
        logger.info("Ignoring replayed %s %s", operation_type.value, transaction_hash)
        original = await self._repo.find_applied_transaction(db, transaction_hash, operation_type)
        account = await self._repo.get_account(db, address)
        balance = account.balance if account else 0
        return MovementResponse(
            address=address,
            balance=BalanceResponse.from_units(address, balance).balance,
            balance_units=balance,
            amount_units=amount,
            transaction_hash=transaction_hash,
            audit_entry_id=original.id if original else None,
            duplicate=True,
        )


def _movement_response(
    mutation: LedgerMutation, amount: int, transaction_hash: str
) -> MovementResponse:
    balance = BalanceResponse.from_units(mutation.account.address, mutation.new_balance)
    return MovementResponse(
        address=balance.address,
        balance=balance.balance,
        balance_units=balance.balance_units,
        amount_units=amount,
        transaction_hash=transaction_hash,
        audit_entry_id=mutation.entry.id,
    )
