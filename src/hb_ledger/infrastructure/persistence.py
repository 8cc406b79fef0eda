"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

Every balance mutation is one conditional UPDATE ... RETURNING (the row lock
serializes same-address writers across processes) followed by exactly one
audit_entries insert. A result of 0 rows from a debit means the business
constraint (balance >= amount) was violated.

Transaction ownership: the CALLER opens and commits the transaction
(see hb_common.database.unit_of_work). Nothing here commits.
"""

from typing import Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_common.enums import OperationType
from src.hb_common.errors import (
    DuplicateTransactionError,
    InsufficientFundsError,
    InternalError,
    InvalidAmountError,
)
from src.hb_ledger.domain.models import Account, AuditEntry, LedgerMutation
from src.hb_ledger.infrastructure.db_models import accounts_table, audit_entries_table

_acc = accounts_table.c
_aud = audit_entries_table.c

_ACCOUNT_COLUMNS = (_acc.address, _acc.balance, _acc.version, _acc.created_at, _acc.updated_at)
_AUDIT_COLUMNS = (
    _aud.id,
    _aud.address,
    _aud.operation_type,
    _aud.amount,
    _aud.balance_before,
    _aud.balance_after,
    _aud.transaction_hash,
    _aud.bet_id,
    _aud.created_at,
)


def _row_to_account(row: Any) -> Account:
    return Account(
        address=row.address,
        balance=row.balance,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_audit(row: Any) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        address=row.address,
        operation_type=row.operation_type,
        amount=row.amount,
        balance_before=row.balance_before,
        balance_after=row.balance_after,
        transaction_hash=row.transaction_hash,
        bet_id=row.bet_id,
        created_at=row.created_at,
    )


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmountError(amount)


class LedgerRepository:
    """Concrete repository — all mutations atomic at the SQL level."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_account(self, db: AsyncSession, address: str) -> Account | None:
        result = await db.execute(select(*_ACCOUNT_COLUMNS).where(_acc.address == address))
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def find_applied_transaction(
        self, db: AsyncSession, transaction_hash: str, operation_type: OperationType
    ) -> AuditEntry | None:
        result = await db.execute(
            select(*_AUDIT_COLUMNS).where(
                _aud.transaction_hash == transaction_hash,
                _aud.operation_type == operation_type.value,
            )
        )
        row = result.fetchone()
        return _row_to_audit(row) if row else None

    async def list_audit_entries(
        self,
        db: AsyncSession,
        address: str,
        cursor_id: int | None,
        limit: int,
        operation_type: str | None,
    ) -> list[AuditEntry]:
        """Newest first, keyset-paginated on id."""
        stmt = select(*_AUDIT_COLUMNS).where(_aud.address == address)
        if cursor_id is not None:
            stmt = stmt.where(_aud.id < cursor_id)
        if operation_type is not None:
            stmt = stmt.where(_aud.operation_type == operation_type)
        stmt = stmt.order_by(_aud.id.desc()).limit(limit)
        rows = (await db.execute(stmt)).fetchall()
        return [_row_to_audit(row) for row in rows]

    async def list_audit_chain(
        self, db: AsyncSession, address: str | None = None
    ) -> list[AuditEntry]:
        """Oldest first, grouped by address — the order the chain invariant is defined on."""
        stmt = select(*_AUDIT_COLUMNS)
        if address is not None:
            stmt = stmt.where(_aud.address == address)
        stmt = stmt.order_by(_aud.address, _aud.id)
        rows = (await db.execute(stmt)).fetchall()
        return [_row_to_audit(row) for row in rows]

    async def list_accounts(self, db: AsyncSession) -> list[Account]:
        rows = (await db.execute(select(*_ACCOUNT_COLUMNS).order_by(_acc.address))).fetchall()
        return [_row_to_account(row) for row in rows]

    async def total_balance(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.coalesce(func.sum(_acc.balance), 0)))
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # The four ledger operations (+ the zero-amount loss record)
    # ------------------------------------------------------------------

    async def debit_for_bet(
        self, db: AsyncSession, address: str, amount: int, bet_id: str
    ) -> LedgerMutation:
        _require_positive(amount)
        account = await self._debit(db, address, amount)
        entry = await self._insert_audit(
            db, account, OperationType.BET_PLACED, amount, -amount, bet_id=bet_id
        )
        return LedgerMutation(account=account, entry=entry)

    async def credit_for_payout(
        self, db: AsyncSession, address: str, amount: int, bet_id: str
    ) -> LedgerMutation:
        _require_positive(amount)
        account = await self._credit(db, address, amount)
        entry = await self._insert_audit(
            db, account, OperationType.BET_WON, amount, amount, bet_id=bet_id
        )
        return LedgerMutation(account=account, entry=entry)

    async def record_bet_loss(
        self, db: AsyncSession, address: str, bet_id: str
    ) -> LedgerMutation:
        # Touch the row so the audit insert is ordered under the same row lock.
        account = await self._credit(db, address, 0)
        entry = await self._insert_audit(
            db, account, OperationType.BET_LOST, 0, 0, bet_id=bet_id
        )
        return LedgerMutation(account=account, entry=entry)

    async def credit_for_deposit(
        self, db: AsyncSession, address: str, amount: int, transaction_hash: str
    ) -> LedgerMutation:
        _require_positive(amount)
        await self._reject_if_applied(db, transaction_hash, OperationType.DEPOSIT)
        account = await self._credit(db, address, amount)
        entry = await self._insert_audit(
            db,
            account,
            OperationType.DEPOSIT,
            amount,
            amount,
            transaction_hash=transaction_hash,
        )
        return LedgerMutation(account=account, entry=entry)

    async def debit_for_withdrawal(
        self, db: AsyncSession, address: str, amount: int, transaction_hash: str
    ) -> LedgerMutation:
        _require_positive(amount)
        # Checked before the debit: a replay must read as duplicate, not overdraft.
        await self._reject_if_applied(db, transaction_hash, OperationType.WITHDRAWAL)
        account = await self._debit(db, address, amount)
        entry = await self._insert_audit(
            db,
            account,
            OperationType.WITHDRAWAL,
            amount,
            -amount,
            transaction_hash=transaction_hash,
        )
        return LedgerMutation(account=account, entry=entry)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _reject_if_applied(
        self, db: AsyncSession, transaction_hash: str, operation_type: OperationType
    ) -> None:
        if await self.find_applied_transaction(db, transaction_hash, operation_type):
            raise DuplicateTransactionError(transaction_hash, operation_type.value)

    async def _debit(self, db: AsyncSession, address: str, amount: int) -> Account:
        stmt = (
            update(accounts_table)
            .where(_acc.address == address, _acc.balance >= amount)
            .values(
                balance=_acc.balance - amount,
                version=_acc.version + 1,
                updated_at=func.now(),
            )
            .returning(*_ACCOUNT_COLUMNS)
        )
        row = (await db.execute(stmt)).fetchone()
        if row is None:
            current = await self.get_account(db, address)
            raise InsufficientFundsError(amount, current.balance if current else 0)
        return _row_to_account(row)

    async def _credit(self, db: AsyncSession, address: str, amount: int) -> Account:
        stmt = (
            update(accounts_table)
            .where(_acc.address == address)
            .values(
                balance=_acc.balance + amount,
                version=_acc.version + 1,
                updated_at=func.now(),
            )
            .returning(*_ACCOUNT_COLUMNS)
        )
        row = (await db.execute(stmt)).fetchone()
        if row is None:
            await self._create_account_if_absent(db, address)
            row = (await db.execute(stmt)).fetchone()
            if row is None:
                raise InternalError(f"Account row for {address} vanished after insert")
        return _row_to_account(row)

    async def _create_account_if_absent(self, db: AsyncSession, address: str) -> None:
        values = {"address": address, "balance": 0, "version": 0}
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt: Any = (
                postgresql.insert(accounts_table)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["address"])
            )
        elif dialect == "sqlite":
            stmt = (
                sqlite.insert(accounts_table)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["address"])
            )
        else:
            stmt = insert(accounts_table).values(**values)
        await db.execute(stmt)

    async def _insert_audit(
        self,
        db: AsyncSession,
        account: Account,
        operation_type: OperationType,
        amount: int,
        delta: int,
        transaction_hash: str | None = None,
        bet_id: str | None = None,
    ) -> AuditEntry:
        """Append the audit row for a mutation whose post-state is `account`."""
        stmt = (
            insert(audit_entries_table)
            .values(
                address=account.address,
                operation_type=operation_type.value,
                amount=amount,
                balance_before=account.balance - delta,
                balance_after=account.balance,
                transaction_hash=transaction_hash,
                bet_id=bet_id,
            )
            .returning(*_AUDIT_COLUMNS)
        )
        try:
            row = (await db.execute(stmt)).fetchone()
        except IntegrityError as exc:
            if transaction_hash is not None:
                # Lost a race with a concurrent applier of the same hash.
                raise DuplicateTransactionError(transaction_hash, operation_type.value) from exc
            raise
        if row is None:
            raise InternalError("Audit insert returned no rows — this should never happen")
        return _row_to_audit(row)
