"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_common.enums import OperationType
from src.hb_ledger.domain.models import Account, AuditEntry, LedgerMutation


class LedgerRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, address: str) -> Account | None: ...

    async def find_applied_transaction(
        self, db: AsyncSession, transaction_hash: str, operation_type: OperationType
    ) -> AuditEntry | None: ...

    async def list_audit_entries(
        self,
        db: AsyncSession,
        address: str,
        cursor_id: int | None,
        limit: int,
        operation_type: str | None,
    ) -> list[AuditEntry]: ...

    async def list_audit_chain(
        self, db: AsyncSession, address: str | None = None
    ) -> list[AuditEntry]: ...

    async def list_accounts(self, db: AsyncSession) -> list[Account]: ...

    async def total_balance(self, db: AsyncSession) -> int: ...

    async def debit_for_bet(
        self, db: AsyncSession, address: str, amount: int, bet_id: str
    ) -> LedgerMutation: ...

    async def credit_for_payout(
        self, db: AsyncSession, address: str, amount: int, bet_id: str
    ) -> LedgerMutation: ...

    async def record_bet_loss(
        self, db: AsyncSession, address: str, bet_id: str
    ) -> LedgerMutation: ...

    async def credit_for_deposit(
        self, db: AsyncSession, address: str, amount: int, transaction_hash: str
    ) -> LedgerMutation: ...

    async def debit_for_withdrawal(
        self, db: AsyncSession, address: str, amount: int, transaction_hash: str
    ) -> LedgerMutation: ...
