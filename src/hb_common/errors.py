"""Unified error codes and custom exceptions.

Error code ranges:
  2xxx: Ledger / account
  3xxx: Bet
  4xxx: Chain / reconciliation
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 2xxx: Ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient funds: required {required} units, available {available} units",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2002, f"Account not found for address {address}", 404)


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2003, f"Amount must be positive, got {amount} units", 422)


class DuplicateTransactionError(AppError):
    """Benign: the chain movement was already applied. Callers map it to success."""

    def __init__(self, transaction_hash: str, operation_type: str) -> None:
        self.transaction_hash = transaction_hash
        self.operation_type = operation_type
        super().__init__(
            2004, f"Transaction {transaction_hash} already applied as {operation_type}", 409
        )


# --- 3xxx: Bet ---

class InvalidTargetError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3001, f"Invalid bet target: {detail}", 422)


class BetNotFoundError(AppError):
    def __init__(self, bet_id: str) -> None:
        super().__init__(3002, f"Bet not found: {bet_id}", 404)


class PriceUnavailableError(AppError):
    def __init__(self, asset: str, detail: str = "no price sample available") -> None:
        self.asset = asset
        super().__init__(3003, f"Price unavailable for {asset}: {detail}", 503)


# --- 4xxx: Chain / reconciliation ---

class MalformedChainEventError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Malformed chain event: {detail}", 422)


class ReconciliationDiscrepancyError(AppError):
    def __init__(self, discrepancy: int, ledger_total: int, expected: int) -> None:
        self.discrepancy = discrepancy
        super().__init__(
            4002,
            f"Ledger total {ledger_total} differs from treasury {expected} by {discrepancy} units",
            409,
        )


class ChainUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4003, f"Chain RPC unavailable: {detail}", 503)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StorageUnavailableError(AppError):
    def __init__(self, detail: str = "Storage unavailable") -> None:
        super().__init__(9003, f"Storage unavailable: {detail}", 503)


class AdminKeyRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(9004, "Admin API key required", 403)
