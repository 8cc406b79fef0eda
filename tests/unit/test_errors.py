"""Tests for hb_common.errors and hb_common.response."""

from unittest.mock import MagicMock

from src.hb_common.errors import (
    AccountNotFoundError,
    AdminKeyRequiredError,
    AppError,
    DuplicateTransactionError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidTargetError,
    MalformedChainEventError,
    PriceUnavailableError,
    ReconciliationDiscrepancyError,
    StorageUnavailableError,
)
from src.hb_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestSpecificErrors:
    def test_insufficient_funds(self) -> None:
        err = InsufficientFundsError(required=6500, available=3000)
        assert err.code == 2001
        assert err.http_status == 422
        assert err.required == 6500
        assert err.available == 3000
        assert "6500" in err.message

    def test_account_not_found(self) -> None:
        err = AccountNotFoundError("0xa1")
        assert (err.code, err.http_status) == (2002, 404)
        assert "0xa1" in err.message

    def test_invalid_amount(self) -> None:
        err = InvalidAmountError(-5)
        assert err.code == 2003
        assert "-5" in err.message

    def test_duplicate_transaction_carries_hash(self) -> None:
        err = DuplicateTransactionError("0xA", "deposit")
        assert err.code == 2004
        assert err.http_status == 409
        assert err.transaction_hash == "0xA"
        assert err.operation_type == "deposit"

    def test_invalid_target(self) -> None:
        err = InvalidTargetError("bad")
        assert (err.code, err.http_status) == (3001, 422)

    def test_price_unavailable(self) -> None:
        err = PriceUnavailableError("BTC")
        assert (err.code, err.http_status) == (3003, 503)
        assert err.asset == "BTC"

    def test_malformed_chain_event(self) -> None:
        assert MalformedChainEventError("x").code == 4001

    def test_discrepancy(self) -> None:
        err = ReconciliationDiscrepancyError(5, 1000, 995)
        assert err.code == 4002
        assert err.discrepancy == 5
        assert "995" in err.message

    def test_storage_unavailable(self) -> None:
        err = StorageUnavailableError("connection reset")
        assert (err.code, err.http_status) == (9003, 503)

    def test_admin_key_required(self) -> None:
        assert AdminKeyRequiredError().http_status == 403


class TestApiResponse:
    def test_success_response_defaults(self) -> None:
        resp = success_response({"balance": "1.00000000"})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"balance": "1.00000000"}
        assert resp.request_id.startswith("req_")

    def test_success_response_reuses_request_id(self) -> None:
        request = MagicMock()
        request.state.request_id = "req_abc123"
        resp = success_response(None, request)
        assert resp.request_id == "req_abc123"

    def test_error_response(self) -> None:
        resp = error_response(2001, "Insufficient funds")
        assert resp.code == 2001
        assert resp.data is None
