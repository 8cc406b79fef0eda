"""HTTP surface: envelope, status codes, admin guard and the full bet round trip."""

from collections.abc import Callable
from typing import Any

from httpx import AsyncClient

from src.container import ServiceContainer

U = 10**8
T0_MS = 1_760_000_000_000
ROUND_MS = 30_000
ADMIN = {"X-Admin-Key": "test-admin-key"}


async def _deposit(client: AsyncClient, address: str, amount: str, tx: str) -> Any:
    return await client.post(
        "/api/v1/balance/deposit",
        json={"address": address, "amount": amount, "transaction_hash": tx},
    )


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_request_id_echoed(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/balance/0xa1", headers={"X-Request-ID": "req_trace1"})
        assert resp.headers["X-Request-ID"] == "req_trace1"
        assert resp.json()["request_id"] == "req_trace1"


class TestBalanceApi:
    async def test_unknown_address_has_zero_balance(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/balance/0xa1")
        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["balance"] == "0.00000000"
        assert body["data"]["balance_units"] == 0

    async def test_deposit_then_duplicate(self, client: AsyncClient) -> None:
        first = await _deposit(client, "0xa1", "100", "0xA")
        replay = await _deposit(client, "0xa1", "100", "0xA")

        assert first.status_code == 200
        assert first.json()["data"]["duplicate"] is False
        assert replay.status_code == 200
        assert replay.json()["data"]["duplicate"] is True
        assert replay.json()["data"]["balance_units"] == 100 * U

    async def test_withdraw_overdraft(self, client: AsyncClient) -> None:
        await _deposit(client, "0xa1", "10", "0xA")

        resp = await client.post(
            "/api/v1/balance/withdraw",
            json={"address": "0xa1", "amount": "11", "transaction_hash": "0xB"},
        )

        assert resp.status_code == 422
        assert resp.json()["code"] == 2001
        assert resp.json()["data"] is None

    async def test_rejects_non_positive_amount(self, client: AsyncClient) -> None:
        resp = await _deposit(client, "0xa1", "0", "0xA")
        assert resp.status_code == 422

    async def test_rejects_sub_unit_precision(self, client: AsyncClient) -> None:
        resp = await _deposit(client, "0xa1", "0.000000001", "0xA")
        assert resp.status_code == 422

    async def test_audit_trail(self, client: AsyncClient) -> None:
        await _deposit(client, "0xa1", "10", "0xA")
        await client.post(
            "/api/v1/balance/withdraw",
            json={"address": "0xa1", "amount": "4", "transaction_hash": "0xB"},
        )

        resp = await client.get("/api/v1/balance/0xa1/audit", params={"limit": 1})

        data = resp.json()["data"]
        assert [i["operation_type"] for i in data["items"]] == ["withdrawal"]
        assert data["has_more"] is True
        assert data["next_cursor"] is not None


class TestBetsApi:
    async def test_targets(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/bets/targets")
        items = resp.json()["data"]["items"]
        assert [i["id"] for i in items] == [str(n) for n in range(1, 9)]
        assert items[0]["direction"] == "UP"

    async def test_unknown_bet(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/bets/999")
        assert resp.status_code == 404
        assert resp.json()["code"] == 3002

    async def test_place_bet_without_price(self, client: AsyncClient) -> None:
        await _deposit(client, "0xa1", "100", "0xA")

        resp = await client.post(
            "/api/v1/bets", json={"address": "0xa1", "amount": "10", "target_id": "1"}
        )

        assert resp.status_code == 503
        assert resp.json()["code"] == 3003

    async def test_place_bet_insufficient_funds(
        self, client: AsyncClient, record_price: Callable[..., Any]
    ) -> None:
        record_price(50_000, T0_MS)

        resp = await client.post(
            "/api/v1/bets", json={"address": "0xa1", "amount": "10", "target_id": "1"}
        )

        assert resp.status_code == 422
        assert resp.json()["code"] == 2001

    async def test_place_bet_needs_target(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/bets", json={"address": "0xa1", "amount": "10"})
        assert resp.status_code == 422

    async def test_unknown_target(
        self, client: AsyncClient, record_price: Callable[..., Any]
    ) -> None:
        record_price(50_000, T0_MS)
        await _deposit(client, "0xa1", "100", "0xA")

        resp = await client.post(
            "/api/v1/bets", json={"address": "0xa1", "amount": "10", "target_id": "SIDEWAYS"}
        )

        assert resp.status_code == 422
        assert resp.json()["code"] == 3001

    async def test_history_filtered_by_status(
        self, client: AsyncClient, record_price: Callable[..., Any]
    ) -> None:
        record_price(50_000, T0_MS)
        await _deposit(client, "0xa1", "100", "0xA")
        for _ in range(3):
            await client.post(
                "/api/v1/bets", json={"address": "0xa1", "amount": "1", "target_id": "2"}
            )

        page = await client.get("/api/v1/bets", params={"address": "0xa1", "limit": 2})
        won = await client.get("/api/v1/bets", params={"address": "0xa1", "status": "WON"})

        assert len(page.json()["data"]["items"]) == 2
        assert page.json()["data"]["has_more"] is True
        assert won.json()["data"]["items"] == []


class TestEndToEnd:
    async def test_deposit_bet_win_withdraw(
        self,
        client: AsyncClient,
        container: ServiceContainer,
        record_price: Callable[..., Any],
        clock: Any,
    ) -> None:
        record_price(50_000, T0_MS)
        await _deposit(client, "0xa1", "100", "0xA")

        placed = await client.post(
            "/api/v1/bets",
            json={
                "address": "0xa1",
                "amount": "10",
                "direction": "UP",
                "multiplier": "2.0",
                "price_change_target": "5",
            },
        )
        assert placed.status_code == 201
        bet = placed.json()["data"]
        assert bet["balance_units"] == 90 * U
        assert bet["bet"]["status"] == "PENDING"
        assert bet["bet"]["reference_price_units"] == 50_000 * U

        record_price(50_006, T0_MS + ROUND_MS)
        clock.advance(ROUND_MS + 1_000)
        report = await container.settlement.scan_once()
        assert report.settled == 1

        settled = (await client.get(f"/api/v1/bets/{bet['bet_id']}")).json()["data"]
        assert settled["status"] == "WON"
        assert settled["payout_units"] == 20 * U
        balance = (await client.get("/api/v1/balance/0xa1")).json()["data"]
        assert balance["balance_units"] == 110 * U

        audit = (await client.get("/api/v1/balance/0xa1/audit")).json()["data"]["items"]
        assert [i["operation_type"] for i in reversed(audit)] == [
            "deposit", "bet_placed", "bet_won",
        ]

        withdrawn = await client.post(
            "/api/v1/balance/withdraw",
            json={"address": "0xa1", "amount": "50", "transaction_hash": "0xB"},
        )
        assert withdrawn.json()["data"]["balance_units"] == 60 * U


class TestAdminApi:
    async def test_requires_key(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/admin/invariants")
        assert resp.status_code == 403
        assert resp.json()["code"] == 9004

    async def test_wrong_key(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/admin/invariants", headers={"X-Admin-Key": "nope"})
        assert resp.status_code == 403

    async def test_reconcile(self, client: AsyncClient) -> None:
        await _deposit(client, "0xa1", "1000", "0xA")

        ok = await client.post(
            "/api/v1/admin/reconcile", json={"expected_treasury_balance": "1000"}, headers=ADMIN
        )
        off = await client.post(
            "/api/v1/admin/reconcile", json={"expected_treasury_balance": "995"}, headers=ADMIN
        )

        assert ok.json()["data"]["ok"] is True
        assert off.json()["data"]["discrepancy"] == "5.00000000"
        balance = (await client.get("/api/v1/balance/0xa1")).json()["data"]
        assert balance["balance_units"] == 1000 * U

    async def test_reconcile_strict(self, client: AsyncClient) -> None:
        await _deposit(client, "0xa1", "1000", "0xA")

        resp = await client.post(
            "/api/v1/admin/reconcile",
            params={"strict": "true"},
            json={"expected_treasury_balance": "995"},
            headers=ADMIN,
        )

        assert resp.status_code == 409
        assert resp.json()["code"] == 4002

    async def test_reconcile_with_chain_unconfigured(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/admin/reconcile/chain", headers=ADMIN)
        assert resp.status_code == 503
        assert resp.json()["code"] == 4003

    async def test_invariants(self, client: AsyncClient) -> None:
        await _deposit(client, "0xa1", "10", "0xA")

        resp = await client.get("/api/v1/admin/invariants", headers=ADMIN)

        assert resp.json()["data"] == {"ok": True, "accounts_checked": 1, "violations": []}

    async def test_overdue_settlements(
        self, client: AsyncClient, record_price: Callable[..., Any], clock: Any
    ) -> None:
        record_price(50_000, T0_MS)
        await _deposit(client, "0xa1", "100", "0xA")
        placed = await client.post(
            "/api/v1/bets", json={"address": "0xa1", "amount": "10", "target_id": "1"}
        )
        bet_id = placed.json()["data"]["bet_id"]

        before = await client.get("/api/v1/admin/settlement/overdue", headers=ADMIN)
        clock.advance(ROUND_MS + 200_000)
        after = await client.get("/api/v1/admin/settlement/overdue", headers=ADMIN)

        assert before.json()["data"]["items"] == []
        assert [b["bet_id"] for b in after.json()["data"]["items"]] == [bet_id]
