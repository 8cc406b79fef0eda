"""Sui JSON-RPC client and the treasury event source built on it.

Treasury Move events arrive from suix_queryEvents as:
    {"id": {"txDigest": "...", "eventSeq": "0"},
     "type": "0xPKG::treasury::DepositEvent",
     "parsedJson": {"user": "0xabc...", "amount": "1500000"},
     "timestampMs": "1717000000000"}
Amounts are in the coin's smallest unit (USDC: 6 decimals) and are rescaled
to 8-decimal ledger units here.
"""

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.hb_chain.domain.models import ChainEvent, ChainEventPage
from src.hb_common.amounts import rescale
from src.hb_common.enums import ChainEventType
from src.hb_common.errors import ChainUnavailableError

logger = logging.getLogger(__name__)

_RETRYABLE = (httpx.TransportError, httpx.HTTPStatusError)

_EVENT_TYPES = {
    "DepositEvent": ChainEventType.DEPOSIT.value,
    "WithdrawalEvent": ChainEventType.WITHDRAWAL.value,
    "WithdrawEvent": ChainEventType.WITHDRAWAL.value,
}


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def decode_event(raw: dict[str, Any], coin_decimals: int) -> ChainEvent:
    """Best-effort decode; anything missing is left None for validation to reject."""
    type_name = str(raw.get("type", "")).rsplit("::", 1)[-1]
    parsed = raw.get("parsedJson") or {}
    coin_amount = _to_int(parsed.get("amount"))
    return ChainEvent(
        event_type=_EVENT_TYPES.get(type_name, type_name),
        address=parsed.get("user") or parsed.get("address"),
        amount=rescale(coin_amount, coin_decimals) if coin_amount is not None else None,
        transaction_hash=(raw.get("id") or {}).get("txDigest"),
        timestamp_ms=_to_int(raw.get("timestampMs")),
    )


class SuiRpcClient:
    def __init__(self, rpc_url: str, timeout_seconds: float = 10.0) -> None:
        self._client = httpx.AsyncClient(base_url=rpc_url, timeout=timeout_seconds)
        self._request_id = 0

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: list[Any]) -> Any:
        try:
            body = await self._post_with_retry(method, params)
        except _RETRYABLE as exc:
            logger.warning("Sui RPC %s failed: %s", method, exc)
            raise ChainUnavailableError(f"{method}: {exc}") from exc
        if "error" in body:
            raise ChainUnavailableError(f"{method}: {body['error']}")
        return body.get("result")

    async def query_events(
        self, package_id: str, cursor: dict[str, Any] | None, limit: int
    ) -> dict[str, Any]:
        query = {"MoveModule": {"package": package_id, "module": "treasury"}}
        result: dict[str, Any] = await self.call(
            "suix_queryEvents", [query, cursor, limit, False]
        )
        return result

    async def get_object_fields(self, object_id: str) -> dict[str, Any]:
        result = await self.call("sui_getObject", [object_id, {"showContent": True}])
        content = ((result or {}).get("data") or {}).get("content") or {}
        if content.get("dataType") != "moveObject":
            raise ChainUnavailableError(f"object {object_id} has no Move content")
        fields: dict[str, Any] = content.get("fields") or {}
        return fields

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(_RETRYABLE),
        reraise=True,
    )
    async def _post_with_retry(self, method: str, params: list[Any]) -> dict[str, Any]:
        self._request_id += 1
        response = await self._client.post(
            "",
            json={"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params},
        )
        response.raise_for_status()
        body: dict[str, Any] = response.json()
        return body


class SuiTreasuryEventSource:
    """ChainEventSource over the treasury module's deposit/withdraw events."""

    def __init__(
        self,
        client: SuiRpcClient,
        package_id: str,
        treasury_object_id: str,
        coin_decimals: int = 6,
        page_size: int = 50,
    ) -> None:
        self._client = client
        self._package_id = package_id
        self._treasury_object_id = treasury_object_id
        self._coin_decimals = coin_decimals
        self._page_size = page_size

    async def fetch(self, cursor: dict[str, Any] | None) -> ChainEventPage:
        result = await self._client.query_events(self._package_id, cursor, self._page_size)
        events = [decode_event(raw, self._coin_decimals) for raw in result.get("data") or []]
        return ChainEventPage(
            events=events,
            next_cursor=result.get("nextCursor"),
            has_more=bool(result.get("hasNextPage")),
        )

    async def treasury_balance(self) -> int:
        """Treasury coin balance in ledger units."""
        fields = await self._client.get_object_fields(self._treasury_object_id)
        raw = fields.get("balance", 0)
        # Balance<T> may be rendered either flat or as {"fields": {"value": ...}}
        if isinstance(raw, dict):
            raw = (raw.get("fields") or raw).get("value", 0)
        value = _to_int(raw)
        if value is None:
            raise ChainUnavailableError(f"unreadable treasury balance {raw!r}")
        return rescale(value, self._coin_decimals)
