"""Pyth Hermes HTTP client.

Hermes returns prices as exponent-scaled integers:
    {"parsed": [{"id": "...", "price": {"price": "6512345678901", "conf": "2345",
                                       "expo": -8, "publish_time": 1717000000}}]}
which are rescaled here to 8-decimal units.
"""

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.hb_common.amounts import rescale
from src.hb_common.enums import Asset
from src.hb_common.errors import PriceUnavailableError
from src.hb_oracle.domain.models import PRICE_FEED_IDS, PriceSample

logger = logging.getLogger(__name__)

_RETRYABLE = (httpx.TransportError, httpx.HTTPStatusError)


def parse_price_update(asset: Asset, payload: dict[str, Any]) -> PriceSample:
    """Extract the sample for `asset` from a Hermes /v2/updates response body."""
    feed_id = PRICE_FEED_IDS[asset].removeprefix("0x").lower()
    for item in payload.get("parsed") or []:
        if str(item.get("id", "")).removeprefix("0x").lower() != feed_id:
            continue
        price = item["price"]
        expo = int(price["expo"])
        return PriceSample(
            asset=asset,
            price=rescale(int(price["price"]), -expo),
            confidence=rescale(int(price["conf"]), -expo),
            publish_time_ms=int(price["publish_time"]) * 1000,
        )
    raise PriceUnavailableError(asset.value, "feed missing from Hermes response")


class HermesClient:
    def __init__(self, base_url: str, timeout_seconds: float = 10.0) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_latest(self, asset: Asset) -> PriceSample:
        payload = await self._get("/v2/updates/price/latest", asset)
        return parse_price_update(asset, payload)

    async def fetch_at(self, asset: Asset, publish_time_s: int) -> PriceSample:
        """First update published at or after publish_time_s (Hermes semantics)."""
        payload = await self._get(f"/v2/updates/price/{publish_time_s}", asset)
        return parse_price_update(asset, payload)

    async def _get(self, path: str, asset: Asset) -> dict[str, Any]:
        try:
            return await self._get_with_retry(path, asset)
        except _RETRYABLE as exc:
            logger.warning("Hermes request %s failed for %s: %s", path, asset.value, exc)
            raise PriceUnavailableError(asset.value, str(exc)) from exc

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(_RETRYABLE),
        reraise=True,
    )
    async def _get_with_retry(self, path: str, asset: Asset) -> dict[str, Any]:
        response = await self._client.get(
            path, params={"ids[]": PRICE_FEED_IDS[asset], "parsed": "true"}
        )
        response.raise_for_status()
        body: dict[str, Any] = response.json()
        return body
