"""Price oracle domain types."""

from dataclasses import dataclass
from typing import Protocol

from src.hb_common.enums import Asset

# Pyth Network price feed ids
PRICE_FEED_IDS: dict[Asset, str] = {
    Asset.BTC: "0xe62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43",
    Asset.SUI: "0x23d7315113f5b1d3ba7a83604c44b94d79f4fd69af77f804fc7f920a6dc65744",
    Asset.SOL: "0xef0d8b6fda2ceba41da15d4095d1da392a0d2f8ed0c6c7bc0f4cfac8c280b56d",
}


@dataclass(frozen=True)
class PriceSample:
    asset: Asset
    price: int            # units (8 dp)
    confidence: int       # units (8 dp)
    publish_time_ms: int


class PriceOracle(Protocol):
    async def latest(self, asset: Asset) -> PriceSample: ...

    async def get_price(
        self, asset: Asset, at_or_after_ms: int, within_ms: int | None = None
    ) -> PriceSample:
        """First sample published at or after at_or_after_ms.

        within_ms bounds how late that sample may be. Raises
        PriceUnavailableError rather than returning anything older.
        """
        ...
