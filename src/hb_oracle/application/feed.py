"""PriceFeedPoller — pulls the latest Pyth price for each asset every tick."""

import asyncio
import logging

from src.hb_common.enums import Asset
from src.hb_common.errors import PriceUnavailableError
from src.hb_oracle.infrastructure.hermes_client import HermesClient
from src.hb_oracle.infrastructure.price_history import PriceHistory

logger = logging.getLogger(__name__)


class PriceFeedPoller:
    def __init__(
        self,
        hermes: HermesClient,
        history: PriceHistory,
        assets: list[Asset],
        interval_seconds: float = 1.0,
    ) -> None:
        self._hermes = hermes
        self._history = history
        self._assets = assets
        self._interval = interval_seconds
        self._stop = asyncio.Event()

    async def poll_once(self) -> int:
        """Fetch one sample per asset; returns how many were recorded."""
        recorded = 0
        for asset in self._assets:
            try:
                sample = await self._hermes.fetch_latest(asset)
            except PriceUnavailableError as exc:
                # Never substitute the last known price: settlement must see the gap.
                logger.warning("Price poll failed: %s", exc.message)
                continue
            self._history.record(sample)
            recorded += 1
        return recorded

    async def run(self) -> None:
        logger.info("Price feed started for %s", ", ".join(a.value for a in self._assets))
        while not self._stop.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Price feed stopped")

    def stop(self) -> None:
        self._stop.set()
