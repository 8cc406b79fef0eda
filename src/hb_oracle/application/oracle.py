"""HermesPriceOracle: local price history first, Hermes history as fallback."""

import logging
from collections.abc import Callable

from src.hb_common.datetime_utils import now_ms
from src.hb_common.enums import Asset
from src.hb_common.errors import PriceUnavailableError
from src.hb_oracle.domain.models import PriceSample
from src.hb_oracle.infrastructure.hermes_client import HermesClient
from src.hb_oracle.infrastructure.price_history import PriceHistory

logger = logging.getLogger(__name__)


class HermesPriceOracle:
    """PriceOracle backed by the poller's PriceHistory.

    A history miss for a timestamp the window no longer (or never) covered,
    e.g. after a restart, is answered from Hermes' historical endpoint and the
    result is still held to the within_ms bound.

    latest() refuses a sample older than max_age_ms, so a stalled feed stops
    admission instead of pricing bets off an old reference.
    """

    def __init__(
        self,
        history: PriceHistory,
        hermes: HermesClient | None = None,
        max_age_ms: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._history = history
        self._hermes = hermes
        self._max_age_ms = max_age_ms
        self._clock = clock

    async def latest(self, asset: Asset) -> PriceSample:
        sample = self._history.latest(asset)
        if self._max_age_ms is not None:
            age_ms = self._clock() - sample.publish_time_ms
            if age_ms > self._max_age_ms:
                raise PriceUnavailableError(
                    asset.value, f"latest sample is {age_ms} ms old (max {self._max_age_ms})"
                )
        return sample

    async def get_price(
        self, asset: Asset, at_or_after_ms: int, within_ms: int | None = None
    ) -> PriceSample:
        sample = self._history.first_at_or_after(asset, at_or_after_ms, within_ms)
        if sample is not None:
            return sample
        if self._hermes is None or self._history.covers(asset, at_or_after_ms):
            raise PriceUnavailableError(asset.value, f"no sample at or after {at_or_after_ms}")

        sample = await self._hermes.fetch_at(asset, -(-at_or_after_ms // 1000))
        if sample.publish_time_ms < at_or_after_ms:
            raise PriceUnavailableError(asset.value, "Hermes returned an earlier sample")
        if within_ms is not None and sample.publish_time_ms - at_or_after_ms > within_ms:
            raise PriceUnavailableError(asset.value, "no sample inside the grace window")
        logger.info(
            "Backfilled %s price at %d from Hermes history", asset.value, sample.publish_time_ms
        )
        self._history.record(sample)
        return sample
