"""Rolling in-memory price history, one window per asset."""

import bisect
from collections import defaultdict

from src.hb_common.enums import Asset
from src.hb_common.errors import PriceUnavailableError
from src.hb_oracle.domain.models import PriceSample


class PriceHistory:
    """Samples ordered by publish time, trimmed to the last window_ms.

    Single event loop only; no locking.
    """

    def __init__(self, window_ms: int = 300_000) -> None:
        self._window_ms = window_ms
        self._times: dict[Asset, list[int]] = defaultdict(list)
        self._samples: dict[Asset, list[PriceSample]] = defaultdict(list)

    def record(self, sample: PriceSample) -> None:
        times = self._times[sample.asset]
        samples = self._samples[sample.asset]
        if times and sample.publish_time_ms <= times[-1]:
            if sample.publish_time_ms == times[-1]:
                return  # same publish_time polled twice
            idx = bisect.bisect_left(times, sample.publish_time_ms)
            if idx < len(times) and times[idx] == sample.publish_time_ms:
                return
            times.insert(idx, sample.publish_time_ms)
            samples.insert(idx, sample)
        else:
            times.append(sample.publish_time_ms)
            samples.append(sample)
        self._trim(sample.asset)

    def latest(self, asset: Asset) -> PriceSample:
        samples = self._samples.get(asset)
        if not samples:
            raise PriceUnavailableError(asset.value)
        return samples[-1]

    def first_at_or_after(
        self, asset: Asset, at_or_after_ms: int, within_ms: int | None = None
    ) -> PriceSample | None:
        times = self._times.get(asset)
        if not times:
            return None
        idx = bisect.bisect_left(times, at_or_after_ms)
        if idx == len(times):
            return None
        sample = self._samples[asset][idx]
        if within_ms is not None and sample.publish_time_ms - at_or_after_ms > within_ms:
            return None
        return sample

    def covers(self, asset: Asset, ts_ms: int) -> bool:
        """True if the window reaches back to ts_ms, so a miss is authoritative."""
        times = self._times.get(asset)
        return bool(times) and times[0] <= ts_ms

    def __len__(self) -> int:
        return sum(len(t) for t in self._times.values())

    def _trim(self, asset: Asset) -> None:
        times = self._times[asset]
        cutoff = times[-1] - self._window_ms
        drop = bisect.bisect_left(times, cutoff)
        if drop:
            del times[:drop]
            del self._samples[asset][:drop]
