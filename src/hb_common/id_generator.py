"""Snowflake-style bet ids.

Ids are 19-digit zero-padded decimal strings, so plain string comparison
(as the bets table orders and pages them) matches numeric order. They sort
by creation time across replicas as long as each replica has its own NODE_ID.
"""

import threading
import time

# 2**63 - 1 has 19 digits.
ID_WIDTH = 19


class SnowflakeIdGenerator:
    """Layout (63 bits used):
      - 41 bits: millisecond timestamp since _EPOCH_MS
      - 10 bits: node id (0-1023)
      - 12 bits: per-millisecond sequence
    """

    _EPOCH_MS = 1_704_067_200_000  # 2024-01-01T00:00:00Z
    _NODE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, node_id: int = 0) -> None:
        if not (0 <= node_id < (1 << self._NODE_BITS)):
            raise ValueError(f"node_id must be 0-{(1 << self._NODE_BITS) - 1}, got {node_id}")
        self._node_id = node_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            ms = self._clock_ms()
            if ms < self._last_ms:
                # Wall clock stepped back: keep issuing from the last tick.
                ms = self._last_ms
            if ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    ms = self._wait_next_ms(ms)
            else:
                self._sequence = 0
            self._last_ms = ms
            value = (
                ((ms - self._EPOCH_MS) << (self._NODE_BITS + self._SEQUENCE_BITS))
                | (self._node_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return f"{value:0{ID_WIDTH}d}"

    def _clock_ms(self) -> int:
        return int(time.time() * 1000)

    def _wait_next_ms(self, last_ms: int) -> int:
        ms = self._clock_ms()
        while ms <= last_ms:
            ms = self._clock_ms()
        return ms
