import dataclasses
import threading
import time
from collections import deque
from typing import Callable, Iterable, Optional

import numpy as np

from quantflow.constants import MarketType
from quantflow.market.assets import ASSETS, Instrument
from quantflow.utils.candle import Candle, parse_candle
from quantflow.utils.logger import log

CANDLE_MS = 60_000
SEED_STEP = 0.0005      # max |change| per seeded candle is half this
SEED_WICK = 0.0002
TICK_STEP = 0.0004


def _now_ms() -> int:
    return int(time.time() * 1000)


class MarketSimulator:
    """Random-walk candle source for every instrument in the catalog.

    The tick moves the close of the newest candle in place, so readers get a copy of
    the window taken under the lock (snapshot at call time).
    """

    def __init__(self, instruments: Iterable[Instrument] = ASSETS,
                 history_size: int = 100, max_candles: int = 100,
                 seed: Optional[int] = None,
                 clock_ms: Callable[[], int] = _now_ms):
        self.instruments = tuple(instruments)
        self.max_candles = max(max_candles, 1)
        self.rng = np.random.default_rng(seed)
        self.clock_ms = clock_ms
        self._lock = threading.Lock()
        self._types: dict[str, MarketType] = {i.name: i.market_type for i in self.instruments}
        self._candles: dict[str, deque[Candle]] = {}
        for inst in self.instruments:
            self._candles[inst.name] = deque(self._seed(history_size), maxlen=self.max_candles)
        log.info("📈 Seeded %d instruments with %d candles each", len(self.instruments), history_size)

    # ------------------------------------------------------------------
    def _seed(self, n: int) -> list[Candle]:
        now = self.clock_ms()
        last = 1.0 + float(self.rng.random())
        out = []
        for i in range(n):
            change = (float(self.rng.random()) - 0.5) * SEED_STEP
            o = last
            c = o + change
            out.append(Candle(
                time=now - (n - i) * CANDLE_MS,
                open=o,
                high=max(o, c) + float(self.rng.random()) * SEED_WICK,
                low=min(o, c) - float(self.rng.random()) * SEED_WICK,
                close=c,
                volume=float(self.rng.random()) * 100,
            ))
            last = c
        return out

    def tick(self):
        """Nudge the newest candle of every instrument."""
        now = self.clock_ms()
        with self._lock:
            for candles in self._candles.values():
                if not candles:
                    continue
                last = candles[-1]
                last.close += (float(self.rng.random()) - 0.5) * TICK_STEP
                last.high = max(last.high, last.close)
                last.low = min(last.low, last.close)
                last.time = now

    def append_candle(self, asset: str, raw) -> bool:
        """Push a closed candle from a live feed. Unknown assets are ignored."""
        candle = parse_candle(raw)
        with self._lock:
            candles = self._candles.get(asset)
            if candles is None:
                return False
            if candles and candle.time <= candles[-1].time:
                return False
            candles.append(candle)
        return True

    # ------------------------------------------------------------------
    def window(self, asset: str) -> Optional[tuple[list[Candle], MarketType]]:
        """Copy of the asset's candles (oldest first) and its market tag, or None."""
        with self._lock:
            candles = self._candles.get(asset)
            if candles is None:
                return None
            return [dataclasses.replace(c) for c in candles], self._types[asset]
