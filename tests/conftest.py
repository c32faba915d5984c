from datetime import datetime

import pytest

from quantflow.constants import Direction, MarketType
from quantflow.core.models import Signal, SignalContext
from quantflow.market.assets import Instrument
from quantflow.trading.feedback import FeedbackStore
from quantflow.utils.candle import Candle

SCAN_TIME = datetime(2024, 3, 4, 10, 7, 30)


class FixedRandom:
    """Random source pinned to one value."""

    def __init__(self, value: float = 0.0):
        self.value = value

    def uniform(self, low, high):
        return self.value


def fixed_clock(at: datetime = SCAN_TIME):
    return lambda: at


def candles_from_closes(closes, start_ms: int = 1_700_000_000_000):
    out = []
    prev = closes[0]
    for i, c in enumerate(closes):
        out.append(Candle(time=start_ms + i * 60_000, open=prev, high=max(prev, c),
                          low=min(prev, c), close=c, volume=1.0))
        prev = c
    return out


def candles_from_extremes(highs, lows):
    return [Candle(time=i * 60_000, open=(h + l) / 2, high=h, low=l, close=(h + l) / 2)
            for i, (h, l) in enumerate(zip(highs, lows))]


def rising(n: int = 30, start: float = 1.0, step: float = 0.001):
    return candles_from_closes([start + i * step for i in range(n)])


def falling(n: int = 30, start: float = 2.0, step: float = 0.001):
    return candles_from_closes([start - i * step for i in range(n)])


def flat(n: int = 30, price: float = 1.5):
    return candles_from_closes([price] * n)


def make_signal(asset: str, winrate: float, entry_ts: int = 1_000, direction=Direction.CALL,
                market_type=MarketType.REAL) -> Signal:
    confluences = ("RSI > 50", "Preço > SMA16")
    return Signal(
        timestamp=0, asset=asset, market_type=market_type, direction=direction,
        confluences=confluences, strength="Weak", confidence="Baixa", winrate=winrate,
        price=1.0, entry_timestamp=entry_ts, entry_time="10:09:00", expiration="1 min",
        context=SignalContext(rsi=60.0, macd_hist=0.1, trend="up", confluences=confluences),
    )


class FakeMarket:
    def __init__(self, instruments, windows=None):
        self.instruments = tuple(instruments)
        self.windows = windows or {}

    def window(self, asset):
        for inst in self.instruments:
            if inst.name == asset:
                return list(self.windows.get(asset, [])), inst.market_type
        return None


class StubAnalyzer:
    """Returns canned signals per asset, ignoring the candles."""

    def __init__(self, signals, clock=None):
        self.signals = signals
        self.clock = clock or fixed_clock()
        self.calls = []

    def analyze(self, asset, candles, market_type, config):
        self.calls.append(asset)
        return self.signals.get(asset)


@pytest.fixture
def store():
    return FeedbackStore()


@pytest.fixture
def instruments():
    return [
        Instrument("AAA", MarketType.REAL),
        Instrument("BBB", MarketType.REAL),
        Instrument("CCC-OTC", MarketType.OTC),
    ]
