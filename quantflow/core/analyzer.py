from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

import numpy as np

from quantflow.config import ScannerConfig
from quantflow.constants import Direction, Fractal, MarketType, Trend
from quantflow.core.expiry import schedule_entry
from quantflow.core.indicators import compute_indicators
from quantflow.core.models import Indicators, Signal, SignalContext
from quantflow.trading.feedback import FeedbackStore
from quantflow.trading.performance import OutcomeTally
from quantflow.utils.candle import Candle
from quantflow.utils.logger import log

MIN_CONFLUENCES = 2
BASE_WINRATE = 75.0
PER_CONFLUENCE = 5.0
JITTER = 5.0


class RandomSource(Protocol):
    def uniform(self, low: float, high: float) -> float: ...


def _buy_confluences(ind: Indicators, last_close: float) -> list[str]:
    labels = []
    if ind.fractal == Fractal.BOTTOM:
        labels.append("Fractal Fundo")
    if ind.rsi is not None and ind.rsi > 50:
        labels.append("RSI > 50")
    if ind.macd.histogram is not None and ind.macd.histogram > 0:
        labels.append("MACD Positivo")
    if ind.sma16 is not None and last_close > ind.sma16:
        labels.append("Preço > SMA16")
    if ind.trend == Trend.UP:
        labels.append("Tendência Alta")
    return labels


def _sell_confluences(ind: Indicators, last_close: float) -> list[str]:
    labels = []
    if ind.fractal == Fractal.TOP:
        labels.append("Fractal Topo")
    if ind.rsi is not None and ind.rsi < 50:
        labels.append("RSI < 50")
    if ind.macd.histogram is not None and ind.macd.histogram < 0:
        labels.append("MACD Negativo")
    if ind.sma16 is not None and last_close < ind.sma16:
        labels.append("Preço < SMA16")
    if ind.trend == Trend.DOWN:
        labels.append("Tendência Baixa")
    return labels


def confidence_tier(n: int) -> str:
    if n >= 5:
        return "Muito Alta"
    if n == 4:
        return "Alta"
    if n == 3:
        return "Média"
    return "Baixa"


def strength_tier(n: int) -> str:
    if n >= 4:
        return "Strong"
    if n >= 3:
        return "Medium"
    return "Weak"


class SignalAnalyzer:
    """
    Turns one instrument's candle window into a CALL/PUT signal:
      • at least two of five indicator conditions must agree (buy side checked first)
      • similar past losses on the asset+direction cost `loss_penalty` each
      • the last `recent_window` outcomes on the asset tilt the score up or down
      • winrate = 75 + 5·confluences + U(0, 5) + tilt + penalty, clamped to 0..100

    `rng` and `clock` are injectable so scores and entry times can be pinned.
    """

    def __init__(self, feedback: FeedbackStore,
                 rng: Optional[RandomSource] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 loss_penalty: float = 5.0,
                 similarity_threshold: float = 0.7,
                 recent_window: int = 20):
        self.feedback = feedback
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or datetime.now
        self.loss_penalty = loss_penalty
        self.similarity_threshold = similarity_threshold
        self.recent_window = recent_window

    # ------------------------------------------------------------------
    def _direction(self, ind: Indicators, last_close: float) -> tuple[Optional[Direction], list[str]]:
        buys = _buy_confluences(ind, last_close)
        if len(buys) >= MIN_CONFLUENCES:
            return Direction.CALL, buys
        sells = _sell_confluences(ind, last_close)
        if len(sells) >= MIN_CONFLUENCES:
            return Direction.PUT, sells
        return None, []

    def loss_adjustment(self, asset: str, direction: Direction, confluences: Sequence[str]) -> float:
        similar = self.feedback.similar_losses(asset, direction, confluences, self.similarity_threshold)
        if similar:
            log.debug("%s: %d similar past losses on %s", asset, len(similar), direction.value)
        return -len(similar) * self.loss_penalty

    def recent_adjustment(self, asset: str) -> float:
        return OutcomeTally.of(self.feedback.recent(asset, self.recent_window)).adjustment()

    # ------------------------------------------------------------------
    def analyze(self, asset: str, candles: Sequence[Candle], market_type: MarketType,
                config: ScannerConfig) -> Optional[Signal]:
        if not candles:
            return None

        ind = compute_indicators(candles)
        last_close = candles[-1].close
        direction, confluences = self._direction(ind, last_close)
        if direction is None:
            return None

        penalty = self.loss_adjustment(asset, direction, confluences)
        tilt = self.recent_adjustment(asset)

        n = len(confluences)
        base = BASE_WINRATE + n * PER_CONFLUENCE + float(self.rng.uniform(0, JITTER))
        winrate = max(0.0, min(base + tilt + penalty, 100.0))

        now = self.clock()
        slot = schedule_entry(now, config.timeframe)

        return Signal(
            timestamp=int(now.timestamp() * 1000),
            asset=asset,
            market_type=market_type,
            direction=direction,
            confluences=tuple(confluences),
            strength=strength_tier(n),
            confidence=confidence_tier(n),
            winrate=winrate,
            price=last_close,
            entry_timestamp=slot.timestamp_ms,
            entry_time=slot.label,
            expiration=slot.expiration,
            context=SignalContext(
                rsi=ind.rsi,
                macd_hist=ind.macd.histogram,
                trend=ind.trend.value,
                confluences=tuple(confluences),
            ),
        )
