"""Indicator engine. Every function returns None instead of raising when the window
is too short, so an indicator that cannot be computed simply never confirms."""

from typing import Optional, Sequence

import numpy as np

from quantflow.constants import Fractal, Trend
from quantflow.core.models import Indicators, MacdResult
from quantflow.utils.candle import Candle

RSI_PERIOD = 14
SMA_PERIOD = 16
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL_RATIO = 0.2


def sma(values: Sequence[float], period: int) -> Optional[float]:
    """Mean of the trailing `period` values."""
    if period <= 0 or len(values) < period:
        return None
    arr = np.asarray(values[-period:], dtype=np.float64)
    return float(arr.sum() / period)


def ema(values: Sequence[float], period: int, previous: Optional[float] = None) -> Optional[float]:
    """One EMA step. Without `previous` the EMA is seeded with the SMA of the first
    `period` values; with it, the newest value is blended in with k = 2/(period+1)."""
    if period <= 0 or len(values) < period:
        return None
    if previous is None:
        return sma(values[:period], period)
    k = 2.0 / (period + 1)
    return float(values[-1]) * k + previous * (1 - k)


def rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> Optional[float]:
    """Wilder RSI over the whole series."""
    if len(closes) <= period:
        return None

    deltas = np.diff(np.asarray(closes, dtype=np.float64))
    seed = deltas[:period]
    avg_gain = float(np.maximum(seed, 0).sum()) / period
    avg_loss = float(np.maximum(-seed, 0).sum()) / period

    for d in deltas[period:].tolist():
        gain = d if d >= 0 else 0.0
        loss = -d if d < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(closes: Sequence[float]) -> MacdResult:
    """Real-time MACD approximation.

    No MACD history is kept between scans, so the signal line is not a 9-period EMA
    of the MACD series: it is approximated as 20% of the current MACD value, which
    makes the histogram 80% of the MACD value. Both EMAs are single seeded steps
    (see `ema`), so this is an approximation and not textbook MACD.
    """
    if len(closes) < MACD_SLOW:
        return MacdResult()
    fast = ema(closes, MACD_FAST)
    slow = ema(closes, MACD_SLOW)
    if fast is None or slow is None:
        return MacdResult()
    value = fast - slow
    signal = value * MACD_SIGNAL_RATIO
    return MacdResult(value=value, signal=signal, histogram=value - signal)


def detect_trend(closes: Sequence[float], sma16: Optional[float]) -> Trend:
    if sma16 is None or len(closes) < 2:
        return Trend.NEUTRAL
    last = closes[-1]
    if last > sma16:
        return Trend.UP
    if last < sma16:
        return Trend.DOWN
    return Trend.NEUTRAL


def detect_fractal(candles: Sequence[Candle]) -> Optional[Fractal]:
    """Classify the candle third from the end, the newest one with two closed
    neighbours on each side."""
    if len(candles) < 5:
        return None

    i = len(candles) - 3
    curr = candles[i]
    neighbours = (candles[i - 2], candles[i - 1], candles[i + 1], candles[i + 2])

    if all(curr.high > n.high for n in neighbours):
        return Fractal.TOP
    if all(curr.low < n.low for n in neighbours):
        return Fractal.BOTTOM
    return None


def compute_indicators(candles: Sequence[Candle]) -> Indicators:
    closes = [c.close for c in candles]
    sma16 = sma(closes, SMA_PERIOD)
    return Indicators(
        rsi=rsi(closes, RSI_PERIOD),
        macd=macd(closes),
        sma16=sma16,
        fractal=detect_fractal(candles),
        trend=detect_trend(closes, sma16),
    )
