from dataclasses import dataclass

@dataclass
class Candle:
    time: int           # epoch ms, candle open
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

def _to_ms(value) -> int:
    ts = float(value or 0)
    # feeds that send epoch seconds
    if 0 < ts < 1e11:
        ts *= 1000
    return int(ts)

def parse_candle(raw) -> Candle:
    """Build a Candle from a feed payload: dict, [t, o, h, l, c, v] row, or any object
    exposing the same attributes. Times in seconds are promoted to ms."""
    if isinstance(raw, Candle):
        return raw
    if isinstance(raw, dict):
        return Candle(
            time=_to_ms(raw.get("time", raw.get("timestamp", 0))),
            open=float(raw.get("open", 0) or 0),
            high=float(raw.get("high", 0) or 0),
            low=float(raw.get("low", 0) or 0),
            close=float(raw.get("close", 0) or 0),
            volume=float(raw.get("volume", 0) or 0),
        )
    if isinstance(raw, (list, tuple)):
        return Candle(
            time=_to_ms(raw[0]),
            open=float(raw[1]),
            high=float(raw[2]),
            low=float(raw[3]),
            close=float(raw[4]),
            volume=float(raw[5]) if len(raw) > 5 else 0.0,
        )
    return Candle(
        time=_to_ms(getattr(raw, "time", getattr(raw, "timestamp", 0))),
        open=float(getattr(raw, "open", 0) or 0),
        high=float(getattr(raw, "high", 0) or 0),
        low=float(getattr(raw, "low", 0) or 0),
        close=float(getattr(raw, "close", 0) or 0),
        volume=float(getattr(raw, "volume", 0) or 0),
    )
