"""Value objects passed between the indicator engine, the analyzer, the scanner and
the transport. Wire format is the camelCase JSON the dashboard already speaks."""

from dataclasses import dataclass, field
from typing import Optional

from quantflow.constants import (
    Direction, FeedbackResult, Fractal, MarketType, ScanStatus, Trend,
)
from quantflow.errors import ValidationError


@dataclass(frozen=True)
class MacdResult:
    value: Optional[float] = None
    signal: Optional[float] = None
    histogram: Optional[float] = None


@dataclass(frozen=True)
class Indicators:
    rsi: Optional[float]
    macd: MacdResult
    sma16: Optional[float]
    fractal: Optional[Fractal]
    trend: Trend


@dataclass(frozen=True)
class SignalContext:
    """Snapshot stored with feedback so later scans can match similar setups."""
    rsi: Optional[float]
    macd_hist: Optional[float]
    trend: str
    confluences: tuple = ()

    def to_dict(self) -> dict:
        return {
            "rsi": self.rsi,
            "macdHist": self.macd_hist,
            "trend": self.trend,
            "confluences": list(self.confluences),
        }

    @classmethod
    def from_dict(cls, raw) -> Optional["SignalContext"]:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise ValidationError("context must be an object")
        confluences = raw.get("confluences") or []
        if not isinstance(confluences, (list, tuple)):
            raise ValidationError("context.confluences must be a list")
        return cls(
            rsi=_opt_float(raw.get("rsi"), "context.rsi"),
            macd_hist=_opt_float(raw.get("macdHist"), "context.macdHist"),
            trend=str(raw.get("trend") or Trend.NEUTRAL.value),
            confluences=tuple(str(c) for c in confluences),
        )


@dataclass(frozen=True)
class Signal:
    timestamp: int                  # epoch ms when analyzed
    asset: str
    market_type: MarketType
    direction: Direction
    confluences: tuple
    strength: str                   # Weak / Medium / Strong
    confidence: str                 # Baixa / Média / Alta / Muito Alta
    winrate: float                  # 0..100
    price: float
    entry_timestamp: int            # epoch ms
    entry_time: str                 # HH:MM:SS
    expiration: str                 # "1 min" / "5 min"
    context: SignalContext

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "asset": self.asset,
            "marketType": self.market_type.value,
            "direction": self.direction.value,
            "confluences": list(self.confluences),
            "strength": self.strength,
            "confidence": self.confidence,
            "winrate": self.winrate,
            "price": self.price,
            "entryTimestamp": self.entry_timestamp,
            "entryTime": self.entry_time,
            "expiration": self.expiration,
            "context": self.context.to_dict(),
        }


@dataclass(frozen=True)
class FeedbackRecord:
    asset: str
    direction: Optional[Direction]
    result: FeedbackResult
    timestamp: int
    context: Optional[SignalContext] = None

    @property
    def confluences(self) -> tuple:
        return self.context.confluences if self.context else ()

    def to_dict(self) -> dict:
        out = {
            "asset": self.asset,
            "direction": self.direction.value if self.direction else None,
            "result": self.result.value,
            "timestamp": self.timestamp,
        }
        if self.context is not None:
            out["context"] = self.context.to_dict()
        return out

    @classmethod
    def from_dict(cls, raw: dict) -> "FeedbackRecord":
        """Rebuild a stored record. Submissions go through `validate_submission`."""
        if not isinstance(raw, dict):
            raise ValidationError("feedback record must be an object")
        direction = raw.get("direction")
        return cls(
            asset=str(raw["asset"]),
            direction=Direction(direction) if direction else None,
            result=FeedbackResult(raw["result"]),
            timestamp=int(raw.get("timestamp") or 0),
            context=SignalContext.from_dict(raw.get("context")),
        )


@dataclass(frozen=True)
class ScanLog:
    time: str
    asset: str
    status: ScanStatus
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"time": self.time, "asset": self.asset, "status": self.status.value}
        if self.reason is not None:
            out["reason"] = self.reason
        return out


@dataclass
class ScanResult:
    best_signal: Optional[Signal] = None
    logs: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "bestSignal": self.best_signal.to_dict() if self.best_signal else None,
            "logs": [entry.to_dict() for entry in self.logs],
        }


def _opt_float(value, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
