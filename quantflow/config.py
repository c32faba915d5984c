from dataclasses import dataclass
from typing import Optional

from quantflow.constants import MarketFilter, Timeframe
from quantflow.errors import ValidationError

@dataclass(frozen=True)
class ScannerConfig:
    """Per-request scan settings sent by the client."""

    timeframe: Timeframe = Timeframe.M1
    market_type: MarketFilter = MarketFilter.GERAL

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "ScannerConfig":
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValidationError("config must be an object")
        tf = raw.get("timeframe") or Timeframe.M1.value
        mt = raw.get("marketType") or MarketFilter.GERAL.value
        try:
            return cls(timeframe=Timeframe(tf), market_type=MarketFilter(mt))
        except ValueError:
            raise ValidationError(f"invalid scanner config: timeframe={tf!r} marketType={mt!r}")

    def to_dict(self) -> dict:
        return {"timeframe": self.timeframe.value, "marketType": self.market_type.value}


@dataclass
class ServerConfig:
    """All tuneable knobs in one place."""

    # --- transport ---
    host: str = "0.0.0.0"
    port: int = 3000

    # --- persistence ---
    feedback_path: str = "feedback_db.json"

    # --- market simulation ---
    tick_interval: float = 2.0              # seconds between synthetic ticks
    history_size: int = 100                 # candles seeded per instrument
    max_candles: int = 100                  # trailing window kept per instrument
    seed: Optional[int] = None              # pin simulator + jitter for replays

    # --- selection ---
    min_winrate: float = 90.0               # signals below this are discarded
    mute_seconds: int = 300                 # MUTE_ASSET duration

    # --- feedback learning ---
    loss_penalty: float = 5.0               # per similar past loss
    similarity_threshold: float = 0.7       # confluence overlap to count as "similar"
    recent_feedback_window: int = 20        # records per asset for the win/loss tilt

    # --- misc ---
    log_level: str = "INFO"
