import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from quantflow.constants import Timeframe

M1_LEAD_MINUTES = 2
M5_BOUNDARY = 5


@dataclass(frozen=True)
class EntrySlot:
    at: datetime
    expiration: str

    @property
    def timestamp_ms(self) -> int:
        return int(self.at.timestamp() * 1000)

    @property
    def label(self) -> str:
        return self.at.strftime("%H:%M:%S")


def _floor_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def schedule_entry(now: datetime, timeframe: Timeframe) -> EntrySlot:
    """Pick the candle the trade should be entered on.

    M1: floor to the minute, then add two (10:07:30 -> 10:09:00), giving one to
    two minutes of lead before the entry candle opens.
    M5: the next 5-minute boundary strictly after the current minute, seconds
    zeroed (10:07:30 -> 10:10:00, 10:05:10 -> 10:10:00).
    """
    if timeframe == Timeframe.M1:
        return EntrySlot(_floor_minute(now) + timedelta(minutes=M1_LEAD_MINUTES), "1 min")

    minutes = now.minute
    next_round = math.ceil((minutes + 1) / M5_BOUNDARY) * M5_BOUNDARY
    at = _floor_minute(now + timedelta(minutes=next_round - minutes))
    return EntrySlot(at, "5 min")
