from enum import Enum

class Direction(Enum):
    CALL = "CALL"
    PUT = "PUT"

class MarketType(Enum):
    REAL = "REAL"
    OTC = "OTC"

class MarketFilter(Enum):
    REAL = "REAL"
    OTC = "OTC"
    GERAL = "GERAL"     # every market

class Timeframe(Enum):
    M1 = "M1"
    M5 = "M5"

class Trend(Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"

class Fractal(Enum):
    TOP = "top"
    BOTTOM = "bottom"

class FeedbackResult(Enum):
    WIN = "win"
    LOSS = "loss"

class ScanStatus(Enum):
    ANALYZED = "analyzed"
    DISCARDED = "discarded"
    SELECTED = "selected"
