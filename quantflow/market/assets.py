from dataclasses import dataclass

from quantflow.constants import MarketType

@dataclass(frozen=True)
class Instrument:
    name: str
    market_type: MarketType

def _catalog(real: tuple, otc: tuple) -> list[Instrument]:
    return ([Instrument(n, MarketType.REAL) for n in real]
            + [Instrument(n, MarketType.OTC) for n in otc])

# Scan order is catalog order: ties on winrate go to the first one listed.
ASSETS: tuple[Instrument, ...] = tuple(
    # --- forex ---
    _catalog(
        ("EURUSD", "GBPUSD", "USDJPY", "AUDUSD", "USDCAD",
         "EURJPY", "EURGBP", "GBPJPY", "AUDJPY", "NZDUSD"),
        ("EURUSD-OTC", "GBPUSD-OTC", "USDJPY-OTC", "AUDCAD-OTC", "EURGBP-OTC",
         "USDCHF-OTC", "NZDUSD-OTC", "AUDUSD-OTC", "GBPJPY-OTC", "EURJPY-OTC",
         "CADJPY-OTC", "CHFJPY-OTC", "AUDNZD-OTC", "EURCAD-OTC", "GBPCAD-OTC"),
    )
    # --- crypto ---
    + _catalog(
        ("BTCUSD", "ETHUSD", "SOLUSD", "XRPUSD", "ADAUSD", "DOGEUSD", "DOTUSD"),
        ("BTCUSD-OTC", "ETHUSD-OTC", "LTCUSD-OTC"),
    )
)
