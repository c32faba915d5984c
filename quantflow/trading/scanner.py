from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional, Protocol, Union

from quantflow.config import ScannerConfig
from quantflow.constants import MarketFilter, MarketType, ScanStatus
from quantflow.core.analyzer import SignalAnalyzer
from quantflow.core.models import ScanLog, ScanResult, Signal
from quantflow.market.assets import Instrument
from quantflow.utils.candle import Candle
from quantflow.utils.logger import log

REASON_MUTED = "Ativo silenciado pelo usuário"
REASON_MARKET = "Tipo de mercado filtrado"
REASON_NO_CONFLUENCE = "Sem confluência mínima"
REASON_REPEAT = "Sinal já enviado para este horário"

MutedAssets = Union[Iterable[str], Mapping[str, int]]


class MarketSource(Protocol):
    instruments: tuple

    def window(self, asset: str) -> Optional[tuple[list[Candle], MarketType]]: ...


@dataclass
class ScanSession:
    """State one client carries across scan cycles."""
    last_selected: Optional[tuple[str, int]] = None     # (asset, entry_timestamp)
    mutes: dict = field(default_factory=dict)           # asset -> expiry epoch ms

    def mute(self, asset: str, until_ms: int):
        self.mutes[asset] = until_ms

    def active_mutes(self, now_ms: int) -> set[str]:
        self.mutes = {a: exp for a, exp in self.mutes.items() if exp > now_ms}
        return set(self.mutes)

    def is_repeat(self, signal: Signal) -> bool:
        return self.last_selected == (signal.asset, signal.entry_timestamp)


def resolve_mutes(muted: Optional[MutedAssets], now_ms: int) -> set[str]:
    """Plain ids are muted as given; an {id: expiry_ms} mapping drops expired ones."""
    if not muted:
        return set()
    if isinstance(muted, Mapping):
        return {a for a, exp in muted.items() if exp is None or float(exp) > now_ms}
    return {str(a) for a in muted}


class Scanner:
    """Runs the analyzer over every instrument and keeps the single best signal."""

    def __init__(self, market: MarketSource, analyzer: SignalAnalyzer,
                 min_winrate: float = 90.0,
                 clock: Optional[Callable[[], datetime]] = None):
        self.market = market
        self.analyzer = analyzer
        self.min_winrate = min_winrate
        self.clock = clock or analyzer.clock

    def _log(self, logs: list, asset: str, status: ScanStatus, reason: Optional[str] = None):
        logs.append(ScanLog(self.clock().strftime("%H:%M:%S"), asset, status, reason))

    def _analyze(self, inst: Instrument, config: ScannerConfig) -> Optional[Signal]:
        snapshot = self.market.window(inst.name)
        if snapshot is None:
            return None
        candles, market_type = snapshot
        return self.analyzer.analyze(inst.name, candles, market_type, config)

    def scan(self, config: ScannerConfig, muted: Optional[MutedAssets] = None,
             session: Optional[ScanSession] = None) -> ScanResult:
        session = session if session is not None else ScanSession()
        now_ms = int(self.clock().timestamp() * 1000)
        muted_ids = resolve_mutes(muted, now_ms) | session.active_mutes(now_ms)

        logs: list[ScanLog] = []
        best: Optional[Signal] = None

        for inst in self.market.instruments:
            if inst.name in muted_ids:
                self._log(logs, inst.name, ScanStatus.DISCARDED, REASON_MUTED)
                continue

            if (config.market_type != MarketFilter.GERAL
                    and inst.market_type.value != config.market_type.value):
                self._log(logs, inst.name, ScanStatus.DISCARDED, REASON_MARKET)
                continue

            signal = self._analyze(inst, config)
            if signal is None:
                self._log(logs, inst.name, ScanStatus.DISCARDED, REASON_NO_CONFLUENCE)
                continue

            if signal.winrate < self.min_winrate:
                self._log(logs, inst.name, ScanStatus.DISCARDED,
                          f"Winrate insuficiente ({signal.winrate:.1f}%)")
                continue

            if session.is_repeat(signal):
                self._log(logs, inst.name, ScanStatus.DISCARDED, REASON_REPEAT)
                continue

            self._log(logs, inst.name, ScanStatus.ANALYZED)
            if best is None or signal.winrate > best.winrate:
                best = signal

        if best is not None:
            session.last_selected = (best.asset, best.entry_timestamp)
            self._log(logs, best.asset, ScanStatus.SELECTED)
            log.info("🎯 Scan %s/%s: %s %s @ %s  WR=%.1f%%  [%s]",
                     config.timeframe.value, config.market_type.value, best.asset,
                     best.direction.value, best.entry_time, best.winrate,
                     ", ".join(best.confluences))
        else:
            log.info("🔍 Scan %s/%s: no signal over %d instruments",
                     config.timeframe.value, config.market_type.value, len(self.market.instruments))

        return ScanResult(best_signal=best, logs=logs)
