from quantflow.config import ScannerConfig
from quantflow.constants import MarketFilter, MarketType, ScanStatus, Timeframe
from quantflow.core.analyzer import SignalAnalyzer
from quantflow.market.assets import Instrument
from quantflow.trading.scanner import (
    REASON_MARKET, REASON_MUTED, REASON_NO_CONFLUENCE, REASON_REPEAT,
    ScanSession, Scanner, resolve_mutes,
)

from conftest import (
    SCAN_TIME, FakeMarket, FixedRandom, StubAnalyzer, fixed_clock, flat, make_signal, rising,
)

GERAL = ScannerConfig()
NOW_MS = int(SCAN_TIME.timestamp() * 1000)


def scanner_with(instruments, signals):
    return Scanner(FakeMarket(instruments), StubAnalyzer(signals))


def by_asset(result):
    return {(e.asset, e.status): e for e in result.logs}


def test_selects_highest_winrate(instruments):
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 91), "BBB": make_signal("BBB", 95)})
    result = scanner.scan(GERAL)
    assert result.best_signal.asset == "BBB"
    assert [(e.asset, e.status) for e in result.logs] == [
        ("AAA", ScanStatus.ANALYZED),
        ("BBB", ScanStatus.ANALYZED),
        ("CCC-OTC", ScanStatus.DISCARDED),
        ("BBB", ScanStatus.SELECTED),
    ]
    assert result.logs[2].reason == REASON_NO_CONFLUENCE


def test_muted_asset_is_skipped(instruments):
    stub = StubAnalyzer({"AAA": make_signal("AAA", 91), "BBB": make_signal("BBB", 95)})
    scanner = Scanner(FakeMarket(instruments), stub)
    result = scanner.scan(GERAL, muted=["BBB"])
    assert result.best_signal.asset == "AAA"
    assert by_asset(result)[("BBB", ScanStatus.DISCARDED)].reason == REASON_MUTED
    assert "BBB" not in stub.calls


def test_first_seen_wins_ties(instruments):
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 93), "BBB": make_signal("BBB", 93)})
    assert scanner.scan(GERAL).best_signal.asset == "AAA"


def test_low_winrate_discarded_with_score(instruments):
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 89.96)})
    result = scanner.scan(GERAL)
    assert result.best_signal is None
    assert by_asset(result)[("AAA", ScanStatus.DISCARDED)].reason == "Winrate insuficiente (90.0%)"
    assert all(e.status != ScanStatus.SELECTED for e in result.logs)


def test_market_type_filter(instruments):
    stub = StubAnalyzer({"AAA": make_signal("AAA", 99), "CCC-OTC": make_signal("CCC-OTC", 92)})
    scanner = Scanner(FakeMarket(instruments), stub)
    result = scanner.scan(ScannerConfig(market_type=MarketFilter.OTC))
    assert result.best_signal.asset == "CCC-OTC"
    logs = by_asset(result)
    assert logs[("AAA", ScanStatus.DISCARDED)].reason == REASON_MARKET
    assert logs[("BBB", ScanStatus.DISCARDED)].reason == REASON_MARKET
    assert stub.calls == ["CCC-OTC"]


def test_one_log_per_instrument_in_order(instruments):
    result = scanner_with(instruments, {}).scan(GERAL)
    assert [e.asset for e in result.logs] == ["AAA", "BBB", "CCC-OTC"]
    assert all(e.time == "10:07:30" for e in result.logs)


def test_repeat_slot_suppressed_next_cycle(instruments):
    session = ScanSession()
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 95, entry_ts=5000)})

    first = scanner.scan(GERAL, session=session)
    assert first.best_signal.asset == "AAA"
    assert session.last_selected == ("AAA", 5000)

    second = scanner.scan(GERAL, session=session)
    assert second.best_signal is None
    assert by_asset(second)[("AAA", ScanStatus.DISCARDED)].reason == REASON_REPEAT
    # memory only changes on a new selection
    assert session.last_selected == ("AAA", 5000)


def test_repeat_only_blocks_same_slot(instruments):
    session = ScanSession(last_selected=("AAA", 5000))
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 95, entry_ts=6000)})
    assert scanner.scan(GERAL, session=session).best_signal.asset == "AAA"
    assert session.last_selected == ("AAA", 6000)


def test_repeat_falls_through_to_runner_up(instruments):
    session = ScanSession(last_selected=("BBB", 5000))
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 91, entry_ts=5000),
                                         "BBB": make_signal("BBB", 97, entry_ts=5000)})
    assert scanner.scan(GERAL, session=session).best_signal.asset == "AAA"


def test_sessions_are_independent(instruments):
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 95, entry_ts=5000)})
    a, b = ScanSession(), ScanSession()
    assert scanner.scan(GERAL, session=a).best_signal is not None
    assert scanner.scan(GERAL, session=b).best_signal is not None


def test_session_mutes_expire(instruments):
    session = ScanSession()
    session.mute("BBB", NOW_MS + 60_000)
    session.mute("AAA", NOW_MS - 1)
    scanner = scanner_with(instruments, {"AAA": make_signal("AAA", 91), "BBB": make_signal("BBB", 95)})
    result = scanner.scan(GERAL, session=session)
    assert result.best_signal.asset == "AAA"
    assert session.mutes == {"BBB": NOW_MS + 60_000}


def test_resolve_mutes_accepts_list_or_expiry_map():
    assert resolve_mutes(["A", "B"], 100) == {"A", "B"}
    assert resolve_mutes({"A": 200, "B": 50}, 100) == {"A"}
    assert resolve_mutes(None, 100) == set()


def test_unknown_instrument_window_is_no_signal():
    class Missing(FakeMarket):
        def window(self, asset):
            return None

    stub = StubAnalyzer({"ZZZ": make_signal("ZZZ", 99)})
    result = Scanner(Missing([Instrument("ZZZ", MarketType.REAL)]), stub).scan(GERAL)
    assert result.best_signal is None
    assert result.logs[0].reason == REASON_NO_CONFLUENCE
    assert stub.calls == []


def test_end_to_end_with_real_analyzer(store):
    instruments = [Instrument("UP", MarketType.REAL), Instrument("FLAT", MarketType.REAL)]
    market = FakeMarket(instruments, {"UP": rising(), "FLAT": flat()})
    analyzer = SignalAnalyzer(store, rng=FixedRandom(2.5), clock=fixed_clock())
    result = Scanner(market, analyzer).scan(ScannerConfig(timeframe=Timeframe.M5))
    assert result.best_signal.asset == "UP"
    assert result.best_signal.winrate == 92.5
    assert result.best_signal.entry_time == "10:10:00"
    assert [(e.asset, e.status) for e in result.logs] == [
        ("UP", ScanStatus.ANALYZED),
        ("FLAT", ScanStatus.DISCARDED),
        ("UP", ScanStatus.SELECTED),
    ]
