from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from engine.trading_engine import TradingEngine
from market.feed import FakeQuoteFeed
from shared.config.config_loader import AppConfig
from shared.models.models import OrderType, PricePoint, Quote, RejectReason, TradeSide

TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _engine(**overrides) -> TradingEngine:
    data = {"initial_cash": 100000.0, "tick_interval_secs": 0, "strategies": []}
    data.update(overrides)
    return TradingEngine(cfg_obj=AppConfig.model_validate(data), clock=lambda: TS)


def _quotes(**prices: float) -> list[Quote]:
    return [Quote(symbol=s, price=p, volume=1000) for s, p in prices.items()]


def test_market_order_fills_at_quote_price_and_revalues():
    eng = _engine()
    eng.tick(_quotes(AAPL=175.5, GOOGL=142.85), ts=TS)

    res = eng.place_order("AAPL", "buy", 10)

    assert res.accepted
    assert res.trade.price == 175.5
    assert res.trade.side == TradeSide.BUY
    snap = eng.portfolio()
    assert snap.cash == pytest.approx(98245.0)
    assert snap.positions["AAPL"].current_price == 175.5

    eng.tick(_quotes(AAPL=180.0, GOOGL=142.85), ts=TS + timedelta(seconds=2))
    snap = eng.portfolio()
    assert snap.positions["AAPL"].unrealized_pnl == pytest.approx(45.0)
    assert snap.day_pnl == pytest.approx(45.0)
    assert snap.total_pnl == pytest.approx(45.0)


def test_limit_order_fills_at_limit_price_without_quote():
    eng = _engine()
    assert eng.submit_order("MSFT", TradeSide.BUY, 5, OrderType.LIMIT, limit_price=370.0) is True
    [trade] = eng.trades()
    assert trade.price == 370.0
    assert trade.order_type == OrderType.LIMIT


def test_market_order_without_quote_is_unknown_symbol():
    eng = _engine()
    events = []
    eng.add_listener(events.append)

    res = eng.place_order("ZZZ", "BUY", 1)

    assert not res.accepted
    assert res.reason == RejectReason.UNKNOWN_SYMBOL
    assert eng.trades() == []
    assert [e.outcome for e in events] == ["REJECTED"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"order_type": "STOP"},
        {"order_type": "LIMIT", "limit_price": None},
        {"order_type": "LIMIT", "limit_price": -1.0},
    ],
)
def test_bad_order_parameters_are_validation_errors(kwargs):
    eng = _engine()
    eng.tick(_quotes(AAPL=100.0), ts=TS)
    res = eng.place_order("AAPL", "BUY", 1, **kwargs)
    assert not res.accepted
    assert res.reason == RejectReason.VALIDATION_ERROR
    assert eng.portfolio().cash == 100000.0


def test_sell_of_unheld_symbol_is_rejected():
    eng = _engine()
    eng.tick(_quotes(GOOGL=142.85), ts=TS)
    assert eng.submit_order("GOOGL", "SELL", 5) is False
    assert eng.portfolio().positions == {}


def test_accessors_return_copies():
    eng = _engine(strategies=None)
    eng.tick(_quotes(AAPL=100.0), ts=TS)

    defs = eng.strategies()
    defs[0].params["fastPeriod"] = 999
    assert eng.strategies()[0].params["fastPeriod"] == 20

    quotes = eng.quotes()
    quotes.clear()
    assert "AAPL" in eng.quotes()

    market = eng.market_data("AAPL")
    assert market.prices == [100.0]
    assert eng.market_data("NOPE").prices == []


def test_toggle_strategy_and_unknown_id():
    eng = _engine(strategies=None)
    assert eng.toggle_strategy("1").is_active is True
    assert [d.is_active for d in eng.strategies()] == [True, False, False]
    with pytest.raises(KeyError):
        eng.toggle_strategy("42")


def test_tick_replaces_quotes_wholesale():
    eng = _engine()
    eng.tick(_quotes(AAPL=100.0, MSFT=300.0), ts=TS)
    eng.tick(_quotes(AAPL=101.0), ts=TS)
    assert set(eng.quotes()) == {"AAPL"}
    assert eng.ticks == 2


def test_active_strategy_trades_after_warmup():
    eng = _engine(
        indicators={"sma_fast": 2, "sma_slow": 3, "rsi_period": 2},
        strategies=[{"id": "1", "kind": "MOVING_AVERAGE_CROSSOVER", "active": True}],
    )
    eng.warmup({"AAPL": [PricePoint(ts=TS, price=p, volume=1000) for p in (90.0, 95.0)]})

    results = eng.tick(_quotes(AAPL=100.0), ts=TS)

    # sma_fast = 97.5 > sma_slow = 95
    assert len(results) == 1 and results[0].accepted
    trade = results[0].trade
    assert trade.qty == 100
    assert trade.strategy == "MOVING_AVERAGE_CROSSOVER"
    assert eng.portfolio().cash == pytest.approx(90000.0)


def test_concurrent_ticks_and_manual_orders_keep_ledger_consistent():
    eng = _engine()
    eng.tick(_quotes(AAPL=100.0), ts=TS)

    def ticker():
        for i in range(200):
            eng.tick(_quotes(AAPL=100.0 + (i % 5)))

    def trader():
        for _ in range(50):
            eng.submit_order("AAPL", "BUY", 1)
            eng.submit_order("AAPL", "SELL", 1)

    threads = [threading.Thread(target=ticker)] + [threading.Thread(target=trader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    trades = eng.trades()
    flow = sum(t.notional if t.side == TradeSide.SELL else -t.notional for t in trades)
    held = sum(t.qty if t.side == TradeSide.BUY else -t.qty for t in trades)
    snap = eng.portfolio()
    assert snap.cash == pytest.approx(100000.0 + flow)
    assert held >= 0
    if held:
        assert snap.positions["AAPL"].qty == held
    else:
        assert "AAPL" not in snap.positions


def test_run_with_seeded_feed_stops_after_max_ticks():
    cfg = AppConfig.model_validate(
        {
            "symbols": ["AAPL", "MSFT"],
            "tick_interval_secs": 0,
            "feed": {"seed": 7, "warmup_points": 101},
            "strategies": [
                {"id": "1", "kind": "MOVING_AVERAGE_CROSSOVER", "active": True},
                {"id": "2", "kind": "RSI_MEAN_REVERSION", "active": True},
            ],
        }
    )
    eng = TradingEngine(cfg_obj=cfg, max_ticks=5)

    result = eng.run()

    summary = result.summary
    assert summary["ticks"] == 5
    assert isinstance(eng.feed, FakeQuoteFeed)
    # 历史有界：101 个回填点 + 5 个 tick，只保留 100 个
    assert len(eng.market_data("AAPL")) == 100
    assert summary["total_value"] == pytest.approx(
        summary["cash"] + sum(p["market_value"] for p in summary["positions"].values())
    )
    assert summary["trades"] == len(eng.trades())
    # 行情汇总来自存储的历史视图
    assert set(summary["market"]) == {"AAPL", "MSFT"}
    aapl = summary["market"]["AAPL"]
    assert aapl["points"] == 100
    assert aapl["last"] == eng.quotes()["AAPL"].price
    assert aapl["low"] <= aapl["last"] <= aapl["high"]


def test_run_uses_injected_feed():
    class _Feed:
        def stream(self):
            yield _quotes(AAPL=10.0)
            yield _quotes(AAPL=11.0)

    eng = TradingEngine(
        cfg_obj=AppConfig.model_validate({"tick_interval_secs": 0, "strategies": []}),
        feed=_Feed(),
    )
    summary = eng.run().summary
    assert summary["ticks"] == 2
    assert eng.quotes()["AAPL"].price == 11.0
    assert summary["market"]["AAPL"] == {"points": 2, "last": 11.0, "low": 10.0, "high": 11.0}
