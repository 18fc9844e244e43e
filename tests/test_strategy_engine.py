from __future__ import annotations

from datetime import datetime, timezone

import pytest

from algo.strategy.base import Strategy, StrategyContext
from broker.executor import TradeExecutor
from broker.ledger import PortfolioLedger
from engine.strategy_engine import StrategyEngine
from market.store import MarketDataStore
from shared.models.models import Order, Quote, StrategyDefinition, StrategyKind, TradeSide

TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


class _Recorder(Strategy):
    """每次评估都按固定数量买入，并记录看到的现金。"""

    kind = StrategyKind.MOVING_AVERAGE_CROSSOVER

    def __init__(self, definition, qty=10, seen=None):
        super().__init__(definition)
        self.qty = qty
        self.seen = seen if seen is not None else []

    def evaluate(self, ctx: StrategyContext) -> Order | None:
        self.seen.append((self.definition.id, ctx.symbol, ctx.cash))
        return Order(symbol=ctx.symbol, side=TradeSide.BUY, qty=self.qty, price=ctx.price, strategy=self.definition.name)


class _Boom(Strategy):
    kind = StrategyKind.RSI_MEAN_REVERSION

    def evaluate(self, ctx: StrategyContext) -> Order | None:
        if ctx.symbol == "AAPL":
            raise RuntimeError("boom")
        return None


def _defn(sid: str, kind=StrategyKind.MOVING_AVERAGE_CROSSOVER, active=True) -> StrategyDefinition:
    return StrategyDefinition(id=sid, name=f"s{sid}", kind=kind, is_active=active)


def _setup(symbols=("AAPL",), price=100.0):
    store = MarketDataStore(history_length=10)
    for s in symbols:
        store.append(s, TS, price, 1000)
    executor = TradeExecutor(PortfolioLedger(initial_cash=10000.0), clock=lambda: TS)
    quotes = {s: Quote(symbol=s, price=price, volume=1000) for s in symbols}
    return store, executor, quotes


def test_strategies_run_in_declaration_order_against_live_cash():
    seen: list = []
    engine = StrategyEngine([_Recorder(_defn("a"), seen=seen), _Recorder(_defn("b"), seen=seen)])
    store, executor, quotes = _setup()

    results = engine.evaluate(quotes, store, executor)

    assert [r.accepted for r in results] == [True, True]
    # 第二个策略看到第一个策略成交后的现金
    assert seen == [("a", "AAPL", 10000.0), ("b", "AAPL", 9000.0)]
    assert executor.ledger.cash == pytest.approx(8000.0)
    assert [t.strategy for t in executor.trades] == ["sb", "sa"]


def test_inactive_strategies_are_skipped_and_toggle_flips():
    seen: list = []
    engine = StrategyEngine([_Recorder(_defn("a", active=False), seen=seen)])
    store, executor, quotes = _setup()

    assert engine.evaluate(quotes, store, executor) == []
    assert seen == []

    updated = engine.toggle("a")
    assert updated.is_active is True
    assert len(engine.evaluate(quotes, store, executor)) == 1

    assert engine.toggle("a").is_active is False


def test_toggle_unknown_id_raises_key_error():
    engine = StrategyEngine([_Recorder(_defn("a"))])
    with pytest.raises(KeyError):
        engine.toggle("nope")


def test_failing_strategy_is_skipped_for_that_symbol_only():
    seen: list = []
    engine = StrategyEngine(
        [
            _Boom(_defn("x", kind=StrategyKind.RSI_MEAN_REVERSION)),
            _Recorder(_defn("y"), qty=1, seen=seen),
        ]
    )
    store, executor, quotes = _setup(symbols=("AAPL", "MSFT"))

    results = engine.evaluate(quotes, store, executor)

    assert len(results) == 2
    assert {sym for _, sym, _ in seen} == {"AAPL", "MSFT"}


def test_quote_without_history_is_skipped():
    seen: list = []
    engine = StrategyEngine([_Recorder(_defn("a"), seen=seen)])
    store, executor, quotes = _setup()
    quotes["ZZZ"] = Quote(symbol="ZZZ", price=5.0, volume=10)

    results = engine.evaluate(quotes, store, executor)

    assert len(results) == 1
    assert [sym for _, sym, _ in seen] == ["AAPL"]


def test_rejections_are_returned_but_do_not_stop_the_cycle():
    engine = StrategyEngine([_Recorder(_defn("a"), qty=200), _Recorder(_defn("b"), qty=1)])
    store, executor, quotes = _setup()

    results = engine.evaluate(quotes, store, executor)

    assert [r.accepted for r in results] == [False, True]
    assert executor.ledger.cash == pytest.approx(9900.0)
