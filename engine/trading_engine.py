"""纸面交易引擎（TradingEngine）。

目标是“一眼能看懂”：配置 → 行情源 → 入库/重估/策略/结算 → 总结。

一个 tick（行情入库 + 重估 + 策略评估 + 结算）整体是一个临界区；
手动下单也走同一把锁，因此两者永远不会交错修改账本。
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from algo.factors.indicators import IndicatorWindows
from algo.strategy.registry import build_strategies
from broker.executor import TradeExecutor, TradeListener
from broker.ledger import PortfolioLedger
from engine.base_engine import BaseEngine, EngineResult
from engine.strategy_engine import StrategyEngine
from market.feed import FakeQuoteFeed
from market.store import MarketDataStore, MarketSnapshot
from shared.config.config_loader import AppConfig, load_config
from shared.models.models import (
    Order,
    OrderType,
    Portfolio,
    PricePoint,
    Quote,
    RejectReason,
    StrategyDefinition,
    SubmitResult,
    Trade,
    TradeSide,
)
from shared.utils.logging import setup_logger


class TradingEngine(BaseEngine):
    def __init__(
        self,
        *,
        cfg_path: str = "config/config.yml",
        cfg_obj: AppConfig | None = None,
        max_ticks: int | None = None,
        feed: Any = None,
        clock=None,
    ):
        self._cfg_path = cfg_path
        self._max_ticks = max_ticks
        self.cfg: AppConfig = cfg_obj or load_config(cfg_path)
        self.logger = setup_logger("engine")
        self.feed = feed
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        ind = self.cfg.indicators
        self.store = MarketDataStore(
            history_length=self.cfg.history_length,
            windows=IndicatorWindows(sma_fast=ind.sma_fast, sma_slow=ind.sma_slow, rsi_period=ind.rsi_period),
        )
        self.ledger = PortfolioLedger(initial_cash=self.cfg.initial_cash)
        self.executor = TradeExecutor(self.ledger, clock=self._clock)
        self.strategy_engine = StrategyEngine(build_strategies(self.cfg.strategies))

        self._quotes: dict[str, Quote] = {}
        self._lock = threading.RLock()
        self.ticks = 0

    # ---- feed 边界 ----

    def warmup(self, history: Mapping[str, Iterable[PricePoint]]) -> None:
        """载入回填历史（只入库，不评估策略）。"""
        with self._lock:
            for symbol, points in history.items():
                for p in points:
                    self.store.append(symbol, p.ts, p.price, p.volume)

    def tick(self, quotes: Iterable[Quote], ts: datetime | None = None) -> list[SubmitResult]:
        """处理一批报价：入库 → 重估 → 策略评估并同步结算 → 再次重估。"""
        with self._lock:
            now = ts or self._clock()
            # 报价整体替换
            self._quotes = {q.symbol: q for q in quotes}
            for quote in self._quotes.values():
                self.store.append(quote.symbol, now, quote.price, quote.volume)

            self.ledger.revalue(self._quotes)
            results = self.strategy_engine.evaluate(self._quotes, self.store, self.executor)
            if results:
                self.ledger.revalue(self._quotes)
            self.ticks += 1
            return results

    # ---- UI 边界 ----

    def submit_order(
        self,
        symbol: str,
        side: str | TradeSide,
        quantity: Any,
        order_type: str | OrderType = OrderType.MARKET,
        limit_price: float | None = None,
    ) -> bool:
        return self.place_order(symbol, side, quantity, order_type, limit_price).accepted

    def place_order(
        self,
        symbol: str,
        side: str | TradeSide,
        quantity: Any,
        order_type: str | OrderType = OrderType.MARKET,
        limit_price: float | None = None,
    ) -> SubmitResult:
        """手动下单：MARKET 按当前报价成交，LIMIT 按限价立即成交。"""
        with self._lock:
            side_val = str(getattr(side, "value", side)).upper()
            type_val = str(getattr(order_type, "value", order_type)).upper()
            quote = self._quotes.get(symbol)
            price = limit_price if type_val == OrderType.LIMIT.value else (quote.price if quote else None)
            order = Order(
                symbol=symbol,
                side=TradeSide(side_val) if side_val in TradeSide.__members__ else side_val,
                qty=quantity,
                price=price,
                order_type=OrderType(type_val) if type_val in OrderType.__members__ else OrderType.MARKET,
            )

            if type_val not in OrderType.__members__:
                return self.executor.reject(order, RejectReason.VALIDATION_ERROR, f"unsupported order type {order_type!r}")
            if type_val == OrderType.MARKET.value and quote is None:
                return self.executor.reject(order, RejectReason.UNKNOWN_SYMBOL, f"no quote for {symbol}")

            result = self.executor.submit(order)
            if result.accepted:
                self.ledger.revalue(self._quotes)
            return result

    def toggle_strategy(self, strategy_id: str) -> StrategyDefinition:
        with self._lock:
            return replace(self.strategy_engine.toggle(strategy_id))

    def add_listener(self, listener: TradeListener) -> None:
        self.executor.add_listener(listener)

    def portfolio(self) -> Portfolio:
        with self._lock:
            return self.ledger.snapshot()

    def trades(self) -> list[Trade]:
        with self._lock:
            return list(self.executor.trades)

    def strategies(self) -> list[StrategyDefinition]:
        with self._lock:
            return [replace(d, params=dict(d.params)) for d in self.strategy_engine.definitions()]

    def market_data(self, symbol: str) -> MarketSnapshot:
        with self._lock:
            return self.store.get(symbol)

    def quotes(self) -> dict[str, Quote]:
        with self._lock:
            return dict(self._quotes)

    # ---- 主循环 ----

    def run(self) -> EngineResult:
        feed = self.feed or FakeQuoteFeed(
            self.cfg.symbols,
            seed=self.cfg.feed.seed,
            volatility=self.cfg.feed.volatility,
            logger=self.logger,
        )
        self.feed = feed
        if self.cfg.feed.warmup_points > 0 and hasattr(feed, "warmup"):
            self.warmup(feed.warmup(self.cfg.feed.warmup_points))

        active = [d.name for d in self.strategy_engine.definitions() if d.is_active]
        self.logger.info(
            "Engine start: symbols=%s cash=%.2f active_strategies=%s",
            self.cfg.symbols,
            self.ledger.cash,
            active,
        )
        self.run_loop(
            source=feed.stream(),
            on_tick=self._on_tick,
            max_events=self._max_ticks,
            interval_secs=self.cfg.tick_interval_secs,
            logger=self.logger,
        )
        return EngineResult(summary=self._build_summary())

    def _on_tick(self, quotes: list[Quote]) -> None:
        results = self.tick(quotes)
        for res in results:
            self.logger.info("Order result: %s", res)
        snap = self.portfolio()
        self.logger.info(
            "Tick %s | cash=%.2f total=%.2f day_pnl=%.2f total_pnl=%.2f positions=%s",
            self.ticks,
            snap.cash,
            snap.total_value,
            snap.day_pnl,
            snap.total_pnl,
            len(snap.positions),
        )

    def _build_summary(self) -> dict[str, Any]:
        snap = self.portfolio()
        with self._lock:
            market = {}
            for symbol in self.store.symbols():
                prices = self.store.frame(symbol)["price"]
                market[symbol] = {
                    "points": len(prices),
                    "last": self.store.get(symbol).last_price,
                    "low": float(prices.min()),
                    "high": float(prices.max()),
                }
        return {
            "ticks": self.ticks,
            "cash": snap.cash,
            "total_value": snap.total_value,
            "day_pnl": snap.day_pnl,
            "total_pnl": snap.total_pnl,
            "realized_pnl": snap.realized_pnl,
            "positions": {
                s: {
                    "qty": p.qty,
                    "avg_price": p.avg_price,
                    "current_price": p.current_price,
                    "market_value": p.market_value,
                    "unrealized_pnl": p.unrealized_pnl,
                }
                for s, p in snap.positions.items()
            },
            "trades": len(self.executor.trades),
            "market": market,
        }
