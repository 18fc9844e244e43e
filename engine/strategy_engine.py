"""策略评估循环（Strategy → Executor）。

每个评估周期：按声明顺序遍历激活的策略，对每个有报价且有历史的 symbol
评估一次规则，至多产生一个订单并立即同步提交。后一个策略看到的是
前一个策略成交后的账本状态（不做批量/回滚）。
"""

from __future__ import annotations

from typing import Iterable, Mapping

from algo.strategy.base import Strategy, StrategyContext
from broker.executor import TradeExecutor
from market.store import MarketDataStore
from shared.models.models import Quote, StrategyDefinition, SubmitResult
from shared.utils.logging import setup_logger


class StrategyEngine:
    def __init__(self, strategies: Iterable[Strategy]):
        self.strategies: list[Strategy] = list(strategies)
        self.logger = setup_logger("strategy-engine")

    def definitions(self) -> list[StrategyDefinition]:
        return [s.definition for s in self.strategies]

    def toggle(self, strategy_id: str) -> StrategyDefinition:
        """切换某个策略的 is_active；未知 id 抛 KeyError。"""
        for strat in self.strategies:
            if strat.definition.id == strategy_id:
                strat.definition.is_active = not strat.definition.is_active
                self.logger.info(
                    "Strategy %s (%s) active=%s",
                    strategy_id,
                    strat.definition.name,
                    strat.definition.is_active,
                )
                return strat.definition
        raise KeyError(f"Unknown strategy id: {strategy_id}")

    def evaluate(
        self,
        quotes: Mapping[str, Quote],
        store: MarketDataStore,
        executor: TradeExecutor,
    ) -> list[SubmitResult]:
        """跑一个评估周期，返回本周期提交的订单结果。"""
        results: list[SubmitResult] = []
        for strat in self.strategies:
            if not strat.definition.is_active:
                continue
            for symbol, quote in quotes.items():
                if not store.has(symbol):
                    self.logger.warning("UNKNOWN_SYMBOL %s: quote without history, skip", symbol)
                    continue

                ctx = StrategyContext(
                    quote=quote,
                    market=store.get(symbol),
                    position=executor.get_position(symbol),
                    cash=executor.ledger.cash,
                )
                try:
                    order = strat.evaluate(ctx)
                except Exception:
                    self.logger.error(
                        "Strategy %s failed on %s, skip", strat.definition.name, symbol, exc_info=True
                    )
                    continue
                if order is None:
                    continue
                results.append(executor.submit(order))
        return results
