"""策略抽象：读取行情/持仓上下文，输出 0 或 1 个订单。"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from algo.sizing.pct_cash import PctCashSizer
from market.store import MarketSnapshot
from shared.models.models import Order, OrderType, Position, Quote, StrategyDefinition, StrategyKind, TradeSide


@dataclass(frozen=True)
class StrategyContext:
    """单个 (strategy, symbol) 评估时看到的状态。"""

    quote: Quote
    market: MarketSnapshot
    position: Position | None
    cash: float

    @property
    def symbol(self) -> str:
        return self.quote.symbol

    @property
    def price(self) -> float:
        return float(self.quote.price)


class Strategy(ABC):
    """策略规则。

    规则实例持有其 `StrategyDefinition`，参数在每次评估时读取，
    因此运行期切换 `is_active` 不需要重建规则。
    """

    kind: StrategyKind
    default_params: Mapping[str, float] = MappingProxyType({})
    buy_cash_pct: float = 0.1

    def __init__(self, definition: StrategyDefinition):
        if definition.kind != self.kind:
            raise ValueError(f"{type(self).__name__} cannot run strategy of kind {definition.kind}")
        self.definition = definition
        self.sizer = PctCashSizer(cash_pct=self.buy_cash_pct)

    def param(self, name: str) -> float:
        if name in self.definition.params:
            return float(self.definition.params[name])
        return float(self.default_params[name])

    @abstractmethod
    def evaluate(self, ctx: StrategyContext) -> Order | None:
        """输入上下文，输出订单或 None。"""

    def _buy(self, ctx: StrategyContext) -> Order | None:
        qty = self.sizer.max_buy_qty(price=ctx.price, cash=ctx.cash)
        if qty <= 0:
            return None
        return Order(
            symbol=ctx.symbol,
            side=TradeSide.BUY,
            qty=qty,
            price=ctx.price,
            order_type=OrderType.MARKET,
            strategy=self.definition.name,
        )

    def _sell_all(self, ctx: StrategyContext) -> Order | None:
        if ctx.position is None or ctx.position.qty <= 0:
            return None
        return Order(
            symbol=ctx.symbol,
            side=TradeSide.SELL,
            qty=ctx.position.qty,
            price=ctx.price,
            order_type=OrderType.MARKET,
            strategy=self.definition.name,
        )
