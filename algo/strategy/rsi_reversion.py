"""RSI 均值回归策略。"""

from __future__ import annotations

from types import MappingProxyType

from algo.strategy.base import Strategy, StrategyContext
from shared.models.models import Order, StrategyKind


class RSIMeanReversionStrategy(Strategy):
    """超卖买入、超买清仓。"""

    kind = StrategyKind.RSI_MEAN_REVERSION
    default_params = MappingProxyType({"oversoldLevel": 30, "overboughtLevel": 70})
    buy_cash_pct = 0.05

    def evaluate(self, ctx: StrategyContext) -> Order | None:
        value = ctx.market.indicators.rsi
        if value is None:
            return None

        if value < self.param("oversoldLevel") and ctx.position is None:
            return self._buy(ctx)
        if value > self.param("overboughtLevel") and ctx.position is not None:
            return self._sell_all(ctx)
        return None
