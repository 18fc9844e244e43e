"""均线交叉策略。"""

from __future__ import annotations

from types import MappingProxyType

from algo.strategy.base import Strategy, StrategyContext
from shared.models.models import Order, StrategyKind


class MovingAverageCrossoverStrategy(Strategy):
    """快线在慢线之上且空仓时买入，快线跌破慢线且持仓时清仓。

    Parameters
    ----------
    fastPeriod / slowPeriod:
        仅用于展示；实际均线值来自行情存储的指标快照。
    """

    kind = StrategyKind.MOVING_AVERAGE_CROSSOVER
    default_params = MappingProxyType({"fastPeriod": 20, "slowPeriod": 50})
    buy_cash_pct = 0.10

    def evaluate(self, ctx: StrategyContext) -> Order | None:
        fast = ctx.market.indicators.sma_fast
        slow = ctx.market.indicators.sma_slow
        # 两条均线都满窗口后才交易
        if fast is None or slow is None:
            return None

        if fast > slow and ctx.position is None:
            return self._buy(ctx)
        if fast < slow and ctx.position is not None:
            return self._sell_all(ctx)
        return None
