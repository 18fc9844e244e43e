"""放量突破策略（只做多，无卖出规则）。"""

from __future__ import annotations

from types import MappingProxyType

from algo.strategy.base import Strategy, StrategyContext
from shared.models.models import Order, StrategyKind

VOLUME_WINDOW = 20


class VolumeBreakoutStrategy(Strategy):
    """
    逻辑:
    1. 最新成交量 > 最近 20 个点的平均成交量 * volumeMultiplier
    2. |changePercent / 100| > priceThreshold 且涨幅为正
    3. 空仓时买入 8% 现金

    Params:
    - volumeMultiplier: 放量倍数 (default 2)
    - priceThreshold: 涨跌幅阈值，小数 (default 0.02)
    """

    kind = StrategyKind.VOLUME_BREAKOUT
    default_params = MappingProxyType({"volumeMultiplier": 2, "priceThreshold": 0.02})
    buy_cash_pct = 0.08

    def evaluate(self, ctx: StrategyContext) -> Order | None:
        volumes = ctx.market.volumes
        if len(volumes) < VOLUME_WINDOW or ctx.position is not None:
            return None

        recent = volumes[-VOLUME_WINDOW:]
        avg_volume = sum(recent) / len(recent)
        current_volume = ctx.market.last_volume
        change_pct = ctx.quote.change_percent

        if (
            current_volume > avg_volume * self.param("volumeMultiplier")
            and abs(change_pct / 100) > self.param("priceThreshold")
            and change_pct > 0
        ):
            return self._buy(ctx)
        return None
