"""指标快照：按固定窗口把价格序列折算成 IndicatorSnapshot。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from algo.factors.ma import sma
from algo.factors.rsi import rsi
from shared.models.models import IndicatorSnapshot


@dataclass(frozen=True)
class IndicatorWindows:
    sma_fast: int = 20
    sma_slow: int = 50
    rsi_period: int = 14

    def __post_init__(self):
        if self.sma_fast <= 0 or self.sma_slow <= 0:
            raise ValueError("MA window must be > 0")
        if self.rsi_period <= 0:
            raise ValueError("RSI period must be > 0")
        if self.sma_fast >= self.sma_slow:
            raise ValueError("sma_fast must be less than sma_slow")


def compute_snapshot(prices: Sequence[float], windows: IndicatorWindows) -> IndicatorSnapshot:
    """窗口不足的指标置为 None，避免策略基于退化值提前交易。"""
    n = len(prices)
    return IndicatorSnapshot(
        sma_fast=sma(prices, windows.sma_fast) if n >= windows.sma_fast else None,
        sma_slow=sma(prices, windows.sma_slow) if n >= windows.sma_slow else None,
        rsi=rsi(prices, windows.rsi_period) if n >= windows.rsi_period + 1 else None,
    )
