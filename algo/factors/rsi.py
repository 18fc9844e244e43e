"""RSI 因子（SMA 版本，只输出最新一根的标量）。"""

from __future__ import annotations

from typing import Sequence

import pandas as pd

RSI_NEUTRAL = 50.0
RSI_MAX = 100.0


def rsi(prices: Sequence[float], period: int) -> float:
    """相对强弱指数。

    先在全部历史上计算逐步涨跌，再对最近 `period` 个涨幅/跌幅取均值：
    `rsi = 100 - 100 / (1 + avg_gain / avg_loss)`。

    - 数据点少于 `period + 1` 时返回中性值 50；
    - avg_loss 为 0 时返回 100（避免除零）。
    """
    if period <= 0:
        raise ValueError("RSI period must be > 0")
    if len(prices) < period + 1:
        return RSI_NEUTRAL

    delta = pd.Series(prices, dtype="float64").diff().dropna()
    gain = delta.clip(lower=0.0)
    loss = (-delta).clip(lower=0.0)

    avg_gain = float(gain.tail(period).mean())
    avg_loss = float(loss.tail(period).mean())
    if avg_loss == 0:
        return RSI_MAX

    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))
