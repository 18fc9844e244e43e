"""MA 因子（SMA 标量版本）。"""

from __future__ import annotations

import math
from typing import Sequence

import pandas as pd


def sma(prices: Sequence[float], period: int) -> float:
    """最近 `period` 个价格的简单均值。

    数据不足 `period` 个时退化为“使用全部已有数据”的均值（弱保证，不报错），
    调用方需自行判断窗口是否充足；空序列返回 nan。
    """
    if period <= 0:
        raise ValueError("MA window must be > 0")
    if len(prices) == 0:
        return math.nan
    series = pd.Series(prices, dtype="float64")
    return float(series.tail(period).mean())
