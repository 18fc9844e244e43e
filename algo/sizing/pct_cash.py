"""按可用现金比例计算买入股数：floor(cash * pct / price)。"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PctCashSizer:
    cash_pct: float

    def __post_init__(self):
        if not 0 < self.cash_pct <= 1:
            raise ValueError("cash_pct must be in (0, 1]")

    def max_buy_qty(self, *, price: float, cash: float) -> int:
        if cash <= 0 or price <= 0:
            return 0
        return int(math.floor(cash * self.cash_pct / price))
