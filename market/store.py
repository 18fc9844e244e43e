"""行情历史存储：按 symbol 维护有界滚动窗口与最新指标快照。"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque

import pandas as pd

from algo.factors.indicators import IndicatorWindows, compute_snapshot
from shared.models.models import IndicatorSnapshot, PricePoint
from shared.utils.logging import setup_logger

DEFAULT_HISTORY_LENGTH = 100


@dataclass(frozen=True)
class MarketSnapshot:
    """某个 symbol 的历史 + 指标（只读视图）。"""

    symbol: str
    timestamps: list[datetime] = field(default_factory=list)
    prices: list[float] = field(default_factory=list)
    volumes: list[float] = field(default_factory=list)
    indicators: IndicatorSnapshot = field(default_factory=IndicatorSnapshot)

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def last_price(self) -> float | None:
        return self.prices[-1] if self.prices else None

    @property
    def last_volume(self) -> float | None:
        return self.volumes[-1] if self.volumes else None


class MarketDataStore:
    """有界环形缓冲的行情历史。

    Parameters
    ----------
    history_length:
        每个 symbol 保留的最大点数，超出后从头部 FIFO 淘汰。
    windows:
        指标窗口（fast/slow SMA 与 RSI 周期）。
    """

    def __init__(self, history_length: int = DEFAULT_HISTORY_LENGTH, windows: IndicatorWindows | None = None):
        if history_length <= 0:
            raise ValueError("history_length must be > 0")
        self.history_length = history_length
        self.windows = windows or IndicatorWindows()
        self.logger = setup_logger("market-store")
        self._history: dict[str, Deque[PricePoint]] = {}
        self._indicators: dict[str, IndicatorSnapshot] = {}

    def append(self, symbol: str, ts: datetime, price: float, volume: float) -> IndicatorSnapshot:
        """追加一个点并重算该 symbol 的最新指标。"""
        history = self._history.get(symbol)
        if history is None:
            history = deque(maxlen=self.history_length)
            self._history[symbol] = history
        history.append(PricePoint(ts=ts, price=float(price), volume=float(volume)))

        snapshot = compute_snapshot([p.price for p in history], self.windows)
        self._indicators[symbol] = snapshot
        return snapshot

    def get(self, symbol: str) -> MarketSnapshot:
        """返回当前快照；未知 symbol 返回空历史快照而不是报错。"""
        history = self._history.get(symbol)
        if not history:
            return MarketSnapshot(symbol=symbol)
        return MarketSnapshot(
            symbol=symbol,
            timestamps=[p.ts for p in history],
            prices=[p.price for p in history],
            volumes=[p.volume for p in history],
            indicators=self._indicators.get(symbol, IndicatorSnapshot()),
        )

    def has(self, symbol: str) -> bool:
        return bool(self._history.get(symbol))

    def symbols(self) -> list[str]:
        return [s for s, h in self._history.items() if h]

    def frame(self, symbol: str) -> pd.DataFrame:
        """历史的 DataFrame 视图（ts/price/volume），供回放/画图使用。"""
        history = self._history.get(symbol) or ()
        return pd.DataFrame(
            [{"ts": p.ts, "price": p.price, "volume": p.volume} for p in history],
            columns=["ts", "price", "volume"],
        )
