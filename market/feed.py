"""本地模拟行情源（随机游走），便于离线运行引擎。"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator

import numpy as np

from shared.models.models import PricePoint, Quote
from shared.utils.logging import setup_logger

MIN_PRICE = 0.01


@dataclass(frozen=True)
class SeedQuote:
    symbol: str
    name: str
    price: float
    volume: float
    day_high: float
    day_low: float
    week52_high: float
    week52_low: float


DEFAULT_UNIVERSE: dict[str, SeedQuote] = {
    "AAPL": SeedQuote("AAPL", "Apple Inc.", 175.50, 45232000, 177.20, 174.10, 198.23, 124.17),
    "GOOGL": SeedQuote("GOOGL", "Alphabet Inc.", 142.85, 28445000, 144.50, 141.90, 151.55, 83.34),
    "MSFT": SeedQuote("MSFT", "Microsoft Corporation", 378.25, 32156000, 380.15, 375.80, 384.30, 213.43),
    "TSLA": SeedQuote("TSLA", "Tesla Inc.", 248.75, 89234000, 258.40, 245.20, 299.29, 138.80),
    "NVDA": SeedQuote("NVDA", "NVIDIA Corporation", 875.30, 67123000, 882.50, 868.90, 950.02, 180.96),
}


class FakeQuoteFeed:
    """随机游走报价源。

    Parameters
    ----------
    symbols:
        需要生成报价的品种；不在内置列表里的品种以 100.0 起步。
    seed:
        随机种子，固定后输出可复现。
    volatility:
        每个 tick 的最大相对波动（0.005 即 ±0.5%）。
    """

    def __init__(
        self,
        symbols: Iterable[str],
        *,
        seed: int | None = None,
        volatility: float = 0.005,
        logger=None,
    ):
        self.symbols = list(symbols)
        if not self.symbols:
            raise ValueError("FakeQuoteFeed requires at least one symbol")
        self.volatility = float(volatility)
        self.logger = logger or setup_logger("feed")
        self._rng = np.random.default_rng(seed)
        self._quotes: dict[str, Quote] = {s: self._seed_quote(s) for s in self.symbols}

    @staticmethod
    def _seed_quote(symbol: str) -> Quote:
        seed = DEFAULT_UNIVERSE.get(symbol)
        if seed is None:
            return Quote(symbol=symbol, price=100.0, volume=1000000, day_high=100.0, day_low=100.0)
        return Quote(
            symbol=seed.symbol,
            name=seed.name,
            price=seed.price,
            volume=seed.volume,
            day_high=seed.day_high,
            day_low=seed.day_low,
            week52_high=seed.week52_high,
            week52_low=seed.week52_low,
        )

    def _step_price(self, price: float, volatility: float) -> float:
        change = (self._rng.random() - 0.5) * 2 * volatility * price
        return max(MIN_PRICE, price + change)

    def _random_volume(self) -> float:
        return float(self._rng.integers(100000, 1100000))

    def warmup(self, points: int = 101, *, now: datetime | None = None) -> dict[str, list[PricePoint]]:
        """为每个品种回填按分钟间隔的历史点，并把当前报价对齐到最后一个点。"""
        now = now or datetime.now(timezone.utc)
        history: dict[str, list[PricePoint]] = {}
        for symbol in self.symbols:
            price = self._quotes[symbol].price
            rows: list[PricePoint] = []
            for i in range(points - 1, -1, -1):
                price = self._step_price(price, 0.01)
                rows.append(PricePoint(ts=now - timedelta(minutes=i), price=price, volume=self._random_volume()))
            history[symbol] = rows
            self._quotes[symbol] = replace(self._quotes[symbol], price=price)
        self.logger.info("Warmup history generated: %s x %s points", len(self.symbols), points)
        return history

    def next_quotes(self) -> list[Quote]:
        """推进一个 tick，返回整批新报价。"""
        out: list[Quote] = []
        for symbol in self.symbols:
            prev = self._quotes[symbol]
            price = self._step_price(prev.price, self.volatility)
            change = price - prev.price
            quote = Quote(
                symbol=symbol,
                name=prev.name,
                price=price,
                volume=self._random_volume(),
                change=change,
                change_percent=(change / prev.price) * 100,
                day_high=max(prev.day_high, price),
                day_low=min(prev.day_low, price) if prev.day_low else price,
                week52_high=max(prev.week52_high, price),
                week52_low=min(prev.week52_low, price) if prev.week52_low else price,
            )
            self._quotes[symbol] = quote
            out.append(quote)
        return out

    def stream(self) -> Iterator[list[Quote]]:
        while True:
            yield self.next_quotes()
