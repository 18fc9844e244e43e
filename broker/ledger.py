"""组合账本：现金 + 持仓，负责成交入账与盯市重估。

账本本身不做校验：`apply_fill` 假定前置条件（资金/持仓充足）已由
TradeExecutor 检查过，所有变更都必须经由 executor 进入。
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping

from shared.models.models import Portfolio, Position, Quote, Trade, TradeSide
from shared.utils.logging import setup_logger

DEFAULT_INITIAL_CASH = 100000.0


class PortfolioLedger:
    """单一持有者的账本实例。

    Parameters
    ----------
    initial_cash:
        初始资金，同时作为 total_pnl 的基准。
    """

    def __init__(self, initial_cash: float = DEFAULT_INITIAL_CASH):
        if initial_cash < 0:
            raise ValueError("initial_cash must be >= 0")
        self.logger = setup_logger("ledger")
        self.initial_cash = float(initial_cash)
        self.cash = float(initial_cash)
        self.positions: dict[str, Position] = {}
        self.realized_pnl = 0.0

    def get_position(self, symbol: str) -> Position | None:
        return self.positions.get(symbol)

    def apply_fill(self, trade: Trade) -> Position | None:
        """按成交方向更新现金与持仓，返回成交后的持仓（清仓时为 None）。"""
        notional = trade.qty * trade.price
        pos = self.positions.get(trade.symbol)

        if trade.side == TradeSide.BUY:
            self.cash -= notional
            if pos is None:
                pos = Position(symbol=trade.symbol, qty=trade.qty, avg_price=trade.price, current_price=trade.price)
                self.positions[trade.symbol] = pos
            else:
                new_qty = pos.qty + trade.qty
                pos.avg_price = (pos.qty * pos.avg_price + notional) / new_qty
                pos.qty = new_qty
            return pos

        # SELL：只减数量，不改均价
        assert pos is not None and pos.qty >= trade.qty, "SELL fill without sufficient position"
        self.cash += notional
        self.realized_pnl += (trade.price - pos.avg_price) * trade.qty
        pos.qty -= trade.qty
        if pos.qty == 0:
            del self.positions[trade.symbol]
            self.logger.info("Position %s closed", trade.symbol)
            return None
        return pos

    def revalue(self, quotes: Iterable[Quote] | Mapping[str, Quote]) -> Portfolio:
        """用最新报价重估持仓；没有报价的持仓保留旧估值。"""
        by_symbol = dict(quotes) if isinstance(quotes, Mapping) else {q.symbol: q for q in quotes}
        for symbol, pos in self.positions.items():
            quote = by_symbol.get(symbol)
            if quote is None:
                continue
            pos.current_price = float(quote.price)
        return self.snapshot()

    def snapshot(self) -> Portfolio:
        """深拷贝持仓，调用方拿到的快照不会随账本变化。"""
        return Portfolio(
            cash=self.cash,
            positions={s: replace(p) for s, p in self.positions.items()},
            initial_cash=self.initial_cash,
            realized_pnl=self.realized_pnl,
        )
