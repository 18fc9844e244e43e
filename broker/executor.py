"""订单执行器：校验 → 结算 → 记录 → 通知。

所有账本变更只能经由 `TradeExecutor.submit`，其内部由互斥锁串行化，
保证“读取现金/持仓 → 校验 → 入账”是一个原子步骤。
"""

from __future__ import annotations

import itertools
import math
import threading
from datetime import datetime, timezone
from numbers import Integral, Real
from typing import Any, Callable

from broker.abstract_broker import Broker
from broker.ledger import PortfolioLedger
from shared.models.models import (
    Order,
    Position,
    RejectReason,
    SubmitResult,
    Trade,
    TradeEvent,
    TradeSide,
    TradeStatus,
)
from shared.utils.logging import setup_logger

TradeListener = Callable[[TradeEvent], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Integral):
        return int(value) if value > 0 else None
    if isinstance(value, Real) and math.isfinite(value) and float(value).is_integer() and value > 0:
        return int(value)
    return None


def _as_positive_price(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    price = float(value)
    if not math.isfinite(price) or price <= 0:
        return None
    return price


class TradeExecutor(Broker):
    """纸面成交执行器。

    Parameters
    ----------
    ledger:
        唯一持有的账本实例。
    clock:
        时间源，便于测试注入。
    """

    def __init__(self, ledger: PortfolioLedger, *, clock: Callable[[], datetime] | None = None):
        self.ledger = ledger
        self.logger = setup_logger("executor")
        self.trades: list[Trade] = []
        self._clock = clock or _utcnow
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._listeners: list[TradeListener] = []

    def add_listener(self, listener: TradeListener) -> None:
        self._listeners.append(listener)

    def get_position(self, symbol: str) -> Position | None:
        return self.ledger.get_position(symbol)

    def submit(self, order: Order) -> SubmitResult:
        with self._lock:
            result = self._validate_and_settle(order)

        if result.accepted:
            assert result.trade is not None
            self._emit(
                TradeEvent(
                    outcome=TradeStatus.EXECUTED.value,
                    symbol=result.trade.symbol,
                    side=result.trade.side,
                    qty=result.trade.qty,
                    price=result.trade.price,
                    strategy=result.trade.strategy,
                )
            )
        else:
            self._emit(self._rejected_event(order, result))
        return result

    def reject(self, order: Order, reason: RejectReason, message: str) -> SubmitResult:
        """供上层（如缺少报价）直接拒单：记录日志并发出通知，不触碰账本。"""
        result = self._reject(order, reason, message)
        self._emit(self._rejected_event(order, result))
        return result

    def _validate_and_settle(self, order: Order) -> SubmitResult:
        qty = _as_positive_int(order.qty)
        if qty is None:
            return self._reject(order, RejectReason.VALIDATION_ERROR, f"quantity must be a positive integer, got {order.qty!r}")

        price = _as_positive_price(order.price)
        if price is None:
            return self._reject(order, RejectReason.VALIDATION_ERROR, f"price must be positive, got {order.price!r}")

        try:
            side = TradeSide(order.side)
        except ValueError:
            return self._reject(order, RejectReason.VALIDATION_ERROR, f"unsupported side {order.side!r}")

        if side == TradeSide.BUY:
            cost = qty * price
            if cost > self.ledger.cash:
                return self._reject(
                    order,
                    RejectReason.INSUFFICIENT_FUNDS,
                    f"cost {cost:.2f} exceeds cash {self.ledger.cash:.2f}",
                )
        else:
            pos = self.ledger.get_position(order.symbol)
            held = pos.qty if pos else 0
            if held < qty:
                return self._reject(
                    order,
                    RejectReason.INSUFFICIENT_POSITION,
                    f"sell qty {qty} exceeds held qty {held}",
                )

        trade = Trade(
            id=str(next(self._ids)),
            symbol=order.symbol,
            side=side,
            qty=qty,
            price=price,
            ts=self._clock(),
            status=TradeStatus.EXECUTED,
            order_type=order.order_type,
            strategy=order.strategy,
        )
        self.ledger.apply_fill(trade)
        self.trades.insert(0, trade)
        self.logger.info(
            "[FILL] %s %s qty=%s price=%.2f strategy=%s cash=%.2f",
            trade.side.value,
            trade.symbol,
            trade.qty,
            trade.price,
            trade.strategy or "manual",
            self.ledger.cash,
        )
        return SubmitResult(accepted=True, trade=trade)

    def _reject(self, order: Order, reason: RejectReason, message: str) -> SubmitResult:
        side = getattr(order.side, "value", order.side)
        self.logger.warning("[REJECT] %s %s: %s (%s)", side, order.symbol, reason.value, message)
        return SubmitResult(accepted=False, reason=reason, message=message)

    def _emit(self, event: TradeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                self.logger.error("Trade listener failed for %s", event, exc_info=True)

    @staticmethod
    def _rejected_event(order: Order, result: SubmitResult) -> TradeEvent:
        return TradeEvent(
            outcome="REJECTED",
            symbol=order.symbol,
            side=order.side,
            qty=order.qty,
            price=order.price,
            reason=result.reason,
            message=result.message,
            strategy=order.strategy,
        )
