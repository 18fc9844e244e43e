"""Broker 抽象接口。"""

from __future__ import annotations

from abc import ABC, abstractmethod

from shared.models.models import Order, Position, SubmitResult, Trade


class Broker(ABC):
    """交易执行抽象层。

    子类负责校验并结算订单，维护按时间倒序的成交记录。
    """

    trades: list[Trade]

    @abstractmethod
    def get_position(self, symbol: str) -> Position | None:
        """获取某个品种的当前持仓。"""

    @abstractmethod
    def submit(self, order: Order) -> SubmitResult:
        """校验并结算一笔订单；拒单以 SubmitResult 返回，不抛异常。"""
