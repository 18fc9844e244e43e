"""核心数据结构：Quote/PricePoint/Position/Portfolio/Trade/StrategyDefinition。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class TradeStatus(str, Enum):
    """成交状态。当前流程只会产生 EXECUTED，其余为保留状态。"""

    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"


class RejectReason(str, Enum):
    """订单拒绝原因（均为可恢复的本地拒单，不抛异常）。"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INSUFFICIENT_POSITION = "INSUFFICIENT_POSITION"
    UNKNOWN_SYMBOL = "UNKNOWN_SYMBOL"


class StrategyKind(str, Enum):
    """策略行为类型；与展示名称解耦，evaluate 按 kind 分派。"""

    MOVING_AVERAGE_CROSSOVER = "MOVING_AVERAGE_CROSSOVER"
    RSI_MEAN_REVERSION = "RSI_MEAN_REVERSION"
    VOLUME_BREAKOUT = "VOLUME_BREAKOUT"


@dataclass(frozen=True)
class Quote:
    """行情快照（每个 tick 整体替换，不做字段级合并）。"""

    symbol: str
    price: float
    volume: float
    change: float = 0.0
    change_percent: float = 0.0
    day_high: float = 0.0
    day_low: float = 0.0
    week52_high: float = 0.0
    week52_low: float = 0.0
    name: str | None = None


@dataclass(frozen=True)
class PricePoint:
    ts: datetime
    price: float
    volume: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """最新一根的指标标量；窗口不足时为 None。"""

    sma_fast: float | None = None
    sma_slow: float | None = None
    rsi: float | None = None


@dataclass
class Position:
    """持仓。avg_price 只在 BUY 成交时变化。"""

    symbol: str
    qty: int
    avg_price: float
    current_price: float

    @property
    def cost_basis(self) -> float:
        return self.qty * self.avg_price

    @property
    def market_value(self) -> float:
        return self.qty * self.current_price

    @property
    def unrealized_pnl(self) -> float:
        return self.market_value - self.cost_basis

    @property
    def unrealized_pnl_percent(self) -> float:
        basis = self.cost_basis
        return (self.unrealized_pnl / basis) * 100 if basis else 0.0


@dataclass(frozen=True)
class Portfolio:
    """账户快照。total_value/day_pnl 由 cash 与持仓即时推导，不单独存储。"""

    cash: float
    positions: dict[str, Position]
    initial_cash: float
    realized_pnl: float = 0.0

    @property
    def total_value(self) -> float:
        return self.cash + sum(p.market_value for p in self.positions.values())

    @property
    def day_pnl(self) -> float:
        # 实为“全部持仓的未实现盈亏之和”，不区分日内
        return sum(p.unrealized_pnl for p in self.positions.values())

    @property
    def total_pnl(self) -> float:
        return self.total_value - self.initial_cash


@dataclass(frozen=True)
class Order:
    """下单请求（手动或策略产生）。"""

    symbol: str
    side: TradeSide
    qty: Any
    price: Any
    order_type: OrderType = OrderType.MARKET
    strategy: str | None = None


@dataclass(frozen=True)
class Trade:
    """已成交记录，创建后不可变。"""

    id: str
    symbol: str
    side: TradeSide
    qty: int
    price: float
    ts: datetime
    status: TradeStatus = TradeStatus.EXECUTED
    order_type: OrderType = OrderType.MARKET
    strategy: str | None = None

    @property
    def notional(self) -> float:
        return self.qty * self.price


@dataclass(frozen=True)
class SubmitResult:
    accepted: bool
    trade: Trade | None = None
    reason: RejectReason | None = None
    message: str | None = None


@dataclass(frozen=True)
class TradeEvent:
    """通知层消费的结构化事件（成交或拒单）。"""

    outcome: str  # "EXECUTED" / "REJECTED"
    symbol: str
    side: TradeSide
    qty: Any
    price: Any
    reason: RejectReason | None = None
    message: str | None = None
    strategy: str | None = None


@dataclass
class StrategyDefinition:
    """策略定义。集合在引擎启动时固定，运行期只允许切换 is_active。"""

    id: str
    name: str
    kind: StrategyKind
    description: str = ""
    is_active: bool = False
    params: dict[str, float] = field(default_factory=dict)
