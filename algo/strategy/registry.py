"""策略注册表：StrategyKind -> Strategy 实现。

按 kind 分派，展示名称可随意修改而不影响行为。
"""

from __future__ import annotations

from typing import Any, Iterable

from algo.strategy.base import Strategy
from algo.strategy.ma_crossover import MovingAverageCrossoverStrategy
from algo.strategy.rsi_reversion import RSIMeanReversionStrategy
from algo.strategy.volume_breakout import VolumeBreakoutStrategy
from shared.models.models import StrategyDefinition, StrategyKind

_REGISTRY: dict[StrategyKind, type[Strategy]] = {}


def register_strategy(kind: StrategyKind, cls: type[Strategy]) -> None:
    _REGISTRY[kind] = cls


def get_strategy_cls(kind: StrategyKind | str) -> type[Strategy]:
    try:
        key = StrategyKind(kind)
    except ValueError as exc:
        raise ValueError(f"Unknown strategy kind: {kind}") from exc
    if key not in _REGISTRY:
        raise ValueError(f"Unknown strategy kind: {kind}")
    return _REGISTRY[key]


def build_strategy(definition: StrategyDefinition) -> Strategy:
    return get_strategy_cls(definition.kind)(definition)


def build_strategies(cfgs: Iterable[Any] | None) -> list[Strategy]:
    """从配置构建策略列表（保持声明顺序）。

    支持：
    - StrategyConfig（来自 shared.config.schema）
    - dict（id/name/kind/description/active/params）
    - None：使用默认三条策略
    """
    if cfgs is None:
        return [build_strategy(d) for d in default_definitions()]

    strategies: list[Strategy] = []
    seen: set[str] = set()
    for cfg in cfgs:
        data = cfg.model_dump() if hasattr(cfg, "model_dump") else dict(cfg)
        sid = str(data.get("id") or "")
        if not sid:
            raise ValueError("strategy item missing id")
        if sid in seen:
            raise ValueError(f"Duplicate strategy id: {sid}")
        seen.add(sid)
        kind = get_strategy_cls(data.get("kind") or "").kind
        definition = StrategyDefinition(
            id=sid,
            name=str(data.get("name") or kind.value),
            kind=kind,
            description=str(data.get("description") or ""),
            is_active=bool(data.get("active", False)),
            params={k: float(v) for k, v in (data.get("params") or {}).items()},
        )
        strategies.append(build_strategy(definition))
    return strategies


def default_definitions() -> list[StrategyDefinition]:
    return [
        StrategyDefinition(
            id="1",
            name="Moving Average Crossover",
            kind=StrategyKind.MOVING_AVERAGE_CROSSOVER,
            description="Buy when SMA20 crosses above SMA50, sell when below",
            params={"fastPeriod": 20, "slowPeriod": 50},
        ),
        StrategyDefinition(
            id="2",
            name="RSI Mean Reversion",
            kind=StrategyKind.RSI_MEAN_REVERSION,
            description="Buy when RSI < 30, sell when RSI > 70",
            params={"oversoldLevel": 30, "overboughtLevel": 70},
        ),
        StrategyDefinition(
            id="3",
            name="Volume Breakout",
            kind=StrategyKind.VOLUME_BREAKOUT,
            description="Trade on volume spikes with price momentum",
            params={"volumeMultiplier": 2, "priceThreshold": 0.02},
        ),
    ]


# 默认注册
register_strategy(StrategyKind.MOVING_AVERAGE_CROSSOVER, MovingAverageCrossoverStrategy)
register_strategy(StrategyKind.RSI_MEAN_REVERSION, RSIMeanReversionStrategy)
register_strategy(StrategyKind.VOLUME_BREAKOUT, VolumeBreakoutStrategy)
