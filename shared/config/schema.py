"""配置架构定义（Pydantic Schema）。

目标：
- 让配置成为“强类型 + 可演进”的边界协议；
- 启动阶段尽早失败，避免 typo/类型错误在长时间运行中“隐蔽爆炸”。
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.models.models import StrategyKind


class IndicatorConfig(BaseModel):
    """指标窗口。"""
    sma_fast: int = Field(default=20, gt=0)
    sma_slow: int = Field(default=50, gt=0)
    rsi_period: int = Field(default=14, gt=0)
    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_order(self) -> "IndicatorConfig":
        if self.sma_fast >= self.sma_slow:
            raise ValueError("indicators.sma_fast must be less than indicators.sma_slow")
        return self


class FeedConfig(BaseModel):
    """模拟行情源配置。"""
    seed: Optional[int] = None
    volatility: float = Field(default=0.005, gt=0)
    warmup_points: int = Field(default=101, ge=0)
    model_config = ConfigDict(extra="forbid")


class StrategyConfig(BaseModel):
    """单条策略配置。

    说明：
    - `kind` 决定行为，`name` 只用于展示/日志；
    - 策略参数必须进入 `params`，config_loader 会把扁平字段自动挪进去。
    """
    id: str
    kind: StrategyKind
    name: Optional[str] = None
    description: str = ""
    active: bool = False
    params: Dict[str, float] = Field(default_factory=dict)
    model_config = ConfigDict(extra="forbid")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        # YAML 里未加引号的 `id: 1` 会被解析成 int
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode="before")
    @classmethod
    def _pack_flat_params(cls, data):
        if not isinstance(data, dict):
            return data
        reserved = {"id", "kind", "name", "description", "active", "params"}
        extra = {k: v for k, v in data.items() if k not in reserved}
        if not extra:
            return data
        packed = {k: v for k, v in data.items() if k in reserved}
        existing = data.get("params")
        packed["params"] = {**extra, **(existing if isinstance(existing, dict) else {})}
        return packed


class AppConfig(BaseModel):
    """应用总配置。"""
    initial_cash: float = Field(default=100000.0, ge=0)
    symbols: List[str] = Field(default_factory=lambda: ["AAPL", "GOOGL", "MSFT", "TSLA", "NVDA"])
    tick_interval_secs: float = Field(default=2.0, ge=0)
    history_length: int = Field(default=100, gt=0)

    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    # None 表示使用内置的三条默认策略
    strategies: Optional[List[StrategyConfig]] = None

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @model_validator(mode="after")
    def _check_history_covers_windows(self) -> "AppConfig":
        need = max(self.indicators.sma_slow, self.indicators.rsi_period + 1)
        if self.history_length < need:
            raise ValueError(
                f"history_length ({self.history_length}) must be >= {need} "
                "(max of indicators.sma_slow and indicators.rsi_period + 1)"
            )
        return self

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "AppConfig":
        if self.strategies:
            ids = [s.id for s in self.strategies]
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            if dupes:
                raise ValueError(f"Duplicate strategy ids: {dupes}")
        return self
