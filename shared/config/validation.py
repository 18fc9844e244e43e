"""配置 Schema 校验（raw dict 层）。

目标：
- 在启动阶段尽早失败，并对拼错的 key 给出 "did you mean" 提示；
- 顶层/indicators/feed 严格校验；策略参数属于“开放字段”，交给策略层解释，
  这里只约束 id/kind 以及 params 的取值类型。
"""

from __future__ import annotations

import difflib
from typing import Any, Iterable

from shared.models.models import StrategyKind


def _suggest_key(key: str, allowed: Iterable[str]) -> str | None:
    matches = difflib.get_close_matches(key, list(allowed), n=1, cutoff=0.75)
    return matches[0] if matches else None


def _ensure_allowed_keys(block: dict[str, Any], *, allowed: set[str], ctx: str) -> None:
    unknown = [k for k in block.keys() if k not in allowed]
    if not unknown:
        return
    parts = []
    for k in sorted(unknown):
        suggestion = _suggest_key(k, allowed)
        if suggestion:
            parts.append(f"{k} (did you mean '{suggestion}'?)")
        else:
            parts.append(k)
    raise ValueError(f"{ctx} contains unknown keys: {', '.join(parts)}")


def _require(block: dict[str, Any], key: str, *, ctx: str) -> Any:
    if key not in block:
        raise ValueError(f"Missing required config key: {ctx}.{key}")
    return block[key]


def _expect_dict(val: Any, *, ctx: str) -> dict[str, Any]:
    if not isinstance(val, dict):
        raise ValueError(f"{ctx} must be a dict")
    return val


def _expect_str(val: Any, *, ctx: str) -> str:
    if not isinstance(val, str) or not val.strip():
        raise ValueError(f"{ctx} must be a non-empty string")
    return val


def _expect_bool(val: Any, *, ctx: str) -> bool:
    if isinstance(val, bool):
        return val
    raise ValueError(f"{ctx} must be a bool")


def _expect_number(val: Any, *, ctx: str) -> float:
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        return float(val)
    raise ValueError(f"{ctx} must be a number")


def validate_raw_config(cfg: dict[str, Any]) -> None:
    """校验 raw config dict（来自 YAML + env 展开后）。"""
    if not isinstance(cfg, dict):
        raise ValueError("Config root must be a dict")

    top_allowed = {
        "initial_cash",
        "symbols",
        "tick_interval_secs",
        "history_length",
        "indicators",
        "feed",
        "strategies",
    }
    _ensure_allowed_keys(cfg, allowed=top_allowed, ctx="config")

    if "initial_cash" in cfg:
        _expect_number(cfg["initial_cash"], ctx="config.initial_cash")
    if "tick_interval_secs" in cfg:
        _expect_number(cfg["tick_interval_secs"], ctx="config.tick_interval_secs")

    symbols = cfg.get("symbols")
    if symbols is not None:
        if not isinstance(symbols, list) or not symbols:
            raise ValueError("config.symbols must be a non-empty list")
        for i, sym in enumerate(symbols):
            _expect_str(sym, ctx=f"config.symbols[{i}]")

    indicators = cfg.get("indicators")
    if indicators is not None:
        indicators = _expect_dict(indicators, ctx="config.indicators")
        _ensure_allowed_keys(indicators, allowed={"sma_fast", "sma_slow", "rsi_period"}, ctx="config.indicators")

    feed = cfg.get("feed")
    if feed is not None:
        feed = _expect_dict(feed, ctx="config.feed")
        _ensure_allowed_keys(feed, allowed={"seed", "volatility", "warmup_points"}, ctx="config.feed")

    strategies = cfg.get("strategies")
    if strategies is not None:
        if not isinstance(strategies, list):
            raise ValueError("config.strategies must be a list")
        for i, item in enumerate(strategies):
            _validate_strategy(_expect_dict(item, ctx=f"config.strategies[{i}]"), ctx=f"config.strategies[{i}]")


def _validate_strategy(strategy: dict[str, Any], *, ctx: str) -> None:
    _expect_str(str(_require(strategy, "id", ctx=ctx)), ctx=f"{ctx}.id")
    kind = _expect_str(_require(strategy, "kind", ctx=ctx), ctx=f"{ctx}.kind")
    kinds = [k.value for k in StrategyKind]
    if kind not in kinds:
        suggestion = _suggest_key(kind.upper(), kinds)
        hint = f" (did you mean '{suggestion}'?)" if suggestion else ""
        raise ValueError(f"{ctx}.kind unknown strategy kind: {kind}{hint}")
    if "active" in strategy and strategy["active"] is not None:
        _expect_bool(strategy["active"], ctx=f"{ctx}.active")
    params = strategy.get("params")
    if params is not None:
        for k, v in _expect_dict(params, ctx=f"{ctx}.params").items():
            _expect_number(v, ctx=f"{ctx}.params.{k}")
