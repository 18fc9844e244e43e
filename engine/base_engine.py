"""执行引擎基类（模板模式）。

把“数据推进/事件循环”与“估值/策略/执行”解耦：子类只实现单个 tick，
循环节奏、计数与退出由基类统一负责。
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar

E = TypeVar("E")


@dataclass(frozen=True)
class EngineResult:
    """引擎运行结果（统一出口）。"""

    summary: dict[str, Any]
    artifacts: dict[str, Any] | None = None


class BaseEngine(ABC):
    """引擎抽象基类。"""

    @abstractmethod
    def run(self) -> EngineResult:
        raise NotImplementedError

    @staticmethod
    def run_loop(
        *,
        source: Iterable[E],
        on_tick: Callable[[E], None],
        max_events: int | None = None,
        interval_secs: float = 0.0,
        logger=None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """按固定节奏消费事件源，返回处理的事件数。"""
        processed = 0
        try:
            for event in source:
                if max_events is not None and processed >= max_events:
                    break
                on_tick(event)
                processed += 1
                if max_events is not None and processed >= max_events:
                    break
                if interval_secs > 0:
                    sleep(interval_secs)
        except KeyboardInterrupt:
            if logger:
                logger.info("Interrupted by user after %s ticks", processed)
        return processed
