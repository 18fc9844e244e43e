"""纸面交易引擎命令行入口。

子命令：

- `runner`：模拟行情主循环。加载配置、回填历史，按 tick 推进并执行激活的策略。
- `test`：运行 pytest。
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.table import Table

from engine.trading_engine import TradingEngine


@dataclass
class CliArgs:
    """命令行参数结构。

    config: 配置文件路径
    task: 要运行的任务类型 (runner/test)
    """
    config: str
    task: str
    max_ticks: int | None = None  # 跑多少个 tick 就停止；None 表示一直跑
    quiet: bool = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="papertrade", description="纸面交易引擎统一入口")

    def _add_config_arg(p: argparse.ArgumentParser, *, default: Any) -> None:
        p.add_argument(
            "--config",
            default=default,
            help="配置文件路径 (默认: config/config.yml)",
        )

    # 允许 `python main.py --config ... runner`（全局）与 `python main.py runner --config ...`（子命令）
    _add_config_arg(parser, default="config/config.yml")

    sub = parser.add_subparsers(dest="task")

    p_runner = sub.add_parser("runner", help="模拟行情主循环")
    _add_config_arg(p_runner, default=argparse.SUPPRESS)
    p_runner.add_argument(
        "--max-ticks",
        type=int,
        default=None,
        help="跑多少个 tick 后退出",
    )
    p_runner.add_argument("--quiet", action="store_true", help="不打印结束时的汇总表")

    p_test = sub.add_parser("test", help="运行 pytest")
    _add_config_arg(p_test, default=argparse.SUPPRESS)

    return parser


def parse_args(argv: list[str] | None = None) -> CliArgs:
    parser = build_parser()
    ns = parser.parse_args(argv)
    task = ns.task or "runner"
    config = getattr(ns, "config", "config/config.yml")
    return CliArgs(
        config=str(config),
        task=task,
        max_ticks=getattr(ns, "max_ticks", None),
        quiet=bool(getattr(ns, "quiet", False)),
    )


def render_summary(summary: dict[str, Any], console: Console | None = None) -> None:
    """把 runner 的 summary 打印成表格。"""
    console = console or Console()

    overview = Table(title="Portfolio")
    overview.add_column("Metric")
    overview.add_column("Value", justify="right")
    for key in ("ticks", "cash", "total_value", "day_pnl", "total_pnl", "realized_pnl", "trades"):
        val = summary.get(key)
        overview.add_row(key, f"{val:,.2f}" if isinstance(val, float) else str(val))
    console.print(overview)

    positions = summary.get("positions") or {}
    if positions:
        table = Table(title="Positions")
        for col in ("Symbol", "Qty", "Avg", "Last", "Value", "Unrealized"):
            table.add_column(col, justify="right" if col != "Symbol" else "left")
        for symbol, pos in positions.items():
            table.add_row(
                symbol,
                str(pos["qty"]),
                f"{pos['avg_price']:.2f}",
                f"{pos['current_price']:.2f}",
                f"{pos['market_value']:,.2f}",
                f"{pos['unrealized_pnl']:+,.2f}",
            )
        console.print(table)

    market = summary.get("market") or {}
    if market:
        table = Table(title="Market")
        for col in ("Symbol", "Points", "Last", "Low", "High"):
            table.add_column(col, justify="right" if col != "Symbol" else "left")
        for symbol, row in market.items():
            table.add_row(
                symbol,
                str(row["points"]),
                f"{row['last']:.2f}",
                f"{row['low']:.2f}",
                f"{row['high']:.2f}",
            )
        console.print(table)


def main(argv: list[str] | None = None) -> Any:
    """程序主入口，返回对应子命令的结果（runner 为 summary dict）。"""
    args = parse_args(argv)

    if args.task == "runner":
        summary = TradingEngine(cfg_path=args.config, max_ticks=args.max_ticks).run().summary
        if not args.quiet:
            render_summary(summary)
        return summary

    if args.task == "test":
        import pytest

        return pytest.main(["-q"])

    raise ValueError(f"Unknown task: {args.task}")


if __name__ == "__main__":
    main()
