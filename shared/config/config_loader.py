"""配置加载。

支持 YAML 配置、环境变量占位符 `${VAR}` 展开，以及 .env/.env.local 自动加载。
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from shared.config.schema import AppConfig, FeedConfig, IndicatorConfig, StrategyConfig
from shared.config.validation import validate_raw_config

__all__ = ["AppConfig", "FeedConfig", "IndicatorConfig", "StrategyConfig", "load_config"]


def _load_env_file(env_path: Path):
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _load_envs(cfg_path: Path):
    """
    加载配置文件目录与仓库根目录下的 .env/.env.local（不覆盖已有环境变量）。
    """
    candidates = [
        cfg_path.parent / ".env",
        cfg_path.parent / ".env.local",
        cfg_path.parent.parent / ".env",
        cfg_path.parent.parent / ".env.local",
    ]
    for env_file in candidates:
        _load_env_file(env_file)


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        # 未设置的变量直接报错，避免静默替换为空
        def replacer(match):
            var_name = match.group(1)
            if var_name not in os.environ:
                raise ValueError(f"Missing environment variable: {var_name}")
            return os.environ[var_name]

        return re.sub(r"\$\{([^}]+)\}", replacer, value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def load_config(path: str, load_env: bool = True, expand_env: bool = True) -> AppConfig:
    """从 YAML 读取并解析配置。

    Parameters
    ----------
    path:
        配置文件路径。
    load_env:
        是否自动加载 .env/.env.local。
    expand_env:
        是否展开 `${VAR}` 占位符。

    Returns
    -------
    AppConfig
        解析后的配置对象。

    Raises
    ------
    FileNotFoundError
        配置文件不存在。
    ValueError
        未知字段、类型错误或缺失环境变量。
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    if load_env:
        _load_envs(cfg_path)

    with cfg_path.open("r", encoding="utf-8") as f:
        raw_cfg: dict[str, Any] = yaml.safe_load(f) or {}

    cfg = _expand_env(raw_cfg) if expand_env else raw_cfg
    validate_raw_config(cfg)
    return AppConfig.model_validate(cfg)
