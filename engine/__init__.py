"""执行引擎层（engine）。

统一入口：`TradingEngine.run() -> EngineResult`；
命令行入口由仓库根目录 `main.py` 统一承载。
"""
