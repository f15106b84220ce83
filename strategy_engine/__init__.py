"""Strategy signal generation and backtest simulation over pre-computed indicators."""

__version__ = "0.1.0"
