"""Risk: ATR position sizing and exit levels."""

from strategy_engine.risk.sizer import RiskSizer, SizeResult
from strategy_engine.risk.levels import ExitLevels, compute_exit_levels, check_exits

__all__ = ["RiskSizer", "SizeResult", "ExitLevels", "compute_exit_levels", "check_exits"]
