"""
Load run configuration from config.yaml and .env. Environment overrides YAML.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from strategy_engine.core.errors import ConfigurationError


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "RunConfig":
    """Load config.yaml and overlay with env. Returns RunConfig."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: Dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None

    def env_float(key: str, default: float = 0.0) -> float:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None

    run = data.get("run", {}) or {}
    strategy = dict(data.get("strategy", {}) or {})
    logging_cfg = data.get("logging", {}) or {}

    # Env overrides for the most commonly tuned parameters
    for key, caster in (
        ("MIN_SIGNALS_FOR_BUY", env_int),
        ("MIN_SIGNALS_FOR_SELL", env_int),
        ("MAX_POSITION_SIZE_PCT", env_float),
    ):
        if os.getenv(key) is not None:
            strategy[key.lower()] = caster(key)
    if os.getenv("TRAILING_STOP_ENABLED") is not None:
        strategy["trailing_stop_enabled"] = env_bool("TRAILING_STOP_ENABLED")

    return RunConfig(
        variant=env("STRATEGY_VARIANT", str(run.get("variant", "hybrid_adaptive"))),
        strategy_overrides=strategy,
        start_capital=env_float("START_CAPITAL", float(run.get("start_capital", 10000.0))),
        strict=env_bool("STRICT", bool(run.get("strict", False))),
        max_workers=env_int("MAX_WORKERS", int(run.get("max_workers", 4))),
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "strategy_engine.log"),
    )


class RunConfig:
    """Unified run configuration. Immutable after load."""

    __slots__ = (
        "variant", "strategy_overrides", "start_capital", "strict", "max_workers",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        variant: str = "hybrid_adaptive",
        strategy_overrides: Optional[Dict[str, Any]] = None,
        start_capital: float = 10000.0,
        strict: bool = False,
        max_workers: int = 4,
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        log_file: str = "strategy_engine.log",
    ):
        if start_capital <= 0:
            raise ConfigurationError(f"start_capital must be positive, got {start_capital}")
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")
        self.variant = variant
        self.strategy_overrides = dict(strategy_overrides or {})
        self.start_capital = float(start_capital)
        self.strict = strict
        self.max_workers = max_workers
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

    def strategy_params(self):
        """Variant defaults overlaid with the configured overrides, validated."""
        from strategy_engine.strategies.presets import get_variant

        variant = get_variant(self.variant)
        return variant.build_params(self.strategy_overrides)
