"""
Environment variable loading and validation for flowrisk.

- FLOWRISK_CRITICAL_VA_THRESHOLD: VA at or above which an operation is critical (default: 0.50)
- FLOWRISK_MODERATE_THRESHOLD: lowest score classified MODERATE (default: 0.20)
- FLOWRISK_POOR_THRESHOLD: lowest score classified POOR (default: 0.50)
- FLOWRISK_VERBOSE_REPORT: include per-operation scores and chains in reports (default: off)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from flowrisk.risk_logging import get_logger

logger = get_logger(__name__)

# Project root: config is flowrisk/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_CRITICAL_VA_THRESHOLD = 0.50
DEFAULT_MODERATE_THRESHOLD = 0.20
DEFAULT_POOR_THRESHOLD = 0.50

_TRUTHY = ("1", "true", "yes", "on")


def load_flowrisk_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set variables."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def _read_ratio(var: str, default: float) -> float:
    """Read a ratio in [0, 1] from env; fall back to default when missing or invalid."""
    raw = (os.getenv(var) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("invalid_config_value", variable=var, value=raw, fallback=default)
        return default
    if not 0.0 <= value <= 1.0:
        logger.warning("config_value_out_of_range", variable=var, value=value, fallback=default)
        return default
    return value


def get_critical_va_threshold() -> float:
    """Return FLOWRISK_CRITICAL_VA_THRESHOLD from env, default 0.50."""
    load_flowrisk_env()
    return _read_ratio("FLOWRISK_CRITICAL_VA_THRESHOLD", DEFAULT_CRITICAL_VA_THRESHOLD)


def get_tier_thresholds() -> tuple[float, float]:
    """
    Return (moderate, poor) tier lower bounds from env.
    Falls back to both defaults when moderate > poor.
    """
    load_flowrisk_env()
    moderate = _read_ratio("FLOWRISK_MODERATE_THRESHOLD", DEFAULT_MODERATE_THRESHOLD)
    poor = _read_ratio("FLOWRISK_POOR_THRESHOLD", DEFAULT_POOR_THRESHOLD)
    if moderate > poor:
        logger.warning("tier_thresholds_inverted", moderate=moderate, poor=poor)
        return DEFAULT_MODERATE_THRESHOLD, DEFAULT_POOR_THRESHOLD
    return moderate, poor


def is_verbose_report() -> bool:
    """Return True if FLOWRISK_VERBOSE_REPORT is set to a truthy value."""
    load_flowrisk_env()
    raw = (os.getenv("FLOWRISK_VERBOSE_REPORT") or "").strip().lower()
    return raw in _TRUTHY
