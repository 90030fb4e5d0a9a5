"""
Application settings.

Typed, immutable view over the environment-driven configuration in env.py.
Sessions and tools read thresholds and verbosity from here instead of
consulting environment variables directly.
"""

from __future__ import annotations

from dataclasses import dataclass

from flowrisk.config import env


@dataclass(frozen=True)
class Settings:
    """Report thresholds and verbosity for one analysis run."""

    critical_va_threshold: float = env.DEFAULT_CRITICAL_VA_THRESHOLD
    moderate_threshold: float = env.DEFAULT_MODERATE_THRESHOLD
    poor_threshold: float = env.DEFAULT_POOR_THRESHOLD
    verbose_report: bool = False


def get_settings() -> Settings:
    """
    Return the current settings built from the environment.

    Returns:
        Settings with critical_va_threshold, moderate_threshold,
        poor_threshold and verbose_report.
    """
    moderate, poor = env.get_tier_thresholds()
    return Settings(
        critical_va_threshold=env.get_critical_va_threshold(),
        moderate_threshold=moderate,
        poor_threshold=poor,
        verbose_report=env.is_verbose_report(),
    )
