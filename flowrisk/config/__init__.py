"""
Configuration management for flowrisk.

Loads and validates settings from environment variables and an optional
.env file. Exposes a single source of truth for report thresholds and
report verbosity.
"""

from flowrisk.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
