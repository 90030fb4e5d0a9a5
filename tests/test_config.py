"""
Tests for environment-driven settings and their translation into ReportOptions.
"""

from __future__ import annotations

from fractions import Fraction

import pytest

from flowrisk.analysis_engine import ReportOptions
from flowrisk.config import Settings, get_settings

_VARS = (
    "FLOWRISK_CRITICAL_VA_THRESHOLD",
    "FLOWRISK_MODERATE_THRESHOLD",
    "FLOWRISK_POOR_THRESHOLD",
    "FLOWRISK_VERBOSE_REPORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults():
    settings = get_settings()
    assert settings == Settings()
    assert settings.critical_va_threshold == 0.5
    assert settings.moderate_threshold == 0.2
    assert settings.poor_threshold == 0.5
    assert settings.verbose_report is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("FLOWRISK_CRITICAL_VA_THRESHOLD", "0.75")
    monkeypatch.setenv("FLOWRISK_MODERATE_THRESHOLD", "0.1")
    monkeypatch.setenv("FLOWRISK_POOR_THRESHOLD", "0.4")
    monkeypatch.setenv("FLOWRISK_VERBOSE_REPORT", "yes")
    settings = get_settings()
    assert settings.critical_va_threshold == 0.75
    assert settings.moderate_threshold == 0.1
    assert settings.poor_threshold == 0.4
    assert settings.verbose_report is True


@pytest.mark.parametrize("raw", ["abc", "1.5", "-0.1"])
def test_invalid_threshold_falls_back(monkeypatch, raw):
    monkeypatch.setenv("FLOWRISK_CRITICAL_VA_THRESHOLD", raw)
    assert get_settings().critical_va_threshold == 0.5


def test_inverted_tiers_fall_back(monkeypatch):
    monkeypatch.setenv("FLOWRISK_MODERATE_THRESHOLD", "0.6")
    monkeypatch.setenv("FLOWRISK_POOR_THRESHOLD", "0.3")
    settings = get_settings()
    assert (settings.moderate_threshold, settings.poor_threshold) == (0.2, 0.5)


def test_report_options_from_settings():
    options = ReportOptions.from_settings(
        Settings(critical_va_threshold=0.6, moderate_threshold=0.1, poor_threshold=0.3, verbose_report=True)
    )
    assert options.verbose is True
    assert options.critical_threshold == Fraction(3, 5)
    assert options.thresholds.moderate == Fraction(1, 10)
    assert options.thresholds.poor == Fraction(3, 10)
