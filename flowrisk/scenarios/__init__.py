"""Example models that drive the analysis engine through its public boundary operations."""

from flowrisk.scenarios.medilink import build_medilink_session, seed_medilink

__all__ = ["build_medilink_session", "seed_medilink"]
