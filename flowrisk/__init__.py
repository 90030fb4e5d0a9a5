"""
flowrisk: sensitive-data-flow risk scoring.

Scores a caller-declared entity model for Attribute Vulnerability Ratio,
Vulnerability Coupling Count, Critical Information Vulnerability Propagation
Factor and Vulnerability Amplification. Modular: analysis engine, config,
structured logging, and an example MediLink scenario with a CLI report tool.
"""

__version__ = "0.1.0"
