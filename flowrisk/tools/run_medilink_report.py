#!/usr/bin/env python3
"""
MediLink risk report: seed the MediLink scenario and print the flowrisk report.

Thresholds and verbosity default to flowrisk.config settings (env / .env);
command-line flags override them for this run.

Outputs: per-entity AVR / VCC / tier, system AVR, system VCC, max CIVPF,
         critical operations; with --verbose also per-operation VA and
         the longest propagation chain per origin.

Usage:
  python -m flowrisk.tools.run_medilink_report --format table
  python -m flowrisk.tools.run_medilink_report --verbose --threshold 0.75 --out report.json
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from flowrisk.analysis_engine.metrics import to_ratio
from flowrisk.analysis_engine.reporter import ReportOptions, RiskReport, render_table
from flowrisk.analysis_engine.session import AnalysisSession
from flowrisk.config import get_settings
from flowrisk.risk_logging import get_logger
from flowrisk.scenarios.medilink import seed_medilink

logger = get_logger(__name__)


def _ratio_arg(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {raw!r}") from None
    if not 0.0 <= value <= 1.0:
        raise argparse.ArgumentTypeError(f"must be within [0, 1]: {raw}")
    return value


def _render(report: RiskReport, fmt: str) -> str:
    if fmt == "table":
        return render_table(report)
    return json.dumps(report.to_dict(), ensure_ascii=False, indent=2)


def run(options: ReportOptions) -> tuple[RiskReport | None, list[str]]:
    """Seed a fresh session. Returns (report, error messages); report is None when seeding failed."""
    session = AnalysisSession(options=options)
    errors = [str(r.error) for r in seed_medilink(session) if not r.ok]
    if errors:
        return None, errors
    return session.build_report(), []


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the MediLink scenario and print its flowrisk report.")
    parser.add_argument("--format", choices=["json", "table"], default="json", help="Output format (default: json)")
    parser.add_argument("--verbose", action="store_true", help="Include per-operation VA and propagation chains")
    parser.add_argument("--threshold", type=_ratio_arg, default=None, help="Critical VA threshold (default: from settings)")
    parser.add_argument("--out", default="", help="Also write the rendered report to this path")
    args = parser.parse_args(argv)

    options = ReportOptions.from_settings(get_settings())
    if args.verbose:
        options = replace(options, verbose=True)
    if args.threshold is not None:
        options = replace(options, critical_threshold=to_ratio(args.threshold))

    report, errors = run(options)
    if report is None:
        for message in errors:
            print("ERROR:", message, file=sys.stderr)
        logger.error("medilink_seed_failed", error_count=len(errors))
        return 1

    text = _render(report, args.format)
    print(text)
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text + "\n", encoding="utf-8")
        logger.info("report_written", path=str(out_path), format=args.format)
    return 0


if __name__ == "__main__":
    sys.exit(main())
