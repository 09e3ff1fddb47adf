from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional, Sequence

from selfassess_behaviour.config import get_settings
from selfassess_behaviour.logging_setup import configure_logging
from selfassess_behaviour.walkthrough import run_packs


def write_report(*, output_path: str | Path, report: dict) -> Path:
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
    return out


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run self-assessment walkthrough packs and report each turn.")
    parser.add_argument(
        "--scenarios",
        default=str(settings.scenario_dir),
        help="Directory of *.json walkthrough packs.",
    )
    parser.add_argument(
        "--output",
        default=str(settings.report_path) if settings.report_path else None,
        help="Path to write the JSON report. Printed to stdout when omitted.",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Root log level.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)
    report = run_packs(Path(args.scenarios), comment_length=get_settings().summary_comment_length)
    if args.output:
        write_report(output_path=args.output, report=report)
    else:
        print(json.dumps(report, indent=2))
    return 0 if all(scenario["passed"] for scenario in report["scenarios"]) else 1


if __name__ == "__main__":
    raise SystemExit(main())
