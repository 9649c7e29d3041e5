from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from sosietrace.io.json_io import load_sequence, save_json, load_exclusions, save_exclusions
from sosietrace.io import load_config, build_from_config, parse_sync_window
from sosietrace.core.evaluator import Evaluator, DEFAULT_SYNC_WINDOW
from sosietrace.core.exclusion import ExclusionService
from sosietrace.reporting import format_text_report, build_json_report
from sosietrace import __version__

def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="sosietrace", description="SosieTrace CLI")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log progress (-vv for resynchronization details)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_cmp = sub.add_parser("compare", help="Compare a reference trace with a candidate trace")
    p_cmp.add_argument("--reference", required=True, help="Path to the reference trace JSON")
    p_cmp.add_argument("--candidate", required=True, help="Path to the candidate trace JSON")
    p_cmp.add_argument("--config", required=False, help="Path to configuration file (JSON/YAML)")
    p_cmp.add_argument("--exclusions", required=False, help="Path to the exclusion file (one variable key per line)")
    p_cmp.add_argument("--sync-window", required=False, type=int, help="Resynchronization window (overrides config)")
    p_cmp.add_argument("--presync", action="store_true", help="Candidate recording starts part way through the reference execution")
    p_cmp.add_argument("--out", required=False, help="Path to write the JSON report")

    p_cal = sub.add_parser("calibrate", help="Learn noisy variables from repeated reference runs")
    p_cal.add_argument("--runs", required=True, nargs="+", help="Trace JSON files of the same test on the unmodified program")
    p_cal.add_argument("--exclusions", required=True, help="Exclusion file to extend (created if missing)")
    p_cal.add_argument("--sync-window", required=False, type=int, default=DEFAULT_SYNC_WINDOW, help="Resynchronization window")

    sub.add_parser("version", help="Show SosieTrace version and exit")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.cmd == "version":
        print(__version__)
        return 0

    if args.cmd == "compare":
        cfg: Dict[str, Any] = load_config(args.config) if args.config else {}
        if args.sync_window is not None:
            cfg["syncWindow"] = args.sync_window
        if args.presync:
            cfg["presync"] = True
        exclusions = ExclusionService(load_exclusions(args.exclusions)) if args.exclusions else None
        reference = load_sequence(args.reference)
        candidate = load_sequence(args.candidate)
        base_dir = Path(args.config).resolve().parent if args.config else None
        evaluator, req = build_from_config(reference, candidate, cfg, exclusions=exclusions, base_dir=base_dir)
        result = evaluator.evaluate(req)

        report: Dict[str, Any] = build_json_report(result, evaluator=evaluator, req=req)
        if args.out:
            save_json(args.out, report)
        else:
            print(format_text_report(result, evaluator=evaluator, req=req))
        return 0 if result.equivalent else 1

    if args.cmd == "calibrate":
        window = parse_sync_window(args.sync_window)
        runs = [load_sequence(p) for p in args.runs]
        exclusions = ExclusionService(load_exclusions(args.exclusions))
        added = Evaluator.default().calibrate(runs, exclusions, sync_window=window)
        save_exclusions(args.exclusions, exclusions.keys())
        print(f"{len(added)} new excluded variable(s), {len(exclusions)} total")
        for key in added:
            print(f"  {key}")
        return 0

    return 2

if __name__ == "__main__":
    sys.exit(main())
