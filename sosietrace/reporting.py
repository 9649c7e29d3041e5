from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

from sosietrace.core.evaluator import CompareRequest, CompareResult, Evaluator
from sosietrace.core.metrics import MetricResult
from sosietrace.core.scoring import WeightedAggregator, BinaryDecision
from sosietrace.core.sequence import PointSequence
from sosietrace.core.variables import VariableDiff


def _point_to_dict(seq: PointSequence, index: int) -> Dict[str, Any]:
    p = seq.get(index)
    return {
        "index": p.index,
        "location": p.location,
        "kind": p.kind.value,
        "depth": p.depth,
        "frame": seq.get(p.frame).location if p.frame >= 0 else None,
    }


def build_alignment_rows(result: CompareResult, reference: PointSequence, candidate: PointSequence) -> List[Dict[str, Any]]:
    """
    Turn a comparison into display-friendly rows ordered by position.

    Every trail pair and every "different" pair gets one row. match is:
      - True for pairs classified as the same call,
      - False for pairs recorded as different (divergence or depth lag).
    """
    different = {(c.reference_index, c.candidate_index) for c in result.different_calls}
    on_trail = set(result.trail or [])
    pairs = on_trail | different
    rows: List[Dict[str, Any]] = []
    for idx, (i, j) in enumerate(sorted(pairs), start=1):
        rows.append(
            {
                "index": idx,
                "reference": _point_to_dict(reference, i),
                "candidate": _point_to_dict(candidate, j),
                "match": (i, j) not in different,
                "on_trail": (i, j) in on_trail,
            }
        )
    return rows


def _trim(s: str, width: int) -> str:
    return s if len(s) <= width else (s[: max(0, width - 1)] + "…")


def format_alignment_table(
    rows: List[Dict[str, Any]],
    *,
    max_rows: int = 50,
    col_widths: Optional[Dict[str, int]] = None,
) -> str:
    """
    Pretty-print a text table of alignment rows with a match column.

    Columns:
      IDX | REF.i | REF.location | REF.d | CAND.i | CAND.location | CAND.d | MATCH
    """
    widths = {
        "idx": 4,
        "i": 6,
        "loc": 28,
        "d": 3,
        "match": 7,
    }
    if col_widths:
        widths.update(col_widths)

    header = (
        f"{'IDX':>{widths['idx']}} | "
        f"{'REF.i':>{widths['i']}} | {'REF.location':<{widths['loc']}} | {'D':>{widths['d']}} | "
        f"{'CAND.i':>{widths['i']}} | {'CAND.location':<{widths['loc']}} | {'D':>{widths['d']}} | "
        f"{'MATCH':^{widths['match']}}"
    )
    sep = "-" * len(header)

    def fmt_p(d: Dict[str, Any]) -> Tuple[str, str, str]:
        loc = _trim(f"{d['location']} ({d['kind']})", widths["loc"])
        depth = "·" if d.get("depth") is None else str(d["depth"])
        return str(d["index"]), loc, depth

    out_lines = [header, sep]
    shown = 0
    for r in rows:
        if shown >= max_rows:
            break
        ri, rloc, rd = fmt_p(r["reference"])
        ci, cloc, cd = fmt_p(r["candidate"])
        match_s = "✓" if r.get("match") else "✗"
        line = (
            f"{r['index']:>{widths['idx']}} | "
            f"{ri:>{widths['i']}} | {rloc:<{widths['loc']}} | {rd:>{widths['d']}} | "
            f"{ci:>{widths['i']}} | {cloc:<{widths['loc']}} | {cd:>{widths['d']}} | "
            f"{match_s:^{widths['match']}}"
        )
        out_lines.append(line)
        shown += 1

    if shown < len(rows):
        out_lines.append(f"... ({len(rows) - shown} more rows)")
    return "\n".join(out_lines)


def format_variable_diffs(diffs: List[VariableDiff], *, width: int = 24) -> str:
    if not diffs:
        return "  (none)"
    lines = []
    for d in diffs:
        lines.append(
            f"  · {d.key}: {_trim(str(d.reference_value), width)} -> {_trim(str(d.candidate_value), width)}"
            f"  [ref@{d.reference_index}, cand@{d.candidate_index}]"
        )
    return "\n".join(lines)


def _compute_contributions(
    metrics: Dict[str, MetricResult], aggregator: WeightedAggregator
) -> Optional[Dict[str, float]]:
    # Only compute contributions if using weights (no custom formula)
    if getattr(aggregator, "formula", None) is not None:
        return None
    contribs: Dict[str, float] = {}
    total = 0.0
    for name, w in aggregator.effective_weights().items():
        m = metrics.get(name)
        if m is None:
            continue
        part = float(w) * float(m.score)
        contribs[name] = part
        total += part
    contribs["_sum"] = total
    return contribs


def format_metrics_summary(
    metrics: Dict[str, MetricResult],
    *,
    aggregator: Optional[WeightedAggregator] = None,
) -> str:
    lines: List[str] = []
    for name in ["trail", "divergence", "variables"]:
        m = metrics.get(name)
        if not m:
            continue
        lines.append(f"- {name}: score={m.score:.3f}, pass={m.binary_pass}")
        d = m.details or {}
        if name == "trail":
            if "pairs" in d and "reference_coverage" in d:
                lines.append(
                    f"  · pairs={d['pairs']}, coverage ref={d['reference_coverage']:.3f} cand={d['candidate_coverage']:.3f}"
                )
                lines.append(f"  · skipped ref={d['reference_skipped']} cand={d['candidate_skipped']}")
            elif "reason" in d:
                lines.append(f"  · {d['reason']}")
        elif name == "divergence":
            lines.append(f"  · same={d.get('same_calls')}, different={d.get('different_calls')}")
        elif name == "variables":
            lines.append(f"  · variable_diffs={d.get('variable_diffs')}")
    if aggregator is not None:
        contribs = _compute_contributions(metrics, aggregator)
        if contribs is None:
            lines.append("- aggregation: custom formula (per-metric contributions not shown)")
        else:
            lines.append("- aggregation contributions:")
            for k, v in contribs.items():
                if k == "_sum":
                    continue
                lines.append(f"  · {k}: {v:.3f}")
            lines.append(f"  · total: {contribs.get('_sum', 0.0):.3f}")
    return "\n".join(lines)


def _decision_breakdown(decision: BinaryDecision, metrics: Dict[str, MetricResult], synchronized: bool) -> Dict[str, Any]:
    return {
        "require_synchronized": decision.require_synchronized,
        "require_no_variable_diffs": decision.require_no_variable_diffs,
        "require_same_calls": decision.require_same_calls,
        "required_metrics": list(decision.required_metric_names),
        "passes": decision.checks(metrics, synchronized),
    }


def build_json_report(
    result: CompareResult,
    *,
    evaluator: Optional[Evaluator] = None,
    req: Optional[CompareRequest] = None,
) -> Dict[str, Any]:
    """
    Create a JSON-serializable report: verdict, trail, call classification,
    variable diffs, per-metric details and, when available, alignment rows
    and the aggregation/decision breakdown.
    """
    report: Dict[str, Any] = {
        "synchronized": result.synchronized,
        "equivalent": result.equivalent,
        "score": result.score,
        "reason": result.reason,
        "trail": [list(p) for p in result.trail] if result.trail is not None else None,
        "same_calls": [c.to_dict() for c in result.same_calls],
        "different_calls": [c.to_dict() for c in result.different_calls],
        "variable_diffs": [d.to_dict() for d in result.variable_diffs],
        "metrics": {
            k: {"score": v.score, "binary_pass": v.binary_pass, "details": v.details}
            for k, v in result.metrics.items()
        },
    }

    if req is not None:
        report["reference"] = req.reference.name
        report["candidate"] = req.candidate.name
        report["sync_window"] = req.sync_window
        report["presync"] = req.presync
        if result.synchronized:
            report["alignment_rows"] = build_alignment_rows(result, req.reference, req.candidate)

    if evaluator is not None:
        contribs = _compute_contributions(result.metrics, evaluator.aggregator)
        if contribs is not None:
            report["aggregation"] = {
                "weights": evaluator.aggregator.effective_weights(),
                "contributions": contribs,
            }
        else:
            report["aggregation"] = {"info": "custom_formula"}
        report["decision"] = _decision_breakdown(evaluator.decision, result.metrics, result.synchronized)

    return report


def format_text_report(
    result: CompareResult,
    evaluator: Optional[Evaluator] = None,
    req: Optional[CompareRequest] = None,
    *,
    max_rows: int = 50,
    title: Optional[str] = None,
) -> str:
    """
    Build a human-friendly text report with:
      - header + verdict + score,
      - per-metric summary and decision breakdown,
      - variable diffs,
      - alignment table (first max_rows).
    """
    lines: List[str] = []
    hdr = title or "SosieTrace Report"
    lines.append("=" * 80)
    lines.append(hdr)
    lines.append("=" * 80)
    if req is not None:
        lines.append(f"Reference:    {req.reference.name}")
        lines.append(f"Candidate:    {req.candidate.name}")
        lines.append(f"Sync window:  {req.sync_window}")
        if req.presync:
            lines.append("Presync:      True")
    lines.append(f"Synchronized: {result.synchronized}")
    lines.append(f"Equivalent:   {result.equivalent}")
    lines.append(f"Score:        {result.score:.3f}")
    if result.reason:
        lines.append(f"Reason:       {result.reason}")

    if evaluator is not None:
        lines.append("")
        lines.append("Metrics:")
        lines.append(format_metrics_summary(result.metrics, aggregator=evaluator.aggregator))
        lines.append("")
        lines.append("Decision breakdown:")
        dec = _decision_breakdown(evaluator.decision, result.metrics, result.synchronized)
        for k, v in dec["passes"].items():
            lines.append(f"  pass[{k}]: {v}")

    lines.append("")
    lines.append("Variable diffs:")
    lines.append(format_variable_diffs(result.variable_diffs))

    if req is not None and result.synchronized:
        lines.append("")
        lines.append("Alignment (first rows):")
        lines.append(format_alignment_table(build_alignment_rows(result, req.reference, req.candidate), max_rows=max_rows))

    lines.append("=" * 80)
    return "\n".join(lines)
