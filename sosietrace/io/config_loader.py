from __future__ import annotations
from typing import Any, Dict, Optional, Tuple
import json
from pathlib import Path

from sosietrace.core.sequence import PointSequence
from sosietrace.core.evaluator import CompareRequest, Evaluator, DEFAULT_SYNC_WINDOW
from sosietrace.core.comparators import (
    ValueComparator,
    ExactEqualityComparator,
    NormalizedValueComparator,
    AlwaysTrueComparator,
)
from sosietrace.core.exclusion import ExclusionService
from sosietrace.core.scoring import WeightedAggregator, BinaryDecision
from sosietrace.io.json_io import load_exclusions

def load_config(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        text = f.read()
    suffix = p.suffix.lower()
    if suffix in (".yaml", ".yml"):
        try:
            import yaml  # type: ignore
        except Exception as e:
            raise ImportError("PyYAML is required to load YAML config files. Install with `pip install pyyaml`.") from e
        return yaml.safe_load(text) or {}
    # default to JSON
    return json.loads(text or "{}")

def parse_sync_window(value: Any) -> int:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"syncWindow must be a positive integer, got {value!r}")
    return value

def _make_comparator(spec: Dict[str, Any] | None) -> ValueComparator:
    if not spec:
        return NormalizedValueComparator()
    t = str(spec.get("type", "normalized")).lower()
    if t in ("exact", "equals", "eq"):
        return ExactEqualityComparator()
    if t in ("always_true", "any", "ignore"):
        return AlwaysTrueComparator()
    # default
    return NormalizedValueComparator()

def _make_exclusions(spec: Dict[str, Any] | None, base_dir: Optional[Path]) -> Optional[ExclusionService]:
    if not spec:
        return None
    keys = [str(k) for k in (spec.get("keys") or [])]
    file = spec.get("file")
    if file:
        fp = Path(file)
        if base_dir is not None and not fp.is_absolute():
            fp = base_dir / fp
        keys.extend(load_exclusions(fp))
    return ExclusionService(keys)

def _make_aggregator(spec: Dict[str, Any] | None) -> WeightedAggregator:
    if not spec:
        return WeightedAggregator()
    weights = spec.get("weights")
    if isinstance(weights, dict):
        # ensure float conversion
        w = {str(k): float(v) for k, v in weights.items()}
        return WeightedAggregator(weights=w)
    return WeightedAggregator()

def _make_decision(spec: Dict[str, Any] | None) -> BinaryDecision:
    if not spec:
        return BinaryDecision()
    required_metrics = spec.get("required_metrics") or []
    # ensure list[str]
    required_metrics = [str(x) for x in required_metrics if isinstance(x, (str, bytes))]
    return BinaryDecision(
        require_synchronized=bool(spec.get("require_synchronized", True)),
        require_no_variable_diffs=bool(spec.get("require_no_variable_diffs", True)),
        require_same_calls=bool(spec.get("require_same_calls", False)),
        required_metric_names=required_metrics,
    )

def build_from_config(reference: PointSequence,
                      candidate: PointSequence,
                      cfg: Dict[str, Any],
                      exclusions: Optional[ExclusionService] = None,
                      base_dir: str | Path | None = None) -> Tuple[Evaluator, CompareRequest]:
    """
    Build an evaluator and request from a config mapping.

    `exclusions` wins over the config's own `exclusions` section; relative
    exclusion files resolve against `base_dir`.
    """
    window = parse_sync_window(cfg.get("syncWindow", cfg.get("sync_window", DEFAULT_SYNC_WINDOW)))
    start = cfg.get("start") or (0, 0)
    if not isinstance(start, (list, tuple)) or len(start) != 2:
        raise ValueError(f"start must be a [reference, candidate] pair, got {start!r}")

    comparators = cfg.get("comparators") or {}
    comp_default = _make_comparator(comparators.get("default"))
    comp_map: Dict[str, ValueComparator] = {}
    for key, spec in (comparators.get("by_key") or {}).items():
        comp_map[str(key)] = _make_comparator(spec)

    if exclusions is None:
        exclusions = _make_exclusions(cfg.get("exclusions"), Path(base_dir) if base_dir else None)

    evaluator = Evaluator(
        aggregator=_make_aggregator(cfg.get("aggregation")),
        decision=_make_decision(cfg.get("decision")),
    )
    req = CompareRequest(
        reference=reference,
        candidate=candidate,
        sync_window=window,
        start=(int(start[0]), int(start[1])),
        presync=bool(cfg.get("presync", False)),
        comparator=comp_default,
        comparators_by_key=comp_map or None,
        exclusions=exclusions,
    )
    return evaluator, req
