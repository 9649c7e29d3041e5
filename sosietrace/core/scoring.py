from __future__ import annotations
from typing import Dict, Callable, List
from sosietrace.core.metrics import MetricResult

class WeightedAggregator:
    def __init__(
        self,
        weights: Dict[str, float] | None = None,
        formula: Callable[[Dict[str, MetricResult]], float] | None = None,
    ) -> None:
        """
        If 'formula' is provided, it will be used to compute the similarity score
        from the metrics dict. Otherwise, weights-based aggregation is used.
        """
        self.default_weights = {"trail": 0.4, "divergence": 0.3, "variables": 0.3}
        self.weights = weights
        self.formula = formula

    def effective_weights(self) -> Dict[str, float]:
        return self.weights or self.default_weights

    def aggregate(self, metrics: Dict[str, MetricResult]) -> float:
        # Custom formula takes precedence
        if self.formula is not None:
            return float(self.formula(metrics))

        total = 0.0
        for name, w in self.effective_weights().items():
            m = metrics.get(name)
            if m is None:
                continue
            total += w * float(m.score)
        return total

class BinaryDecision:
    """Whether the candidate is accepted as a sosie of the reference."""
    def __init__(
        self,
        require_synchronized: bool = True,
        require_no_variable_diffs: bool = True,
        require_same_calls: bool = False,
        required_metric_names: List[str] | None = None,
    ) -> None:
        self.require_synchronized = require_synchronized
        self.require_no_variable_diffs = require_no_variable_diffs
        self.require_same_calls = require_same_calls
        self.required_metric_names = required_metric_names or []

    def checks(self, metrics: Dict[str, MetricResult], synchronized: bool) -> Dict[str, bool]:
        out: Dict[str, bool] = {}
        if self.require_synchronized:
            out["synchronized"] = bool(synchronized)
        if self.require_no_variable_diffs:
            m = metrics.get("variables")
            out["variables"] = bool(m and m.binary_pass)
        if self.require_same_calls:
            m = metrics.get("divergence")
            out["divergence"] = bool(m and m.binary_pass)
        for name in self.required_metric_names:
            m = metrics.get(name)
            out[name] = bool(m and m.binary_pass)
        return out

    def decide(self, metrics: Dict[str, MetricResult], synchronized: bool) -> bool:
        return all(self.checks(metrics, synchronized).values())
