"""
SosieTrace: execution-trace alignment and divergence detection for program variants.

This package decides whether two recorded executions of the same test, one
from a reference program and one from a structurally modified variant (a
candidate "sosie"), behave the same, and reports where they diverge:
- Representing recorded execution points (call entry/exit, branch markers, variable snapshots)
- Aligning two traces with bounded-window resynchronization
- Extracting variable-level differences, filtered through a campaign-wide exclusion set
- Scoring the comparison and taking a strict equivalence decision

Producing the traces (instrumentation, running tests) is left to external tools.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
