from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional


@dataclass(frozen=True)
class RuleResult:
    rule: str
    value: float
    error_estimate: Optional[float] = None
    absolute_error: Optional[float] = None
    relative_error: Optional[float] = None  # percent
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def as_dict(self) -> dict:
        return {
            "method": self.rule,
            "value": None if not math.isfinite(self.value) else self.value,
            "error": self.absolute_error,
            "errorEstimate": self.error_estimate,
            "relativeError": self.relative_error,
            "calculationError": self.failure,
        }


@dataclass(frozen=True)
class ConvergencePoint:
    intervals: int
    values: Mapping[str, float] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"intervals": self.intervals,
                **{k: (v if math.isfinite(v) else None) for k, v in self.values.items()}}


@dataclass(frozen=True)
class CalculationReport:
    function_label: str
    source_text: str
    lower: float
    upper: float
    intervals: int
    rules: tuple[str, ...]
    results: tuple[RuleResult, ...]
    exact_value: Optional[float] = None
    convergence: tuple[ConvergencePoint, ...] = ()
    reference: Optional[tuple[float, float]] = None  # (value, abserr) from adaptive quadrature
    samples: Mapping[str, tuple[tuple[float, float], ...]] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def result_for(self, rule: str) -> RuleResult:
        for r in self.results:
            if r.rule == rule:
                return r
        raise KeyError(rule)


# ===== Aggregation =====

def aggregate(rule: str, value: float, error_estimate: Optional[float] = None,
              exact: Optional[float] = None) -> RuleResult:
    """
    Merge a rule's output with the exact value (when known):
    absolute = |value - exact|, relative = absolute / |exact| * 100 (exact != 0 only).
    """
    value = float(value)
    if error_estimate is not None:
        error_estimate = float(error_estimate)
        if not math.isfinite(error_estimate):
            error_estimate = None
    absolute = relative = None
    if exact is not None and math.isfinite(exact):
        absolute = abs(value - exact)
        if exact != 0:
            relative = absolute / abs(exact) * 100
    return RuleResult(rule=rule, value=value, error_estimate=error_estimate,
                      absolute_error=absolute, relative_error=relative)


def failed_result(rule: str, message: str) -> RuleResult:
    return RuleResult(rule=rule, value=float("nan"), failure=str(message))
