from __future__ import annotations

import logging
import math
import operator
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np
from scipy.integrate import quad

from integral_calculator.config import DEFAULT_CONFIG, EngineConfig
from integral_calculator.errors import EvaluationFailure, ParameterError
from integral_calculator.functions import IntegrableFunction, resolve_function
from integral_calculator.results import (
    CalculationReport,
    ConvergencePoint,
    RuleResult,
    aggregate,
    failed_result,
)
from integral_calculator.rules import RULES, QuadratureRule, create_rule, resolve_rule_id
from integral_calculator.sampling import RealFunction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntegrationRequest:
    a: float
    b: float
    n: int
    rules: tuple[str, ...]


def make_request(a, b, n, rules: Optional[Iterable[str]] = None,
                 config: EngineConfig | None = None) -> IntegrationRequest:
    """
    Validate raw inputs into an IntegrationRequest.
    Raises ParameterError for a >= b, non-finite bounds, n < 1, n below a selected
    rule's minimum (3 for Simpson 3/8), and empty or unknown rule selections.
    """
    cfg = config or DEFAULT_CONFIG
    try:
        a = float(a)
        b = float(b)
    except (TypeError, ValueError):
        raise ParameterError(f"Limits must be real numbers (got a={a!r}, b={b!r}).") from None
    if not (math.isfinite(a) and math.isfinite(b)):
        raise ParameterError("Numerical integration requires finite lower and upper limits.")
    if a >= b:
        raise ParameterError(f"Lower limit must be less than upper limit (got a={a}, b={b}).")
    try:
        n = operator.index(n)
    except TypeError:
        raise ParameterError(f"Number of intervals must be a positive integer (got {n!r}).") from None
    if n < 1:
        raise ParameterError(f"Number of intervals must be a positive integer (got {n}).")

    selected = list(cfg.default_rules if rules is None else rules)
    if not selected:
        raise ParameterError("Please select at least one integration method.")
    rule_ids: list[str] = []
    for name in selected:
        rule_id = resolve_rule_id(name)
        if rule_id not in rule_ids:
            rule_ids.append(rule_id)
    for rule_id in rule_ids:
        cls = RULES[rule_id]
        if n < cls.min_intervals:
            raise ParameterError(f"{cls.name} requires at least {cls.min_intervals} intervals (got n={n}).")
    return IntegrationRequest(a=a, b=b, n=n, rules=tuple(rule_ids))


def run_rule(rule: QuadratureRule, func: RealFunction, a: float, b: float, n: int,
             exact: Optional[float] = None) -> RuleResult:
    """One rule, with evaluation failures turned into a failed RuleResult."""
    try:
        value = rule.integrate(func, a, b, n)
        estimate = rule.error_estimate(func, a, b, n)
    except EvaluationFailure as e:
        logger.warning("%s failed: %s", rule.rule_id, e)
        return failed_result(rule.rule_id, str(e))
    logger.debug("%s n=%d -> %.12g (error estimate %s)", rule.rule_id, n, value, estimate)
    return aggregate(rule.rule_id, value, estimate, exact)


def convergence_sweep(func: RealFunction, a: float, b: float, rules: Sequence[str],
                      *, config: EngineConfig | None = None,
                      rng: np.random.Generator | None = None) -> tuple[ConvergencePoint, ...]:
    """
    Recompute every rule for n = 2, 4, ..., 50 (configurable).
    A rule that fails at some n is left out of that point only.
    """
    cfg = config or DEFAULT_CONFIG
    rng = rng if rng is not None else np.random.default_rng()
    instances = [create_rule(r, config=cfg, rng=rng) for r in rules]
    points = []
    for n in cfg.convergence_range():
        values = {}
        for rule in instances:
            try:
                values[rule.rule_id] = rule.integrate(func, a, b, n)
            except (EvaluationFailure, ParameterError) as e:
                logger.debug("convergence: skipping %s at n=%d (%s)", rule.rule_id, n, e)
        points.append(ConvergencePoint(intervals=n, values=values))
    return tuple(points)


def reference_integral(func: RealFunction, a: float, b: float) -> tuple[float, float]:
    """Adaptive quadrature (QUADPACK) value and its absolute error estimate."""
    def f_scalar(t):
        with np.errstate(all="ignore"):
            return float(np.asarray(func(t), dtype=float).reshape(-1)[0])

    try:
        val, err = quad(f_scalar, a, b, limit=200)
    except (ArithmeticError, ValueError, TypeError) as e:
        raise EvaluationFailure(f"Reference integration failed: {e}") from e
    if not (math.isfinite(val) and math.isfinite(err)):
        raise EvaluationFailure("Reference integration did not produce a finite value.")
    return float(val), float(err)


def calculate(source, a, b, n=None, rules: Optional[Iterable[str]] = None, *,
              config: EngineConfig | None = None,
              rng: np.random.Generator | None = None,
              seed: Optional[int] = None,
              convergence: bool = False,
              reference: bool = False) -> CalculationReport:
    """
    Integrate ``source`` (predefined id, expression text or IntegrableFunction) over
    [a, b] with every selected rule.

    CompileError and ParameterError propagate; a rule that fails while evaluating
    is reported as a failed RuleResult and the other rules still run.
    Pass ``seed`` or ``rng`` for reproducible Monte Carlo results.
    """
    cfg = config or DEFAULT_CONFIG
    function: IntegrableFunction = resolve_function(source, cfg)
    request = make_request(a, b, cfg.default_intervals if n is None else n, rules, cfg)
    rng = rng if rng is not None else np.random.default_rng(seed)

    exact = function.exact(request.a, request.b)
    results = []
    samples = {}
    for rule_id in request.rules:
        rule = create_rule(rule_id, config=cfg, rng=rng)
        result = run_rule(rule, function, request.a, request.b, request.n, exact)
        results.append(result)
        if result.ok:
            pts = rule.visualization_samples(function, request.a, request.b, request.n)
            if pts:
                samples[rule_id] = tuple(pts)

    points: tuple[ConvergencePoint, ...] = ()
    if convergence:
        points = convergence_sweep(function, request.a, request.b, request.rules, config=cfg, rng=rng)

    ref = None
    if reference and exact is None:
        try:
            ref = reference_integral(function, request.a, request.b)
        except EvaluationFailure as e:
            logger.warning("%s", e)

    logger.info("Integrated %s over [%g, %g] with n=%d: %s", function.label, request.a, request.b,
                request.n, ", ".join(f"{r.rule}={r.value:.6g}" for r in results))
    return CalculationReport(
        function_label=function.label,
        source_text=function.source_text,
        lower=request.a,
        upper=request.b,
        intervals=request.n,
        rules=request.rules,
        results=tuple(results),
        exact_value=exact,
        convergence=points,
        reference=ref,
        samples=samples,
    )
