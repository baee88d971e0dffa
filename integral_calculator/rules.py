from __future__ import annotations

import logging
import math
import operator
import re

import numpy as np
from scipy.integrate import simpson, trapezoid

from integral_calculator.config import DEFAULT_CONFIG, EngineConfig
from integral_calculator.derivatives import fourth_derivative_bound, second_derivative_bound
from integral_calculator.errors import ParameterError
from integral_calculator.sampling import RealFunction, evaluate_nodes

logger = logging.getLogger(__name__)


# =========================
# ====== Numeric Rules ====
# =========================

def _nodes(a: float, b: float, n: int) -> tuple[np.ndarray, float]:
    h = (b - a) / n
    xs = a + h * np.arange(n + 1, dtype=float)
    xs[-1] = b
    return xs, h


def composite_trapezoidal(func: RealFunction, a: float, b: float, n: int) -> float:
    xs, _ = _nodes(a, b, n)
    y = evaluate_nodes(func, xs, label="Trapezoidal")
    return float(trapezoid(y, x=xs))


def composite_midpoint(func: RealFunction, a: float, b: float, n: int) -> float:
    h = (b - a) / n
    mids = a + (np.arange(n, dtype=float) + 0.5) * h
    y = evaluate_nodes(func, mids, label="Midpoint")
    return float(h * np.sum(y))


def composite_simpson_13(func: RealFunction, a: float, b: float, n: int) -> float:
    """Classical composite Simpson 1/3 rule; n must be even."""
    if n % 2:
        raise ParameterError("Classical Simpson 1/3 needs an even number of intervals.")
    xs, _ = _nodes(a, b, n)
    y = evaluate_nodes(func, xs, label="Simpson 1/3")
    return float(simpson(y, x=xs))


def composite_simpson_38(func: RealFunction, a: float, b: float, n: int) -> float:
    """
    Cubic 3/8 rule over the largest multiple of 3 panels not exceeding n,
    trapezoids over the 1-2 panels left at the right end.
    """
    if n < 3:
        raise ParameterError("Simpson's 3/8 rule requires at least 3 intervals.")
    xs, h = _nodes(a, b, n)
    y = evaluate_nodes(func, xs, label="Simpson 3/8")
    remainder = n % 3
    main_n = n - remainder

    idx = np.arange(1, main_n)
    S = y[0] + y[main_n]
    S += 3 * np.sum(y[idx[idx % 3 != 0]])
    S += 2 * np.sum(y[idx[idx % 3 == 0]])
    total = 3 * h / 8 * S

    if remainder:
        tail = y[main_n:]
        total += h * (0.5 * (tail[0] + tail[-1]) + np.sum(tail[1:-1]))
    return float(total)


def monte_carlo_uniform(func: RealFunction, a: float, b: float, n: int, rng: np.random.Generator):
    xs = rng.uniform(a, b, size=n)
    ys = evaluate_nodes(func, xs, label="Monte Carlo")
    return float((b - a) * np.mean(ys)), xs, ys


# =========================
# ====== Rule objects =====
# =========================

class QuadratureRule:
    """
    One quadrature algorithm.
    integrate() returns the approximation, error_estimate() a theoretical bound
    (None where the rule has none), visualization_samples() the (x, y) points the
    rule drew itself (empty for deterministic rules).
    """

    rule_id = ""
    name = ""
    description = ""
    color = "#6b7280"
    min_intervals = 1

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or DEFAULT_CONFIG

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def check_parameters(self, a: float, b: float, n) -> int:
        try:
            n = operator.index(n)
        except TypeError:
            raise ParameterError(f"Number of intervals must be an integer, got {n!r}.") from None
        if not (math.isfinite(a) and math.isfinite(b)):
            raise ParameterError(f"{self.name} requires finite limits.")
        if a >= b:
            raise ParameterError(f"Lower limit must be less than upper limit (got a={a}, b={b}).")
        if n < self.min_intervals:
            raise ParameterError(f"{self.name} requires at least {self.min_intervals} intervals (got n={n}).")
        return n

    def integrate(self, func: RealFunction, a: float, b: float, n: int) -> float:
        raise NotImplementedError

    def error_estimate(self, func: RealFunction, a: float, b: float, n: int) -> float | None:
        return None

    def visualization_samples(self, func: RealFunction, a: float, b: float, n: int) -> list[tuple[float, float]]:
        return []


class TrapezoidalRule(QuadratureRule):
    rule_id = "Trapezoidal"
    name = "Trapezoidal Rule"
    description = "Approximates area using trapezoids"
    color = "#3b82f6"

    def integrate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        return composite_trapezoidal(func, a, b, n)

    def error_estimate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        m2 = second_derivative_bound(func, a, b, self.config.derivative_steps)
        return abs((b - a) ** 3 * m2 / (12 * n * n))


class MidpointRule(QuadratureRule):
    rule_id = "Midpoint"
    name = "Midpoint Rule"
    description = "Uses rectangle with height at midpoint"
    color = "#10b981"

    def integrate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        return composite_midpoint(func, a, b, n)

    def error_estimate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        m2 = second_derivative_bound(func, a, b, self.config.derivative_steps)
        return abs((b - a) ** 3 * m2 / (24 * n * n))


class SimpsonOneThirdRule(QuadratureRule):
    """Odd n: Simpson over the first n-1 panels, one trapezoid over the last."""

    rule_id = "Simpson1/3"
    name = "Simpson's 1/3"
    description = "Uses quadratic polynomials for better accuracy"
    color = "#ef4444"

    def integrate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        if n % 2 == 0:
            return composite_simpson_13(func, a, b, n)
        h = (b - a) / n
        split = b - h
        simpson_part = composite_simpson_13(func, a, split, n - 1) if n > 1 else 0.0
        fs, fb = evaluate_nodes(func, [split, b], label="Simpson 1/3")
        return simpson_part + float(h / 2 * (fs + fb))

    def error_estimate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        steps = self.config.derivative_steps
        if n % 2 == 0:
            m4 = fourth_derivative_bound(func, a, b, steps)
            return abs((b - a) ** 5 * m4 / (180 * n ** 4))
        h = (b - a) / n
        split = b - h
        simpson_error = 0.0
        if n > 1:
            m4 = fourth_derivative_bound(func, a, split, steps)
            simpson_error = (split - a) ** 5 * m4 / (180 * (n - 1) ** 4)
        m2 = second_derivative_bound(func, split, b, self.config.mixed_derivative_steps)
        trap_error = h ** 3 * m2 / 12
        return abs(simpson_error) + abs(trap_error)


class SimpsonThreeEighthsRule(QuadratureRule):
    rule_id = "Simpson3/8"
    name = "Simpson's 3/8"
    description = "Uses cubic polynomials, best for intervals multiple of 3"
    color = "#a21caf"
    min_intervals = 3

    def integrate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        return composite_simpson_38(func, a, b, n)


class MonteCarloRule(QuadratureRule):
    """
    Uniform random sampling. The samples of the last integrate() call are kept on
    the instance (overwritten every call) and feed error_estimate() and the plots;
    share an instance between threads only with external locking.
    """

    rule_id = "MonteCarlo"
    name = "Monte Carlo"
    description = "Uses random sampling for integration"
    color = "#f59e0b"

    def __init__(self, config: EngineConfig | None = None, rng: np.random.Generator | None = None,
                 seed: int | None = None):
        super().__init__(config)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.last_samples: tuple[np.ndarray, np.ndarray] | None = None

    def integrate(self, func, a, b, n):
        n = self.check_parameters(a, b, n)
        self.last_samples = None
        estimate, xs, ys = monte_carlo_uniform(func, a, b, n, self.rng)
        self.last_samples = (xs, ys)
        return estimate

    def error_estimate(self, func, a, b, n):
        """95% confidence half-width of the last estimate."""
        if self.last_samples is None:
            return None
        ys = self.last_samples[1]
        if ys.size < 2:
            return None
        variance = float(np.var(ys, ddof=1))
        return self.config.confidence_z * (b - a) * math.sqrt(variance / ys.size)

    def visualization_samples(self, func, a, b, n):
        if self.last_samples is None:
            return []
        xs, ys = self.last_samples
        return [(float(x), float(y)) for x, y in zip(xs, ys)]


# =========================
# ====== Registry =========
# =========================

RULES: dict[str, type[QuadratureRule]] = {
    cls.rule_id: cls
    for cls in (TrapezoidalRule, MidpointRule, SimpsonOneThirdRule, SimpsonThreeEighthsRule, MonteCarloRule)
}


def _fold(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


_ALIASES = {}
for _cls in RULES.values():
    _ALIASES[_fold(_cls.rule_id)] = _cls.rule_id
    _ALIASES[_fold(_cls.name)] = _cls.rule_id
_ALIASES.update({"trapezoid": "Trapezoidal", "rectangle": "Midpoint", "simpson": "Simpson1/3", "mc": "MonteCarlo"})


def resolve_rule_id(name: str) -> str:
    """Accepts the identifier, the display name, or a loose spelling like 'simpson38'."""
    rule_id = _ALIASES.get(_fold(str(name)))
    if rule_id is None:
        raise ParameterError(f"Unknown integration method: {name!r}. Choose from {', '.join(RULES)}.")
    return rule_id


def create_rule(name: str, *, config: EngineConfig | None = None,
                rng: np.random.Generator | None = None) -> QuadratureRule:
    cls = RULES[resolve_rule_id(name)]
    if cls is MonteCarloRule:
        return MonteCarloRule(config, rng=rng)
    return cls(config)
