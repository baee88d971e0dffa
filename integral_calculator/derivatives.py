"""
Finite-difference bounds on |f''| and |f''''| used by the error formulas
of the deterministic rules.

Points where f is undefined (raises, NaN, inf) are dropped; if nothing
finite is left the bound is 0.
"""

from __future__ import annotations

import numpy as np

from integral_calculator.sampling import RealFunction, sample_function


def _grid(a: float, b: float, steps: int) -> tuple[np.ndarray, float]:
    h = (b - a) / steps
    return a + h * np.arange(steps + 1, dtype=float), h


def _finite_max(values: np.ndarray) -> float:
    values = np.abs(values)
    values = values[np.isfinite(values)]
    return float(np.max(values)) if values.size else 0.0


def second_derivative_bound(func: RealFunction, a: float, b: float, steps: int = 1000) -> float:
    """max |f''| over the interior points a+h .. b-h (exclusive of b-h)."""
    if not b > a or steps < 3:
        return 0.0
    xs, h = _grid(a, b, steps)
    ys = sample_function(func, xs)
    # centres i = 1 .. steps-2
    with np.errstate(all="ignore"):
        d2 = ((ys[2:steps] + ys[0:steps - 2]) - 2.0 * ys[1:steps - 1]) / (h * h)
    return _finite_max(d2)


def fourth_derivative_bound(func: RealFunction, a: float, b: float, steps: int = 1000) -> float:
    """max |f''''| over the interior points a+2h .. b-2h (exclusive of b-2h)."""
    if not b > a or steps < 5:
        return 0.0
    xs, h = _grid(a, b, steps)
    ys = sample_function(func, xs)
    # centres i = 2 .. steps-3
    c = slice(2, steps - 2)
    with np.errstate(all="ignore"):
        d4 = (((ys[4:steps] + ys[0:steps - 4]) - 4.0 * (ys[3:steps - 1] + ys[1:steps - 3]))
              + 6.0 * ys[c]) / h ** 4
    return _finite_max(d4)
