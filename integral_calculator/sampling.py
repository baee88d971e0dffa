from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from integral_calculator.errors import EvaluationFailure

logger = logging.getLogger(__name__)

RealFunction = Callable[[float], float]


def _to_real(value) -> float:
    if np.iscomplexobj(value):
        value = complex(value)
        return value.real if value.imag == 0 else np.nan
    return float(value)


def _vectorized(func: RealFunction, xs: np.ndarray) -> np.ndarray:
    with np.errstate(all="ignore"):
        out = func(xs)
    arr = np.asarray(out)
    if np.iscomplexobj(arr):
        arr = np.where(arr.imag == 0, arr.real, np.nan)
    # constant expressions come back as a scalar
    return np.array(np.broadcast_to(arr.astype(float), xs.shape), dtype=float)


def _pointwise(func: RealFunction, xs: np.ndarray, strict: bool, label: str) -> np.ndarray:
    out = np.empty(xs.shape, dtype=float)
    for i, x in enumerate(xs):
        try:
            with np.errstate(all="ignore"):
                out[i] = _to_real(func(float(x)))
        except Exception as e:
            if strict:
                raise EvaluationFailure(f"{label}: evaluation failed at x={float(x):.6g}: {e}") from e
            out[i] = np.nan
    return out


def sample_function(func: RealFunction, xs) -> np.ndarray:
    """
    Tolerant evaluation on a grid: points that raise or are undefined come back as NaN.
    Callers mask with np.isfinite.
    """
    xs = np.asarray(xs, dtype=float).reshape(-1)
    try:
        return _vectorized(func, xs)
    except Exception:
        return _pointwise(func, xs, strict=False, label="sample")


def evaluate_nodes(func: RealFunction, xs, label: str = "integrand") -> np.ndarray:
    """
    Strict evaluation at quadrature nodes.
    Raises EvaluationFailure if any node raises or is not finite.
    """
    xs = np.asarray(xs, dtype=float).reshape(-1)
    try:
        ys = _vectorized(func, xs)
    except EvaluationFailure:
        raise
    except Exception as e:
        logger.debug("Vectorised evaluation failed (%s); evaluating point by point", e)
        ys = _pointwise(func, xs, strict=True, label=label)
    if not np.all(np.isfinite(ys)):
        bad_idx = np.where(~np.isfinite(ys))[0]
        xbad = xs[bad_idx[0]]
        raise EvaluationFailure(f"{label}: function produced non-finite values near x={xbad:.6g}.")
    return ys
