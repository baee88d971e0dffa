import math

import numpy as np
import pytest

from integral_calculator.derivatives import fourth_derivative_bound, second_derivative_bound


def test_constant_has_zero_bounds() -> None:
    def const(x):
        return np.full_like(np.asarray(x, dtype=float), 7.5)

    assert second_derivative_bound(const, 0.0, 10.0) == 0.0
    assert fourth_derivative_bound(const, 0.0, 10.0) == 0.0


def test_second_derivative_of_square() -> None:
    assert second_derivative_bound(lambda x: np.asarray(x) ** 2, 0.0, 2.0) == pytest.approx(2.0, rel=1e-6)


def test_second_derivative_of_sine_peaks_near_half_pi() -> None:
    assert second_derivative_bound(np.sin, 0.0, math.pi) == pytest.approx(1.0, rel=1e-3)


def test_fourth_derivative_of_quartic() -> None:
    assert fourth_derivative_bound(lambda x: np.asarray(x) ** 4, 0.0, 1.0) == pytest.approx(24.0, rel=1e-2)


def test_undefined_points_are_skipped() -> None:
    # log is NaN left of zero and -inf at zero; only x > 0 contributes
    m2 = second_derivative_bound(np.log, -1.0, 1.0, steps=100)
    assert math.isfinite(m2)
    assert m2 > 0


def test_function_that_always_raises_gives_zero() -> None:
    def boom(x):
        raise ValueError("no")

    assert second_derivative_bound(boom, 0.0, 1.0, steps=10) == 0.0
    assert fourth_derivative_bound(boom, 0.0, 1.0, steps=10) == 0.0


def test_degenerate_interval_or_grid() -> None:
    assert second_derivative_bound(np.sin, 1.0, 1.0) == 0.0
    assert second_derivative_bound(np.sin, 0.0, 1.0, steps=2) == 0.0
    assert fourth_derivative_bound(np.sin, 0.0, 1.0, steps=4) == 0.0
