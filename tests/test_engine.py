import math

import numpy as np
import pytest

from integral_calculator.config import DEFAULT_CONFIG
from integral_calculator.engine import (
    calculate,
    convergence_sweep,
    make_request,
    reference_integral,
    run_rule,
)
from integral_calculator.errors import CompileError, EvaluationFailure, ParameterError
from integral_calculator.functions import get_predefined
from integral_calculator.rules import create_rule


def test_make_request_normalises_rules() -> None:
    req = make_request("0", 2, 6, ["trapezoid", "Trapezoidal", "simpson38"])
    assert req.a == 0.0 and req.b == 2.0 and req.n == 6
    assert req.rules == ("Trapezoidal", "Simpson3/8")
    assert make_request(0, 1, 10).rules == DEFAULT_CONFIG.default_rules


@pytest.mark.parametrize(
    "a, b, n, rules",
    [
        (1, 1, 10, None),
        (2, 1, 10, None),
        ("a", 1, 10, None),
        (0, math.inf, 10, None),
        (0, 1, 0, None),
        (0, 1, 1.5, None),
        (0, 1, 10, []),
        (0, 1, 10, ["Boole"]),
        (0, 1, 2, ["Simpson3/8"]),
    ],
)
def test_make_request_rejects(a, b, n, rules) -> None:
    with pytest.raises(ParameterError):
        make_request(a, b, n, rules)


def test_calculate_predefined_with_exact_value() -> None:
    report = calculate("x^2", 0, 2, 10, ["Trapezoidal", "Simpson1/3"])
    assert report.exact_value == pytest.approx(8 / 3)
    assert report.rules == ("Trapezoidal", "Simpson1/3")
    assert report.function_label == "x²"

    simpson = report.result_for("Simpson1/3")
    assert simpson.ok
    assert simpson.absolute_error < 1e-12
    trap = report.result_for("Trapezoidal")
    assert trap.absolute_error == pytest.approx(abs(trap.value - 8 / 3))
    assert trap.relative_error == pytest.approx(trap.absolute_error / (8 / 3) * 100)
    assert trap.error_estimate == pytest.approx(8 * 2 / 1200, rel=1e-6)
    with pytest.raises(KeyError):
        report.result_for("Midpoint")


def test_calculate_custom_has_no_exact_errors() -> None:
    report = calculate("2x + 1", 0, 1, 4, ["Midpoint"])
    assert report.exact_value is None
    result = report.result_for("Midpoint")
    assert result.value == pytest.approx(2.0)
    assert result.absolute_error is None and result.relative_error is None
    assert report.reference is None


def test_exact_zero_gives_absolute_but_no_relative_error() -> None:
    report = calculate("sin(x)", -1, 1, 5, ["Trapezoidal"])
    assert report.exact_value == 0.0
    result = report.result_for("Trapezoidal")
    assert result.absolute_error is not None
    assert result.relative_error is None


def test_one_failing_rule_does_not_stop_the_others() -> None:
    report = calculate("1/x", 0, 1, 10, ["Trapezoidal", "Midpoint"])
    assert report.exact_value is None
    trap = report.result_for("Trapezoidal")
    assert not trap.ok
    assert "non-finite" in trap.failure
    assert math.isnan(trap.value)
    mid = report.result_for("Midpoint")
    assert mid.ok and math.isfinite(mid.value)


def test_compile_errors_propagate() -> None:
    with pytest.raises(CompileError):
        calculate("foo(x)", 0, 1, 10)
    with pytest.raises(ParameterError):
        calculate("x^2", 1, 0, 10)


def test_default_rules_and_intervals() -> None:
    report = calculate("x^3", 0, 1, seed=1)
    assert report.intervals == DEFAULT_CONFIG.default_intervals
    assert report.rules == DEFAULT_CONFIG.default_rules
    assert all(r.ok for r in report.results)


def test_seeded_monte_carlo_is_reproducible() -> None:
    first = calculate("e^x", 0, 1, 200, ["MonteCarlo"], seed=7)
    second = calculate("e^x", 0, 1, 200, ["MonteCarlo"], seed=7)
    assert first.result_for("MonteCarlo").value == second.result_for("MonteCarlo").value
    assert len(first.samples["MonteCarlo"]) == 200
    assert first.result_for("MonteCarlo").error_estimate > 0


def test_convergence_points_cover_the_sweep(rng) -> None:
    report = calculate("x^2", 0, 2, 10, ["Trapezoidal", "Simpson3/8"], rng=rng, convergence=True)
    ns = [p.intervals for p in report.convergence]
    assert ns == list(range(2, 51, 2))
    assert "Simpson3/8" not in report.convergence[0].values
    assert "Simpson3/8" in report.convergence[1].values
    last = report.convergence[-1].values["Trapezoidal"]
    first = report.convergence[0].values["Trapezoidal"]
    assert abs(last - 8 / 3) < abs(first - 8 / 3)


def test_convergence_range_is_configurable() -> None:
    cfg = DEFAULT_CONFIG.with_overrides(convergence_stop=10)
    report = calculate("x^2", 0, 1, 4, ["Midpoint"], config=cfg, convergence=True)
    assert [p.intervals for p in report.convergence] == [2, 4, 6, 8, 10]


def test_convergence_sweep_skips_failing_rule(rng) -> None:
    func = get_predefined("1/x")
    points = convergence_sweep(func, 0.0, 1.0, ["Trapezoidal", "Midpoint"], rng=rng)
    assert all("Trapezoidal" not in p.values for p in points)
    assert all("Midpoint" in p.values for p in points)


def test_run_rule_wraps_failures() -> None:
    result = run_rule(create_rule("Trapezoidal"), lambda x: 1.0 / np.asarray(x), 0.0, 1.0, 4)
    assert not result.ok
    ok = run_rule(create_rule("Midpoint"), np.cos, 0.0, 1.0, 4, exact=math.sin(1.0))
    assert ok.ok and ok.absolute_error < 1e-2


def test_reference_integral() -> None:
    value, err = reference_integral(np.sin, 0.0, math.pi)
    assert value == pytest.approx(2.0, rel=1e-10)
    assert err < 1e-8
    with pytest.raises(EvaluationFailure):
        reference_integral(lambda x: math.nan, 0.0, 1.0)


def test_reference_only_when_no_exact_value() -> None:
    custom = calculate("x^2 + 0", 0, 2, 4, ["Trapezoidal"], reference=True)
    assert custom.reference is not None
    assert custom.reference[0] == pytest.approx(8 / 3)
    assert custom.result_for("Trapezoidal").absolute_error is None
    predefined = calculate("x^2", 0, 2, 4, ["Trapezoidal"], reference=True)
    assert predefined.reference is None
