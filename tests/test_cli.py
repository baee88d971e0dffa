import json

import pytest

from integral_calculator.cli import main


def test_report_is_printed(capsys) -> None:
    assert main(["x^2", "-a", "0", "-b", "2", "-n", "4", "-r", "Trapezoidal,Simpson1/3"]) == 0
    out = capsys.readouterr().out
    assert "Exact Value: 2.6666666667" in out
    assert "Simpson's 1/3" in out


def test_share_and_convergence(capsys) -> None:
    assert main(["sin(x)", "-b", "3.14159", "--share", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Numerical Integration Results:")
    assert main(["x^3", "-n", "6", "-r", "midpoint", "--convergence"]) == 0
    assert "Convergence Analysis Data" in capsys.readouterr().out


def test_compile_error_exit_code(capsys) -> None:
    assert main(["1/(x-x)"]) == 2
    err = capsys.readouterr().err
    assert err.startswith("Error: Function does not produce valid numeric results")
    assert "(normalized:" in err


def test_parameter_error_exit_code(capsys) -> None:
    assert main(["x^2", "-a", "2", "-b", "1"]) == 2
    assert "Lower limit must be less than upper limit" in capsys.readouterr().err
    assert main(["x^2", "-n", "2", "-r", "Simpson3/8"]) == 2


def test_missing_function_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2


def test_listings(capsys) -> None:
    assert main(["--list-rules"]) == 0
    out = capsys.readouterr().out
    assert "Simpson3/8" in out and "n >= 3" in out
    assert main(["--list-functions"]) == 0
    assert "sqrt(1-x^2)" in capsys.readouterr().out


def test_files_are_written(tmp_path, capsys) -> None:
    cfg = tmp_path / "engine.json"
    cfg.write_text(json.dumps({"convergence_stop": 8}), encoding="utf-8")
    argv = [
        "e^x", "-n", "6", "--seed", "2", "--config", str(cfg),
        "--json", str(tmp_path / "r.json"),
        "--txt", str(tmp_path / "r.txt"),
        "--plot", str(tmp_path / "f.png"),
        "--convergence-plot", str(tmp_path / "c.png"),
        "--results-plot", str(tmp_path / "b.png"),
    ]
    assert main(argv) == 0
    capsys.readouterr()
    data = json.loads((tmp_path / "r.json").read_text(encoding="utf-8"))
    assert [p["intervals"] for p in data["convergence"]] == [2, 4, 6, 8]
    assert (tmp_path / "r.txt").read_text(encoding="utf-8").startswith("Numerical Integration Results")
    for name in ("f.png", "c.png", "b.png"):
        assert (tmp_path / name).stat().st_size > 0


def test_rules_option_before_function(capsys) -> None:
    assert main(["-r", "Trapezoidal", "x^2", "-b", "2"]) == 0
    out = capsys.readouterr().out
    assert "Selected Methods: Trapezoidal Rule" in out

    assert main(["-r", "trapezoid,midpoint", "-r", "mc", "x^3", "--seed", "4"]) == 0
    out = capsys.readouterr().out
    assert "Selected Methods: Trapezoidal Rule, Midpoint Rule, Monte Carlo" in out


def test_removable_singularity_is_reported_as_failed(capsys) -> None:
    assert main(["x/x", "-a", "-1", "-b", "1", "-n", "2", "-r", "Trapezoidal"]) == 0
    assert "FAILED: Trapezoidal" in capsys.readouterr().out
