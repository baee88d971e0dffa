import json

import pytest

from integral_calculator.config import DEFAULT_CONFIG, EngineConfig, load_engine_config
from integral_calculator.errors import ParameterError


def test_defaults() -> None:
    cfg = EngineConfig()
    assert cfg.probe_points == (0.1, 1.0, 2.0, 3.0, 5.0)
    assert cfg.derivative_steps == 1000
    assert cfg.mixed_derivative_steps == 100
    assert cfg.confidence_z == 1.96
    assert list(cfg.convergence_range()) == list(range(2, 51, 2))


def test_with_overrides_returns_new_config() -> None:
    cfg = DEFAULT_CONFIG.with_overrides(default_rules=["Midpoint"], probe_points=[1, 2])
    assert cfg.default_rules == ("Midpoint",)
    assert cfg.probe_points == (1.0, 2.0)
    assert DEFAULT_CONFIG.default_rules != cfg.default_rules


@pytest.mark.parametrize(
    "overrides",
    [
        {"no_such_key": 1},
        {"derivative_steps": 4},
        {"mixed_derivative_steps": 2},
        {"convergence_step": 0},
        {"convergence_start": 0},
    ],
)
def test_invalid_overrides(overrides) -> None:
    with pytest.raises(ParameterError):
        DEFAULT_CONFIG.with_overrides(**overrides)


def test_load_engine_config(tmp_path) -> None:
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"derivative_steps": 200, "convergence_stop": 20}), encoding="utf-8")
    cfg = load_engine_config(path)
    assert cfg.derivative_steps == 200
    assert cfg.convergence_stop == 20
    assert cfg.confidence_z == DEFAULT_CONFIG.confidence_z


def test_load_engine_config_requires_object(tmp_path) -> None:
    path = tmp_path / "engine.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ParameterError):
        load_engine_config(path)
