from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from integral_calculator.errors import ParameterError


@dataclass(frozen=True)
class EngineConfig:
    """
    Tuning constants of the integration engine.
    Defaults reproduce the behaviour of the calculator; override per call or from JSON.
    """

    # Expression validation
    probe_points: tuple[float, ...] = (0.1, 1.0, 2.0, 3.0, 5.0)

    # Finite-difference grids for the error bounds
    derivative_steps: int = 1000
    mixed_derivative_steps: int = 100  # 2nd-derivative pass over the odd-n Simpson tail panel

    # Monte Carlo 95% confidence half-width
    confidence_z: float = 1.96

    # Convergence sweep n = start, start+step, ..., stop
    convergence_start: int = 2
    convergence_stop: int = 50
    convergence_step: int = 2

    default_intervals: int = 10
    default_rules: tuple[str, ...] = ("Trapezoidal", "Simpson1/3", "Simpson3/8", "MonteCarlo")

    plot_samples: int = 200

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        return _coerce(self, overrides)

    def convergence_range(self) -> range:
        return range(int(self.convergence_start), int(self.convergence_stop) + 1, int(self.convergence_step))


DEFAULT_CONFIG = EngineConfig()


def _coerce(base: EngineConfig, overrides: Mapping[str, Any]) -> EngineConfig:
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ParameterError(f"Unknown configuration keys: {', '.join(unknown)}")
    values = dict(overrides)
    if "default_rules" in values:
        values["default_rules"] = tuple(values["default_rules"])
    if "probe_points" in values:
        values["probe_points"] = tuple(float(v) for v in values["probe_points"])
    cfg = replace(base, **values)
    if cfg.derivative_steps < 5 or cfg.mixed_derivative_steps < 3:
        raise ParameterError("Derivative grids need at least 5 (fourth) and 3 (second) steps.")
    if cfg.convergence_step <= 0 or cfg.convergence_start < 1:
        raise ParameterError("Convergence sweep needs a positive start and step.")
    return cfg


def load_engine_config(path: str | Path, base: EngineConfig | None = None) -> EngineConfig:
    """Read a JSON object of overrides on top of ``base`` (defaults when omitted)."""
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ParameterError(f"Config file must contain a JSON object: {p}")
    return _coerce(base or DEFAULT_CONFIG, data)
