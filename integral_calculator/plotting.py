from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
from matplotlib.figure import Figure

from integral_calculator.results import CalculationReport
from integral_calculator.rules import RULES
from integral_calculator.sampling import RealFunction, sample_function

# =========================
# ====== Plot (Files) =====
# =========================


def _rule_style(rule_id: str) -> tuple[str, str]:
    cls = RULES.get(rule_id)
    if cls is None:
        return rule_id, "#6b7280"
    return cls.name, cls.color


def plot_function(func: RealFunction, lower: float, upper: float, *, label: str = "f(x)",
                  samples: Sequence[tuple[float, float]] = (), n_points: int = 200,
                  fig: Figure | None = None) -> Figure:
    """Curve of f over [lower, upper]; undefined points are left as gaps. Optional Monte Carlo samples."""
    fig = fig or Figure(figsize=(8, 3.6), dpi=100)
    ax = fig.add_subplot(111)
    x_vals = np.linspace(lower, upper, n_points + 1)
    y_vals = sample_function(func, x_vals)
    y_vals = np.where(np.isfinite(y_vals), y_vals, np.nan)
    ax.plot(x_vals, y_vals, label=f"f(x) = {label}")
    ax.fill_between(x_vals, 0, y_vals, where=np.isfinite(y_vals), alpha=0.15)
    if samples:
        sx, sy = zip(*samples)
        ax.scatter(sx, sy, s=8, color=RULES["MonteCarlo"].color, label="Monte Carlo samples", zorder=3)
    ax.axhline(0, linewidth=0.8, linestyle='--')
    ax.axvline(0, linewidth=0.8, linestyle='--')
    ax.set_title(f"Function Graph: {label}")
    ax.set_xlabel("x")
    ax.set_ylabel("f(x)")
    ax.grid(True)
    ax.legend()
    return fig


def plot_convergence(report: CalculationReport, fig: Figure | None = None) -> Figure:
    fig = fig or Figure(figsize=(8, 4), dpi=100)
    ax = fig.add_subplot(111)
    for rule_id in report.rules:
        ns = [p.intervals for p in report.convergence if rule_id in p.values]
        vals = [p.values[rule_id] for p in report.convergence if rule_id in p.values]
        if not ns:
            continue
        name, color = _rule_style(rule_id)
        ax.plot(ns, vals, marker="o", markersize=3, color=color, label=name)
    if report.exact_value is not None:
        ax.axhline(report.exact_value, color="black", linestyle="--", linewidth=1.0, label="Exact Value")
    ax.set_title("Convergence Analysis")
    ax.set_xlabel("Number of intervals")
    ax.set_ylabel("Approximation")
    ax.grid(True)
    ax.legend()
    return fig


def plot_results(report: CalculationReport, fig: Figure | None = None) -> Figure:
    fig = fig or Figure(figsize=(8, 4), dpi=100)
    ax = fig.add_subplot(111)
    ok = [r for r in report.results if r.ok]
    names = [_rule_style(r.rule)[0] for r in ok]
    colors = [_rule_style(r.rule)[1] for r in ok]
    ax.bar(names, [r.value for r in ok], color=colors)
    if report.exact_value is not None:
        ax.axhline(report.exact_value, color="black", linestyle="--", linewidth=1.0, label="Exact Value")
        ax.legend()
    ax.set_title("Results Comparison")
    ax.set_ylabel("Approximation")
    ax.grid(True, axis="y")
    return fig


def save_figure(fig: Figure, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(p)
    return p
