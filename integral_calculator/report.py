from __future__ import annotations

import json
import math
from datetime import datetime
from pathlib import Path

from integral_calculator.results import CalculationReport
from integral_calculator.rules import RULES


def _display_name(rule_id: str) -> str:
    cls = RULES.get(rule_id)
    return cls.name if cls is not None else rule_id


def _fmt(value, fmt: str, prefix: str = "") -> str:
    if value is None or not math.isfinite(value):
        return "N/A"
    return f"{prefix}{value:{fmt}}"


def _header(report: CalculationReport, title: str) -> list[str]:
    generated = datetime.fromisoformat(report.timestamp).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    return [
        title,
        f"Generated: {generated}",
        f"Function: {report.function_label}",
        f"Integration Range: [{report.lower:g}, {report.upper:g}]",
    ]


def format_text_report(report: CalculationReport) -> str:
    lines = _header(report, "Numerical Integration Results")
    lines.append(f"Number of Intervals: {report.intervals}")
    lines.append(f"Selected Methods: {', '.join(_display_name(r) for r in report.rules)}")
    lines.append("")
    if report.exact_value is not None:
        lines.append(f"Exact Value: {report.exact_value:.10f}")
        lines.append("")
    elif report.reference is not None:
        ref, err = report.reference
        lines.append(f"Reference Value (adaptive quadrature): {ref:.10f} (±{err:.1e})")
        lines.append("")

    lines.append("RESULTS:")
    lines.append(f"{'Method':<20} {'Value':<15} {'Abs Error':<15} {'Rel Error (%)':<15} {'Error Estimate':<15}")
    lines.append("-" * 80)
    for r in report.results:
        name = _display_name(r.rule)
        if not r.ok:
            lines.append(f"{name:<20} FAILED: {r.failure}")
            continue
        lines.append(
            f"{name:<20} "
            f"{_fmt(r.value, '.6f'):<15} "
            f"{_fmt(r.absolute_error, '.6f'):<15} "
            f"{_fmt(r.relative_error, '.4f'):<15} "
            f"{_fmt(r.error_estimate, '.6f', '±'):<15}"
        )
    return "\n".join(line.rstrip() for line in lines) + "\n"


def format_convergence_table(report: CalculationReport) -> str:
    lines = _header(report, "Convergence Analysis Data")
    lines.append("")
    head = f"{'Intervals':<12} " + "".join(f"{_display_name(r):<15} " for r in report.rules)
    if report.exact_value is not None:
        head += f"{'Exact Value':<15}"
    lines.append(head)
    lines.append("-" * (12 + len(report.rules) * 15 + (15 if report.exact_value is not None else 0)))
    for point in report.convergence:
        row = f"{point.intervals:<12} "
        for r in report.rules:
            row += f"{_fmt(point.values.get(r), '.6f'):<15} "
        if report.exact_value is not None:
            row += f"{report.exact_value:<15.6f}"
        lines.append(row)
    return "\n".join(line.rstrip() for line in lines) + "\n"


def format_share_text(report: CalculationReport) -> str:
    lines = [
        "Numerical Integration Results:",
        f"Function: {report.function_label}",
        f"Limits: [{report.lower:g}, {report.upper:g}]",
    ]
    for r in report.results:
        lines.append(f"{_display_name(r.rule)}: {_fmt(r.value, '.6f') if r.ok else 'failed'}")
    if report.exact_value is not None:
        lines.append(f"Exact: {report.exact_value:.6f}")
    return "\n".join(lines)


def report_to_dict(report: CalculationReport) -> dict:
    return {
        "function": report.function_label,
        "source": report.source_text,
        "limits": {"lower": report.lower, "upper": report.upper},
        "intervals": report.intervals,
        "methods": list(report.rules),
        "results": [r.as_dict() for r in report.results],
        "exactValue": report.exact_value,
        "reference": (None if report.reference is None
                      else {"value": report.reference[0], "abserr": report.reference[1]}),
        "convergence": [p.as_dict() for p in report.convergence],
        "timestamp": report.timestamp,
    }


def write_json_report(report: CalculationReport, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return p


def write_text_report(report: CalculationReport, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    content = format_text_report(report)
    if report.convergence:
        content += "\n" + format_convergence_table(report)
    p.write_text(content, encoding="utf-8")
    return p
