from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from integral_calculator.config import DEFAULT_CONFIG, load_engine_config
from integral_calculator.engine import calculate
from integral_calculator.errors import CompileError
from integral_calculator.functions import PREDEFINED_FUNCTIONS, get_predefined, resolve_function
from integral_calculator.report import (
    format_convergence_table,
    format_share_text,
    format_text_report,
    write_json_report,
    write_text_report,
)
from integral_calculator.rules import RULES

logger = logging.getLogger("integral_calculator")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="integral-calc",
        description="Approximate a definite integral with several quadrature rules.",
    )
    ap.add_argument("function", nargs="?", help="Expression in x (e.g. '2x^2 + sin(x)') or a predefined id")
    ap.add_argument("-a", "--lower", type=float, default=0.0, help="Lower limit (default: 0)")
    ap.add_argument("-b", "--upper", type=float, default=1.0, help="Upper limit (default: 1)")
    ap.add_argument("-n", "--intervals", type=int, default=None, help="Number of intervals")
    ap.add_argument("-r", "--rules", action="append", default=None, metavar="RULE[,RULE...]",
                    help=f"Rules to run, comma separated or repeated (default: {','.join(DEFAULT_CONFIG.default_rules)})")
    ap.add_argument("--seed", type=int, default=None, help="Seed for Monte Carlo sampling")
    ap.add_argument("--convergence", action="store_true", help="Also sweep n = 2, 4, ..., 50")
    ap.add_argument("--reference", action="store_true",
                    help="Adaptive-quadrature reference value when no exact value is known")
    ap.add_argument("--json", dest="json_path", default=None, help="Write the JSON document here")
    ap.add_argument("--txt", dest="txt_path", default=None, help="Write the text report here")
    ap.add_argument("--plot", dest="plot_path", default=None, help="Save the function plot (PNG)")
    ap.add_argument("--convergence-plot", dest="convergence_plot_path", default=None,
                    help="Save the convergence chart (implies --convergence)")
    ap.add_argument("--results-plot", dest="results_plot_path", default=None,
                    help="Save the bar chart comparing the rules")
    ap.add_argument("--share", action="store_true", help="Print the short summary instead of the full report")
    ap.add_argument("--config", default=None, help="JSON file with engine overrides")
    ap.add_argument("--list-functions", action="store_true", help="List predefined functions and exit")
    ap.add_argument("--list-rules", action="store_true", help="List integration rules and exit")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    return ap


def _split_rules(values: Sequence[str] | None) -> list[str] | None:
    if values is None:
        return None
    return [name.strip() for value in values for name in value.split(",") if name.strip()]


def _list_functions() -> str:
    lines = []
    for key in PREDEFINED_FUNCTIONS:
        entry = get_predefined(key)
        lines.append(f"{key:<18} {entry.label:<16} {entry.description}")
    return "\n".join(lines)


def _list_rules() -> str:
    lines = []
    for rule_id, cls in RULES.items():
        lines.append(f"{rule_id:<12} {cls.name:<18} n >= {cls.min_intervals:<3} {cls.description}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    level = logging.WARNING if args.verbose == 0 else logging.INFO if args.verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if args.list_functions:
        print(_list_functions())
        return 0
    if args.list_rules:
        print(_list_rules())
        return 0
    if not args.function:
        ap.error("a function (expression or predefined id) is required")

    try:
        config = load_engine_config(args.config) if args.config else DEFAULT_CONFIG
        sweep = args.convergence or bool(args.convergence_plot_path)
        report = calculate(
            args.function, args.lower, args.upper, args.intervals, _split_rules(args.rules),
            config=config, seed=args.seed, convergence=sweep, reference=args.reference,
        )
    except CompileError as e:
        detail = f" (normalized: {e.normalized_text})" if e.normalized_text else ""
        print(f"Error: {e}{detail}", file=sys.stderr)
        return 2
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.share:
        print(format_share_text(report))
    else:
        print(format_text_report(report), end="")
    if report.convergence and not args.share:
        print()
        print(format_convergence_table(report), end="")

    if args.json_path:
        logger.info("JSON written to %s", write_json_report(report, args.json_path))
    if args.txt_path:
        logger.info("Text report written to %s", write_text_report(report, args.txt_path))
    if args.plot_path or args.convergence_plot_path or args.results_plot_path:
        from integral_calculator.plotting import plot_convergence, plot_function, plot_results, save_figure

        if args.plot_path:
            function = resolve_function(args.function, config)
            samples = report.samples.get("MonteCarlo", ())
            fig = plot_function(function, report.lower, report.upper, label=function.label,
                                samples=samples, n_points=config.plot_samples)
            logger.info("Function plot written to %s", save_figure(fig, args.plot_path))
        if args.convergence_plot_path:
            logger.info("Convergence chart written to %s",
                        save_figure(plot_convergence(report), args.convergence_plot_path))
        if args.results_plot_path:
            logger.info("Results chart written to %s", save_figure(plot_results(report), args.results_plot_path))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
