from integral_calculator.config import DEFAULT_CONFIG, EngineConfig, load_engine_config
from integral_calculator.derivatives import fourth_derivative_bound, second_derivative_bound
from integral_calculator.engine import (
    IntegrationRequest,
    calculate,
    convergence_sweep,
    make_request,
    reference_integral,
    run_rule,
)
from integral_calculator.errors import CompileError, EvaluationFailure, IntegrationError, ParameterError
from integral_calculator.expression import CompiledExpression, compile_expression, normalize_expression
from integral_calculator.functions import (
    PREDEFINED_FUNCTIONS,
    IntegrableFunction,
    get_predefined,
    resolve_function,
)
from integral_calculator.results import CalculationReport, ConvergencePoint, RuleResult, aggregate
from integral_calculator.rules import RULES, QuadratureRule, create_rule, resolve_rule_id

__all__ = [
    "DEFAULT_CONFIG",
    "EngineConfig",
    "load_engine_config",
    "fourth_derivative_bound",
    "second_derivative_bound",
    "IntegrationRequest",
    "calculate",
    "convergence_sweep",
    "make_request",
    "reference_integral",
    "run_rule",
    "CompileError",
    "EvaluationFailure",
    "IntegrationError",
    "ParameterError",
    "CompiledExpression",
    "compile_expression",
    "normalize_expression",
    "PREDEFINED_FUNCTIONS",
    "IntegrableFunction",
    "get_predefined",
    "resolve_function",
    "CalculationReport",
    "ConvergencePoint",
    "RuleResult",
    "aggregate",
    "RULES",
    "QuadratureRule",
    "create_rule",
    "resolve_rule_id",
]
