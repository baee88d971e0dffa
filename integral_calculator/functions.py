from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Optional

import numpy as np

from integral_calculator.config import DEFAULT_CONFIG, EngineConfig
from integral_calculator.expression import compile_expression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntegrableFunction:
    """
    The function being integrated: a predefined entry (key set, exact() available)
    or a compiled custom expression (key None, no exact value).
    """

    key: Optional[str]
    func: Callable = field(repr=False, compare=False)
    label: str
    description: str = ""
    source_text: str = ""
    antiderivative: Optional[Callable] = field(default=None, repr=False, compare=False)

    def __call__(self, x):
        return self.func(x)

    @property
    def has_exact(self) -> bool:
        return self.antiderivative is not None

    def exact(self, a: float, b: float) -> Optional[float]:
        """F(b) - F(a) from the closed-form antiderivative; None if unknown or not finite there."""
        if self.antiderivative is None:
            return None
        try:
            with np.errstate(all="ignore"):
                value = float(self.antiderivative(float(b))) - float(self.antiderivative(float(a)))
        except (ArithmeticError, ValueError, TypeError):
            return None
        return value if math.isfinite(value) else None


# key -> (display label, antiderivative, description)
PREDEFINED_FUNCTIONS = {
    "x^2": ("x²", "x^3/3", "Simple quadratic function - good for testing"),
    "sin(x)": ("sin(x)", "-cos(x)", "Trigonometric function with smooth oscillations"),
    "e^x": ("eˣ", "e^x", "Exponential growth function"),
    "1/x": ("1/x", "ln(x)", "Rational function - challenging near x=0"),
    "x^3": ("x³", "x^4/4", "Cubic function - tests higher-order accuracy"),
    "x^4 - 2x^2 + 3": ("x⁴ - 2x² + 3", "x^5/5 - 2x^3/3 + 3x",
                       "Quartic polynomial - common in beam bending and statics"),
    "x*sin(x)": ("x·sin(x)", "sin(x) - x*cos(x)", "Product of linear and sine - vibration, AC circuits"),
    "x^2*e^x": ("x²·eˣ", "e^x*(x^2 - 2x + 2)", "Quadratic times exponential - heat transfer, population models"),
    "1/(1+x^2)": ("1/(1+x²)", "atan(x)", "Lorentzian - resonance, probability"),
    "sqrt(1-x^2)": ("√(1-x²)", "0.5*(x*sqrt(1-x^2) + asin(x))", "Semicircle - geometry, statics"),
    "ln(x)": ("ln(x)", "x*ln(x) - x", "Natural logarithm - thermodynamics, entropy"),
    "exp(-x)": ("e^{-x}", "-exp(-x)", "Exponential decay - RC circuits, radioactive decay"),
}


@lru_cache(maxsize=None)
def _build_predefined(key: str, config: EngineConfig) -> IntegrableFunction:
    label, antiderivative, description = PREDEFINED_FUNCTIONS[key]
    integrand = compile_expression(key, config)
    # fixed text, validated on the default probes
    primitive = compile_expression(antiderivative)
    return IntegrableFunction(
        key=key,
        func=integrand.func,
        label=label,
        description=description,
        source_text=key,
        antiderivative=primitive.func,
    )


def get_predefined(key: str, config: EngineConfig | None = None) -> IntegrableFunction:
    """
    Build (once per config) the predefined entry ``key``; KeyError if it does not exist.
    The integrand is validated on the probe points of ``config``.
    """
    return _build_predefined(key, config or DEFAULT_CONFIG)


def custom_function(text: str, config: EngineConfig | None = None) -> IntegrableFunction:
    compiled = compile_expression(text, config)
    return IntegrableFunction(
        key=None,
        func=compiled.func,
        label=compiled.raw_text.strip(),
        description=f"Custom: {compiled.normalized_text}",
        source_text=compiled.raw_text,
    )


def resolve_function(source, config: EngineConfig | None = None) -> IntegrableFunction:
    """
    Predefined id -> predefined entry (with exact values); anything else is compiled as
    a custom expression. An IntegrableFunction passes through unchanged.
    """
    if isinstance(source, IntegrableFunction):
        return source
    text = str(source).strip()
    if text in PREDEFINED_FUNCTIONS:
        return get_predefined(text, config)
    logger.debug("%r is not a predefined function; compiling it", text)
    return custom_function(text, config)
