from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from tokenize import NAME, NUMBER, OP
from typing import Callable

import numpy as np
import sympy as sp
from sympy import lambdify, symbols
from sympy.parsing.sympy_parser import (
    convert_xor,
    parse_expr,
    standard_transformations,
    stringify_expr,
)

from integral_calculator.config import DEFAULT_CONFIG, EngineConfig
from integral_calculator.errors import CompileError

logger = logging.getLogger(__name__)

x_sym = symbols('x')


# The parser passes evaluate=False to these, so they must accept it.
def _csc(arg, evaluate=True):
    return sp.Pow(sp.sin(arg, evaluate=evaluate), -1, evaluate=evaluate)


def _sec(arg, evaluate=True):
    return sp.Pow(sp.cos(arg, evaluate=evaluate), -1, evaluate=evaluate)


def _cot(arg, evaluate=True):
    return sp.Pow(sp.tan(arg, evaluate=evaluate), -1, evaluate=evaluate)


def _log10(arg, evaluate=True):
    return sp.log(arg, 10)


# Input spelling -> canonical name handed to the parser.
FUNCTION_NAMES = {
    "sin": "sin", "cos": "cos", "tan": "tan",
    "csc": "csc", "sec": "sec", "cot": "cot",
    "asin": "asin", "arcsin": "asin",
    "acos": "acos", "arccos": "acos",
    "atan": "atan", "arctan": "atan",
    "sinh": "sinh", "cosh": "cosh", "tanh": "tanh",
    "sqrt": "sqrt", "abs": "abs", "exp": "exp",
    "ln": "log",        # natural
    "log": "log10",     # base 10
    "log10": "log10",
}
CONSTANT_NAMES = {"e": "E", "pi": "pi"}
VARIABLE_NAME = "x"

SAFE_LOCALS = {
    "E": sp.E, "pi": sp.pi, "x": x_sym,
    "sin": sp.sin, "cos": sp.cos, "tan": sp.tan,
    "csc": _csc, "sec": _sec, "cot": _cot,
    "asin": sp.asin, "acos": sp.acos, "atan": sp.atan,
    "sinh": sp.sinh, "cosh": sp.cosh, "tanh": sp.tanh,
    "sqrt": sp.sqrt, "abs": sp.Abs, "exp": sp.exp,
    "log": sp.log, "log10": _log10,
}

# Python's tokenizer reads "x2" as one name, so lexemes are separated first.
_LEXEME_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?|[a-z]+\d*|\*\*|[-+*/^()]")

_ENDS_VALUE = {"number", "var", "const", "close"}
_STARTS_VALUE = {"number", "var", "const", "func", "open"}


@dataclass(frozen=True)
class CompiledExpression:
    raw_text: str
    normalized_text: str
    expr: sp.Expr = field(repr=False)
    func: Callable = field(repr=False, compare=False)

    def __call__(self, x):
        return self.func(x)


# ===== Normalisation =====

def _split_lexemes(s: str) -> str:
    lexemes = []
    pos = 0
    while pos < len(s):
        m = _LEXEME_RE.match(s, pos)
        if m is None:
            raise CompileError(f"Invalid input: unexpected character {s[pos]!r} at position {pos}.",
                               kind="syntax", normalized_text=s)
        lexeme = m.group(0)
        # "x2" -> "x", "2"; "log10" stays whole
        if lexeme[0].isalpha() and lexeme[-1].isdigit() and lexeme not in FUNCTION_NAMES:
            name = lexeme.rstrip("0123456789")
            lexemes.extend([name, lexeme[len(name):]])
        else:
            lexemes.append(lexeme)
        pos = m.end()
    return " ".join(lexemes)


def _token_kind(toknum: int, tokval: str) -> str | None:
    if toknum == NUMBER:
        return "number"
    if toknum == OP:
        return {"(": "open", ")": "close"}.get(tokval, "op")
    if toknum != NAME:
        return None
    if tokval == VARIABLE_NAME:
        return "var"
    if tokval in CONSTANT_NAMES:
        return "const"
    if tokval in FUNCTION_NAMES:
        return "func"
    raise CompileError(f"Unknown name {tokval!r}: only variable x and the supported functions are allowed.",
                       kind="syntax")


def resolve_names(tokens, local_dict, global_dict):
    """
    sympy_parser transformation: whitelist names, fold synonyms to their
    canonical function, and insert '*' for implicit multiplication
    (2x, x2, )x, )(, x(, 2sin(x), 2pi).
    """
    result = []
    prev = None
    for i, (toknum, tokval) in enumerate(tokens):
        kind = _token_kind(toknum, tokval)
        if kind == "func":
            if i + 1 >= len(tokens) or tokens[i + 1] != (OP, "("):
                raise CompileError(f"Function {tokval!r} must be followed by '('.", kind="syntax")
            tokval = FUNCTION_NAMES[tokval]
        elif kind == "const":
            tokval = CONSTANT_NAMES[tokval]
        if prev in _ENDS_VALUE and kind in _STARTS_VALUE:
            result.append((OP, "*"))
        result.append((toknum, tokval))
        if kind is not None:
            prev = kind
    return result


def normalize_expression(text: str) -> str:
    """
    Rewrite free-form input into the text handed to the parser.
    - case-fold, drop whitespace
    - ^ -> **, ln -> natural log, log -> base-10 log, arc* synonyms collapsed
    - implicit multiplication: 2x, x2, )x, )(, x(, 2sin(x), 2pi
    """
    s = re.sub(r"\s+", "", str(text).lower())
    if s == "":
        raise CompileError("Empty input.", kind="syntax", normalized_text="")
    spaced = _split_lexemes(s)
    try:
        rewritten = stringify_expr(spaced, {}, {}, (resolve_names, convert_xor))
    except CompileError as e:
        e.normalized_text = s
        raise
    except Exception as e:
        raise CompileError(f"Invalid input: {e}", kind="syntax", normalized_text=s) from e
    return re.sub(r"\s+", "", rewritten)


# ===== Compilation =====

def _exp_form(expr):
    """E**u -> exp(u), leaving every other node unevaluated."""
    if expr.is_Pow and expr.base is sp.E:
        return sp.exp(_exp_form(expr.exp), evaluate=False)
    args = tuple(_exp_form(a) for a in expr.args)
    if args == expr.args:
        return expr
    return expr.func(*args, evaluate=False)


def _probe(func: Callable, points) -> list[float]:
    good = []
    for p in points:
        try:
            with np.errstate(all="ignore"):
                v = func(float(p))
            if np.iscomplexobj(v):
                v = complex(v)
                if v.imag != 0:
                    continue
                v = v.real
            v = float(v)
        except Exception:
            continue
        if np.isfinite(v):
            good.append(float(p))
    return good


def compile_expression(text: str, config: EngineConfig | None = None) -> CompiledExpression:
    """
    Turn a math expression in x into a numeric callable.
    The tree keeps the operations as typed (x/x stays x/x) so evaluation sees
    every singularity the input has.
    Raises CompileError(kind="syntax") for text outside the grammar and
    CompileError(kind="domain") when no validation probe gives a finite value.
    """
    cfg = config or DEFAULT_CONFIG
    prepared = normalize_expression(text)
    try:
        expr = parse_expr(prepared, local_dict=dict(SAFE_LOCALS),
                          transformations=standard_transformations, evaluate=False)
    except Exception as e:
        raise CompileError(f"Invalid input: {e}", kind="syntax", normalized_text=prepared) from e
    if not isinstance(expr, sp.Expr):
        raise CompileError(f"Invalid input: {text!r} is not an expression.", kind="syntax", normalized_text=prepared)
    if expr.free_symbols - {x_sym}:
        raise CompileError("Only variable x is allowed.", kind="syntax", normalized_text=prepared)

    expr = _exp_form(expr)
    normalized = sp.sstr(expr)
    domain_error = CompileError(
        "Function does not produce valid numeric results. Check your syntax and domain.",
        kind="domain", normalized_text=normalized,
    )
    if expr.has(sp.zoo, sp.nan, sp.oo, -sp.oo):
        raise domain_error
    try:
        func = lambdify(x_sym, expr, modules="numpy")
    except Exception as e:
        raise domain_error from e

    good = _probe(func, cfg.probe_points)
    if not good:
        raise domain_error
    logger.debug("Compiled %r -> %s (finite at probes %s)", text, normalized, good)
    return CompiledExpression(raw_text=str(text), normalized_text=normalized, expr=expr, func=func)
