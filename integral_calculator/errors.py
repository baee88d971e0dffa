from __future__ import annotations


class IntegrationError(ValueError):
    """Base class for every error raised by the integration engine."""


class CompileError(IntegrationError):
    """
    Raised when an expression cannot be turned into a numeric function.
    kind = "syntax": the text does not parse, or uses names outside the grammar
    kind = "domain": it parses, but no validation probe gives a finite value
    """

    def __init__(self, message: str, *, kind: str = "syntax", normalized_text: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.normalized_text = normalized_text


class ParameterError(IntegrationError):
    """Invalid bounds, interval count or rule selection."""


class EvaluationFailure(IntegrationError):
    """A rule could not evaluate the integrand at one of its nodes."""
