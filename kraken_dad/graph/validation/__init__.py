from kraken_dad.graph.validation.diagnostics import render_diagnostic, render_diagnostics
from kraken_dad.graph.validation.models import Diagnostic, ValidationResult, error, warning
from kraken_dad.graph.validation.validator import StrategyValidator, validate_strategy

__all__ = [
    "Diagnostic",
    "StrategyValidator",
    "ValidationResult",
    "error",
    "render_diagnostic",
    "render_diagnostics",
    "validate_strategy",
    "warning",
]
