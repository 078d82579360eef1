"""Domain-specific error taxonomy for TradeScope."""

from __future__ import annotations


class TradeScopeError(Exception):
    """Base TradeScope error with CLI exit-code metadata."""

    exit_code: int = 1
    error_code: str = "tradescope_error"


class ConfigLoadError(TradeScopeError, ValueError):
    """Configuration loading/validation error."""

    exit_code = 2
    error_code = "config_error"


class DataValidationError(TradeScopeError, ValueError):
    """Price bar or closed position input validation error."""

    exit_code = 4
    error_code = "data_validation_error"


class DegenerateInputError(TradeScopeError, ValueError):
    """No trades or no bars: resolved as a successful zero-value report."""

    exit_code = 6
    error_code = "degenerate_input"


class ComputationError(TradeScopeError, ArithmeticError):
    """Metric computation failure."""

    exit_code = 7
    error_code = "computation_error"


class InputShapeError(ComputationError):
    """Return series or position indices do not line up with the bar sequence."""

    error_code = "input_shape_error"


class ArtifactError(TradeScopeError, RuntimeError):
    """Artifact write/read error."""

    exit_code = 10
    error_code = "artifact_error"


def exit_code_for_exception(exc: Exception) -> int:
    """
    Resolve process exit code for an exception.

    Args:
        exc: Raised exception.

    Returns:
        Integer process exit code.
    """
    return int(getattr(exc, "exit_code", 1))
