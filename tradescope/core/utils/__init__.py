"""Utility helpers."""

from tradescope.core.utils.errors import (
    ArtifactError,
    ComputationError,
    ConfigLoadError,
    DataValidationError,
    DegenerateInputError,
    InputShapeError,
    TradeScopeError,
    exit_code_for_exception,
)
from tradescope.core.utils.logging import configure_logging, get_logger
from tradescope.core.utils.manifest import RunManifestWriter

__all__ = [
    "ArtifactError",
    "ComputationError",
    "ConfigLoadError",
    "DataValidationError",
    "DegenerateInputError",
    "InputShapeError",
    "RunManifestWriter",
    "TradeScopeError",
    "configure_logging",
    "exit_code_for_exception",
    "get_logger",
]
