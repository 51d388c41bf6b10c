"""Shared utilities for the markup loader.

This module provides the configuration objects, diagnostic and failure types,
and logging helpers used across all processing layers.
"""

from .config import (
    AttributeConfig,
    ConfigError,
    ConfigValidationError,
    MismatchPolicy,
    ParserConfig,
    TreeConfig,
    UnclosedPolicy,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)
from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ErrorKind,
    ParseError,
    ParseFailure,
    PerformanceMetrics,
    position_for,
)

__all__ = [
    "AttributeConfig",
    "ConfigError",
    "ConfigValidationError",
    "MismatchPolicy",
    "ParserConfig",
    "TreeConfig",
    "UnclosedPolicy",
    "CorrelationLogger",
    "configure_logging",
    "get_logger",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "ErrorKind",
    "ParseError",
    "ParseFailure",
    "PerformanceMetrics",
    "position_for",
]
