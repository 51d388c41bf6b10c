"""Markup Tree.

A lightweight loader that turns XML-like markup into a navigable tree of
named nodes, with attributes, text and children kept apart. Malformed input
is handled best-effort and reported through diagnostics; a strict mode stops
at the first error instead.

Progressive API Disclosure:
- Level 1: Simple functions - parse(), parse_string(), parse_file()
- Level 2: Configured parser - MarkupTreeParser class
"""

__version__ = "0.1.0"
__author__ = "Markup Tree Team"

# Progressive API disclosure - Level 1: Simple functions
# Progressive API disclosure - Level 2: Configured parser
from .api import MarkupTreeParser, parse, parse_file, parse_string

# Configuration classes for advanced usage
from .shared.config import (
    AttributeConfig,
    MismatchPolicy,
    ParserConfig,
    TreeConfig,
    UnclosedPolicy,
)

# Error model
from .shared.result import DiagnosticSeverity, ErrorKind, ParseError, ParseFailure

# Core result objects for all API levels
from .tree import Node, ParseResult, serialize

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple parsing functions
    "parse",
    "parse_string",
    "parse_file",

    # Level 2: Configured parser
    "MarkupTreeParser",

    # Result objects and data structures
    "Node",
    "ParseResult",
    "serialize",

    # Configuration classes
    "AttributeConfig",
    "MismatchPolicy",
    "ParserConfig",
    "TreeConfig",
    "UnclosedPolicy",

    # Error model
    "DiagnosticSeverity",
    "ErrorKind",
    "ParseError",
    "ParseFailure",
]
