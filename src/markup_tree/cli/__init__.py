"""Command-line interface module for Markup Tree.

This module provides the ``markup-tree`` tool for parsing, converting and
validating markup files.
"""

from .main import main

__all__ = ["main"]
