"""Tree layer for the markup loader.

Key Components:
    Node: Labelled element with attributes, ordered child keys and text
    TreeBuilder: Stack-based assembly of nodes from scanned tags
    ParseResult: Loaded tree plus diagnostics and failure information
    serialize: Render a tree back to markup
"""

from .builder import RESERVED_NAMES, ParseResult, TreeBuilder
from .node import Node
from .serializer import serialize

__all__ = [
    "RESERVED_NAMES",
    "Node",
    "ParseResult",
    "TreeBuilder",
    "serialize",
]
