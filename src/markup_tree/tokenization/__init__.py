"""Tokenization layer for the markup loader.

Key Components:
    TagScanner: Iterates over the ``<...>`` spans of the input
    find_tag_span / classify_tag: Locate and classify a single tag
    Tag / TagKind: A classified tag and its kind
    AttributeTokenizer: State machine splitting a tag interior into attributes
    AttributeState: States of the attribute tokenizer
"""

from .attributes import AttributeState, AttributeTokenizer
from .scanner import (
    TRIM_CHARACTERS,
    WHITESPACE,
    DiagnosticSink,
    Tag,
    TagKind,
    TagScanner,
    classify_tag,
    find_tag_span,
)

__all__ = [
    "AttributeState",
    "AttributeTokenizer",
    "DiagnosticSink",
    "TRIM_CHARACTERS",
    "WHITESPACE",
    "Tag",
    "TagKind",
    "TagScanner",
    "classify_tag",
    "find_tag_span",
]
