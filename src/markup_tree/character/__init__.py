"""Character-level helpers: predefined entity decoding and escaping."""

from .entities import (
    PREDEFINED_ENTITIES,
    decode_entities,
    escape_attribute,
    escape_text,
)

__all__ = [
    "PREDEFINED_ENTITIES",
    "decode_entities",
    "escape_attribute",
    "escape_text",
]
