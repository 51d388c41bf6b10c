"""Predefined XML entity handling.

Only the five entities predefined by XML are recognized. Numeric character
references and any other ``&name;`` sequence are left untouched.
"""

import re
from typing import Dict

PREDEFINED_ENTITIES: Dict[str, str] = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "apos": "'",
    "quot": '"',
}

_ENTITY_PATTERN = re.compile(r"&(amp|lt|gt|apos|quot);")

_TEXT_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;"}
_ATTRIBUTE_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"}

_TEXT_ESCAPE_PATTERN = re.compile(r"[&<>]")
_ATTRIBUTE_ESCAPE_PATTERN = re.compile(r'[&<>"]')


def decode_entities(value: str) -> str:
    """Replace the predefined entities in a single left-to-right pass.

    Replacements never overlap and are not re-scanned, so ``&amp;lt;``
    decodes to ``&lt;`` rather than ``<``.

    Examples:
        >>> decode_entities("&lt;x&gt;")
        '<x>'
        >>> decode_entities("&amp;lt;")
        '&lt;'
    """
    if "&" not in value:
        return value
    return _ENTITY_PATTERN.sub(lambda match: PREDEFINED_ENTITIES[match.group(1)], value)


def escape_text(value: str) -> str:
    """Escape text content so the loader reads it back unchanged."""
    return _TEXT_ESCAPE_PATTERN.sub(lambda match: _TEXT_ESCAPES[match.group(0)], value)


def escape_attribute(value: str) -> str:
    """Escape a value for use inside a double-quoted attribute.

    ``>`` is escaped as well because the tag scanner does not understand
    quoting and would end the tag at a raw ``>``.
    """
    return _ATTRIBUTE_ESCAPE_PATTERN.sub(
        lambda match: _ATTRIBUTE_ESCAPES[match.group(0)], value
    )
