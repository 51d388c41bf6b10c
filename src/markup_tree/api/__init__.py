"""Public parsing API and conversion adapters."""

from .adapters import (
    AdapterMetadata,
    AdapterType,
    BeautifulSoupAdapter,
    ConversionResult,
    ElementTreeAdapter,
    IntegrationAdapter,
    LegacyArrayAdapter,
    LxmlAdapter,
    PandasAdapter,
    get_adapter,
    list_available_adapters,
    register_adapter,
)
from .parser import (
    InputType,
    MarkupTreeParser,
    decode_markup,
    parse,
    parse_file,
    parse_string,
)

__all__ = [
    "InputType",
    "MarkupTreeParser",
    "decode_markup",
    "parse",
    "parse_file",
    "parse_string",
    "AdapterMetadata",
    "AdapterType",
    "BeautifulSoupAdapter",
    "ConversionResult",
    "ElementTreeAdapter",
    "IntegrationAdapter",
    "LegacyArrayAdapter",
    "LxmlAdapter",
    "PandasAdapter",
    "get_adapter",
    "list_available_adapters",
    "register_adapter",
]
