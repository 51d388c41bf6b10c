"""Integration adapters for converting loaded trees to other representations.

This module provides an adapter framework with bidirectional conversion
between ``ParseResult`` and the legacy flat-array view, the standard
library's ``xml.etree.ElementTree``, ``lxml.etree``, BeautifulSoup and
pandas DataFrames. Conversions never raise; failures are reported through
``ConversionResult``.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Type

from markup_tree.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ErrorKind,
    get_logger,
)
from markup_tree.tree import RESERVED_NAMES, Node, ParseResult, serialize

DEFAULT_WRAPPER_TAG = "document"


class AdapterType(Enum):
    """Types of integration adapters."""

    XML_LIBRARY = auto()     # XML processing libraries (ElementTree, lxml, BeautifulSoup)
    DATA_FRAME = auto()      # Data analysis libraries (pandas)
    LEGACY = auto()          # The flat mapping representation of older callers


@dataclass
class AdapterMetadata:
    """Metadata about an integration adapter."""

    name: str
    version: str
    adapter_type: AdapterType
    target_library: str
    description: str
    compatibility_notes: Optional[str] = None


@dataclass
class ConversionResult:
    """Result of a conversion operation."""

    success: bool
    converted_data: Any
    original_data: Any
    conversion_time_ms: float
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)


class IntegrationAdapter(ABC):
    """Abstract base class for all integration adapters.

    Subclasses convert a ``ParseResult`` into their target representation
    and back, reporting problems through ``ConversionResult`` rather than
    raising.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        """Initialize the integration adapter.

        Args:
            correlation_id: Optional correlation ID for request tracking
        """
        self.correlation_id = correlation_id
        self._logger = get_logger(__name__, correlation_id, self.__class__.__name__)

    @property
    @abstractmethod
    def metadata(self) -> AdapterMetadata:
        """Get adapter metadata."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the target library is available."""

    @abstractmethod
    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        """Convert ParseResult to target format."""

    @abstractmethod
    def from_target(self, target_data: Any) -> ConversionResult:
        """Convert target format to a ConversionResult holding a ParseResult."""

    def _diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            severity=severity,
            message=message,
            component=self.__class__.__name__,
            kind=kind,
            details=details,
            correlation_id=self.correlation_id,
        )

    def _create_error_result(
        self,
        error_message: str,
        original_data: Any,
        conversion_time_ms: float = 0.0
    ) -> ConversionResult:
        """Create a ConversionResult for error conditions."""
        self._logger.warning(
            "Conversion failed",
            extra={"adapter": self.metadata.name, "error": error_message}
        )
        return ConversionResult(
            success=False,
            converted_data=None,
            original_data=original_data,
            conversion_time_ms=conversion_time_ms,
            errors=[error_message],
            diagnostics=[
                self._diagnostic(
                    DiagnosticSeverity.ERROR, error_message, ErrorKind.INTERNAL
                )
            ]
        )


class AdapterRegistry:
    """Registry for managing integration adapters."""

    def __init__(self) -> None:
        self._adapters: Dict[str, Type[IntegrationAdapter]] = {}
        self._lock = threading.RLock()

    def register(self, adapter_class: Type[IntegrationAdapter]) -> None:
        """Register an adapter class under its metadata name."""
        with self._lock:
            metadata = adapter_class().metadata
            self._adapters[metadata.name] = adapter_class

    def get_adapter(
        self,
        adapter_name: str,
        correlation_id: Optional[str] = None
    ) -> Optional[IntegrationAdapter]:
        """Get an adapter instance by name.

        Returns:
            Adapter instance if registered and available, None otherwise
        """
        with self._lock:
            adapter_class = self._adapters.get(adapter_name)
        if adapter_class is None:
            return None
        instance = adapter_class(correlation_id)
        return instance if instance.is_available() else None

    def list_available_adapters(self) -> List[AdapterMetadata]:
        """List metadata of every registered adapter whose library is present."""
        with self._lock:
            adapter_classes = list(self._adapters.values())
        available = []
        for adapter_class in adapter_classes:
            instance = adapter_class()
            if instance.is_available():
                available.append(instance.metadata)
        return available


# Global adapter registry instance
_adapter_registry = AdapterRegistry()


def register_adapter(adapter_class: Type[IntegrationAdapter]) -> None:
    """Register an integration adapter globally."""
    _adapter_registry.register(adapter_class)


def get_adapter(
    adapter_name: str,
    correlation_id: Optional[str] = None
) -> Optional[IntegrationAdapter]:
    """Get a registered adapter instance, or None if unknown or unavailable."""
    return _adapter_registry.get_adapter(adapter_name, correlation_id)


def list_available_adapters() -> List[AdapterMetadata]:
    """List all available integration adapters."""
    return _adapter_registry.list_available_adapters()


class LegacyArrayAdapter(IntegrationAdapter):
    """Adapter for the flat mapping representation.

    Every node becomes one dict holding the bookkeeping keys ``NodeName``,
    ``Children`` (child keys in order), ``Parameters`` (attribute names in
    order) and ``Contents`` (only when the node has text), next to its
    attribute values and its child dicts. The document root holds only
    ``Children`` and the child dicts.

    Because everything shares one key space, a tag or attribute named like
    a bookkeeping key, or a child key equal to an attribute name, cannot be
    represented faithfully. Such collisions are reported as
    ``RESERVED_NAME`` warnings; the child entry wins.

    Example:
        >>> from markup_tree import parse
        >>> view = LegacyArrayAdapter().to_target(parse('<a x="1"><b>t</b></a>'))
        >>> view.converted_data["a"]["b"]["Contents"]
        't'
    """

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="legacy",
            version="1.0.0",
            adapter_type=AdapterType.LEGACY,
            target_library="builtins",
            description="Flat NodeName/Children/Parameters/Contents mapping",
            compatibility_notes="Names colliding with bookkeeping keys are lossy",
        )

    def is_available(self) -> bool:
        return True

    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        """Convert the loaded tree into nested flat dicts."""
        start_time = time.time()
        diagnostics: List[DiagnosticEntry] = []

        converted = self._flatten(parse_result.root, diagnostics)

        processing_time = (time.time() - start_time) * 1000
        return ConversionResult(
            success=True,
            converted_data=converted,
            original_data=parse_result,
            conversion_time_ms=processing_time,
            warnings=[diag.message for diag in diagnostics],
            metadata={"element_count": parse_result.element_count},
            diagnostics=diagnostics,
        )

    def from_target(self, target_data: Any) -> ConversionResult:
        """Rebuild a Node tree from a flat mapping produced by ``to_target``."""
        start_time = time.time()

        if not isinstance(target_data, dict) or "Children" not in target_data:
            return self._create_error_result(
                "Target data is not a legacy mapping with a 'Children' list",
                target_data,
                (time.time() - start_time) * 1000
            )

        try:
            root = self._unflatten(target_data)
        except (KeyError, TypeError) as e:
            return self._create_error_result(
                f"Malformed legacy mapping: {e}",
                target_data,
                (time.time() - start_time) * 1000
            )

        result = ParseResult(root=root, correlation_id=self.correlation_id)
        return ConversionResult(
            success=True,
            converted_data=result,
            original_data=target_data,
            conversion_time_ms=(time.time() - start_time) * 1000,
            metadata={"element_count": result.element_count},
        )

    def _flatten(self, root: Node, diagnostics: List[DiagnosticEntry]) -> Dict[str, Any]:
        converted: Dict[str, Any] = {"Children": list(root.children)}
        stack = [(root, converted)]

        while stack:
            node, target = stack.pop()
            for key, child in node.iter_children():
                entry = self._node_entry(child, diagnostics)
                if key in target:
                    self._collision(key, node, diagnostics)
                target[key] = entry
                stack.append((child, entry))

        return converted

    def _node_entry(self, node: Node, diagnostics: List[DiagnosticEntry]) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "NodeName": node.name,
            "Children": list(node.children),
            "Parameters": list(node.attributes),
        }
        if node.text:
            entry["Contents"] = node.text

        for name, value in node.attributes.items():
            if name in RESERVED_NAMES:
                self._collision(name, node, diagnostics)
                continue
            entry[name] = value
        return entry

    def _collision(self, name: str, node: Node, diagnostics: List[DiagnosticEntry]) -> None:
        diagnostics.append(self._diagnostic(
            DiagnosticSeverity.WARNING,
            f"Key '{name}' of element '{node.name}' collides with another entry",
            ErrorKind.RESERVED_NAME,
            {"name": name, "element": node.name},
        ))

    def _unflatten(self, data: Dict[str, Any]) -> Node:
        root = Node.create_root()
        stack = [(root, data)]

        while stack:
            node, source = stack.pop()
            for key in source["Children"]:
                child_data = source[key]
                child = Node(
                    name=child_data["NodeName"],
                    attributes={
                        name: child_data[name]
                        for name in child_data.get("Parameters", [])
                        if name in child_data and not isinstance(child_data[name], dict)
                    },
                    text=child_data.get("Contents", ""),
                )
                node.child_map[key] = child
                node.children.append(key)
                stack.append((child, child_data))

        return root


class _DocumentAdapterBase(IntegrationAdapter):
    """Base for targets that need a single document element.

    Processing instructions are skipped with a warning and several
    top-level elements are wrapped in ``wrapper_tag``.
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        wrapper_tag: str = DEFAULT_WRAPPER_TAG
    ) -> None:
        super().__init__(correlation_id)
        self.wrapper_tag = wrapper_tag

    def _skip_instruction(self, node: Node, diagnostics: List[DiagnosticEntry]) -> bool:
        if not node.instruction:
            return False
        diagnostics.append(self._diagnostic(
            DiagnosticSeverity.WARNING,
            f"Processing instruction '{node.name}' skipped",
            details={"name": node.name},
        ))
        return True

    def _top_level(
        self, parse_result: ParseResult, diagnostics: List[DiagnosticEntry]
    ) -> List[Node]:
        return [
            child for _, child in parse_result.root.iter_children()
            if not self._skip_instruction(child, diagnostics)
        ]


class _EtreeAdapterBase(_DocumentAdapterBase):
    """Shared conversion logic for ElementTree-compatible libraries."""

    @abstractmethod
    def _etree(self) -> Any:
        """Return the etree module to build elements with."""

    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        """Convert the loaded tree to an element.

        A single top-level element is returned as is; several are wrapped
        in ``wrapper_tag``.
        """
        start_time = time.time()
        name = self.metadata.name

        try:
            etree = self._etree()
            diagnostics: List[DiagnosticEntry] = []
            top_level = self._top_level(parse_result, diagnostics)

            if len(top_level) == 1:
                converted = self._convert(top_level[0], etree, diagnostics)
                wrapped = False
            else:
                converted = etree.Element(self.wrapper_tag)
                for child in top_level:
                    converted.append(self._convert(child, etree, diagnostics))
                wrapped = True

            processing_time = (time.time() - start_time) * 1000
            return ConversionResult(
                success=True,
                converted_data=converted,
                original_data=parse_result,
                conversion_time_ms=processing_time,
                warnings=[diag.message for diag in diagnostics],
                metadata={
                    "element_count": sum(1 for _ in converted.iter()),
                    "wrapped": wrapped,
                },
                diagnostics=diagnostics,
            )

        except Exception as e:
            return self._create_error_result(
                f"Failed to convert to {name}: {e}",
                parse_result,
                (time.time() - start_time) * 1000
            )

    def from_target(self, target_data: Any) -> ConversionResult:
        """Convert an element back by serializing it and loading the markup."""
        start_time = time.time()
        name = self.metadata.name

        if not hasattr(target_data, "tag"):
            return self._create_error_result(
                f"Target data is not a valid {name} element",
                target_data,
                (time.time() - start_time) * 1000
            )

        try:
            from markup_tree.api.parser import parse_string

            etree = self._etree()
            markup = etree.tostring(target_data, encoding="unicode")
            parse_result = parse_string(markup, correlation_id=self.correlation_id)

            return ConversionResult(
                success=parse_result.success,
                converted_data=parse_result,
                original_data=target_data,
                conversion_time_ms=(time.time() - start_time) * 1000,
                metadata={
                    "original_tag": target_data.tag,
                    "markup_length": len(markup),
                },
                diagnostics=list(parse_result.diagnostics),
            )

        except Exception as e:
            return self._create_error_result(
                f"Failed to convert from {name}: {e}",
                target_data,
                (time.time() - start_time) * 1000
            )

    def _convert(self, node: Node, etree: Any, diagnostics: List[DiagnosticEntry]) -> Any:
        root_element = etree.Element(node.name, dict(node.attributes))
        stack = [(node, root_element)]

        while stack:
            current, element = stack.pop()
            last_child = None
            for _, child in current.iter_children():
                if self._skip_instruction(child, diagnostics):
                    continue
                last_child = etree.SubElement(element, child.name, dict(child.attributes))
                stack.append((child, last_child))

            # Loaded text sits after the children, i.e. in the last child's tail
            if current.text:
                if last_child is not None:
                    last_child.tail = current.text
                else:
                    element.text = current.text

        return root_element


class ElementTreeAdapter(_EtreeAdapterBase):
    """Adapter for bidirectional conversion with xml.etree.ElementTree."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="elementtree",
            version="1.0.0",
            adapter_type=AdapterType.XML_LIBRARY,
            target_library="xml.etree.ElementTree",
            description="Bidirectional conversion between ParseResult and ElementTree",
        )

    def is_available(self) -> bool:
        return True

    def _etree(self) -> Any:
        import xml.etree.ElementTree as ET

        return ET


class LxmlAdapter(_EtreeAdapterBase):
    """Adapter for bidirectional conversion with lxml.etree."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="lxml",
            version="1.0.0",
            adapter_type=AdapterType.XML_LIBRARY,
            target_library="lxml",
            description="Bidirectional conversion between ParseResult and lxml.etree",
            compatibility_notes="Tag and attribute names must be valid XML names",
        )

    def is_available(self) -> bool:
        """Check if lxml is installed."""
        try:
            import lxml.etree  # noqa: F401
        except ImportError:
            return False
        return True

    def _etree(self) -> Any:
        import lxml.etree

        return lxml.etree


class BeautifulSoupAdapter(_DocumentAdapterBase):
    """Adapter for bidirectional conversion with BeautifulSoup.

    The tree is serialized and handed to BeautifulSoup's ``"xml"`` parser,
    so tag names that are not valid XML names are repaired or dropped by
    that parser.
    """

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="beautifulsoup",
            version="1.0.0",
            adapter_type=AdapterType.XML_LIBRARY,
            target_library="beautifulsoup4",
            description="Bidirectional conversion between ParseResult and BeautifulSoup",
            compatibility_notes="Uses the lxml-backed 'xml' tree builder",
        )

    def is_available(self) -> bool:
        """Check if BeautifulSoup is installed."""
        try:
            import bs4  # noqa: F401
        except ImportError:
            return False
        return True

    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        """Convert the loaded tree to a BeautifulSoup document."""
        start_time = time.time()

        try:
            from bs4 import BeautifulSoup

            diagnostics: List[DiagnosticEntry] = []
            top_level = self._top_level(parse_result, diagnostics)

            if len(top_level) == 1:
                markup = serialize(top_level[0])
                wrapped = False
            else:
                body = "".join(serialize(node) for node in top_level)
                markup = f"<{self.wrapper_tag}>{body}</{self.wrapper_tag}>"
                wrapped = True

            soup = BeautifulSoup(markup, "xml")

            processing_time = (time.time() - start_time) * 1000
            return ConversionResult(
                success=True,
                converted_data=soup,
                original_data=parse_result,
                conversion_time_ms=processing_time,
                warnings=[diag.message for diag in diagnostics],
                metadata={
                    "parser_name": "xml",
                    "markup_length": len(markup),
                    "wrapped": wrapped,
                },
                diagnostics=diagnostics,
            )

        except Exception as e:
            return self._create_error_result(
                f"Failed to convert to BeautifulSoup: {e}",
                parse_result,
                (time.time() - start_time) * 1000
            )

    def from_target(self, target_data: Any) -> ConversionResult:
        """Convert a BeautifulSoup document or tag back into a tree."""
        start_time = time.time()

        if not hasattr(target_data, "find_all"):
            return self._create_error_result(
                "Target data is not a valid BeautifulSoup object",
                target_data,
                (time.time() - start_time) * 1000
            )

        try:
            from bs4 import BeautifulSoup

            from markup_tree.api.parser import parse_string

            if isinstance(target_data, BeautifulSoup):
                # str() of a whole document prepends an XML declaration
                markup = "".join(str(child) for child in target_data.contents)
            else:
                markup = str(target_data)
            parse_result = parse_string(markup, correlation_id=self.correlation_id)

            return ConversionResult(
                success=parse_result.success,
                converted_data=parse_result,
                original_data=target_data,
                conversion_time_ms=(time.time() - start_time) * 1000,
                metadata={"markup_length": len(markup)},
                diagnostics=list(parse_result.diagnostics),
            )

        except Exception as e:
            return self._create_error_result(
                f"Failed to convert from BeautifulSoup: {e}",
                target_data,
                (time.time() - start_time) * 1000
            )


ATTRIBUTE_PREFIX = "attr_"
NODE_COLUMNS = ("key", "name", "text", "parent", "path", "instruction")


class PandasAdapter(IntegrationAdapter):
    """Adapter for bidirectional conversion with pandas DataFrame.

    The tree becomes a node table with one row per node in document order.
    ``parent`` holds the row index of the parent node (-1 for top-level
    nodes), ``path`` joins the child keys from the root, and every attribute
    gets its own ``attr_<name>`` column.
    """

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="pandas",
            version="1.0.0",
            adapter_type=AdapterType.DATA_FRAME,
            target_library="pandas",
            description="Bidirectional conversion between ParseResult and pandas DataFrame",
        )

    def is_available(self) -> bool:
        """Check if pandas is installed."""
        try:
            import pandas  # noqa: F401
        except ImportError:
            return False
        return True

    def to_target(self, parse_result: ParseResult) -> ConversionResult:
        """Convert the loaded tree to a node table."""
        start_time = time.time()

        try:
            import pandas as pd

            rows = self._extract_rows(parse_result.root)
            attribute_columns = list(dict.fromkeys(
                column for row in rows for column in row
                if column.startswith(ATTRIBUTE_PREFIX)
            ))
            df = pd.DataFrame(rows, columns=[*NODE_COLUMNS, *attribute_columns])

            processing_time = (time.time() - start_time) * 1000
            return ConversionResult(
                success=True,
                converted_data=df,
                original_data=parse_result,
                conversion_time_ms=processing_time,
                metadata={
                    "row_count": len(df),
                    "column_count": len(df.columns),
                    "columns": list(df.columns),
                }
            )

        except Exception as e:
            return self._create_error_result(
                f"Failed to convert to pandas DataFrame: {e}",
                parse_result,
                (time.time() - start_time) * 1000
            )

    def from_target(self, target_data: Any) -> ConversionResult:
        """Rebuild a tree from a node table produced by ``to_target``."""
        start_time = time.time()

        try:
            import pandas as pd
        except ImportError as e:
            return self._create_error_result(
                f"pandas is not available: {e}", target_data
            )

        if not isinstance(target_data, pd.DataFrame):
            return self._create_error_result(
                "Target data is not a pandas DataFrame",
                target_data,
                (time.time() - start_time) * 1000
            )

        missing = {"key", "name", "parent"} - set(target_data.columns)
        if missing:
            return self._create_error_result(
                f"DataFrame is missing columns: {sorted(missing)}",
                target_data,
                (time.time() - start_time) * 1000
            )

        attribute_columns = [
            column for column in target_data.columns
            if isinstance(column, str) and column.startswith(ATTRIBUTE_PREFIX)
        ]
        try:
            root = self._build_tree(target_data.to_dict("records"), attribute_columns, pd)
        except (IndexError, KeyError, TypeError, ValueError) as e:
            return self._create_error_result(
                f"Malformed node table: {e}",
                target_data,
                (time.time() - start_time) * 1000
            )

        result = ParseResult(root=root, correlation_id=self.correlation_id)
        return ConversionResult(
            success=True,
            converted_data=result,
            original_data=target_data,
            conversion_time_ms=(time.time() - start_time) * 1000,
            metadata={"row_count": len(target_data)},
        )

    def _extract_rows(self, root: Node) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        stack = [(key, child, -1, "") for key, child in reversed(list(root.iter_children()))]

        while stack:
            key, node, parent, parent_path = stack.pop()
            index = len(rows)
            path = f"{parent_path}/{key}"
            row: Dict[str, Any] = {
                "key": key,
                "name": node.name,
                "text": node.text,
                "parent": parent,
                "path": path,
                "instruction": node.instruction,
            }
            for name, value in node.attributes.items():
                row[ATTRIBUTE_PREFIX + name] = value
            rows.append(row)
            stack.extend(
                (child_key, child, index, path)
                for child_key, child in reversed(list(node.iter_children()))
            )

        return rows

    def _build_tree(
        self, records: List[Dict[str, Any]], attribute_columns: List[str], pd: Any
    ) -> Node:
        root = Node.create_root()
        nodes: List[Node] = []

        for index, record in enumerate(records):
            text = record.get("text", "")
            node = Node(
                name=str(record["name"]),
                attributes={
                    column[len(ATTRIBUTE_PREFIX):]: str(record[column])
                    for column in attribute_columns
                    if pd.notna(record[column])
                },
                text=str(text) if pd.notna(text) else "",
                instruction=bool(record.get("instruction", False)),
            )

            parent = int(record["parent"])
            if parent >= index:
                raise ValueError(f"row {index} refers to parent row {parent}")
            parent_node = root if parent < 0 else nodes[parent]

            key = str(record["key"])
            if key in parent_node.child_map:
                raise ValueError(f"duplicate child key {key!r} in row {index}")
            parent_node.child_map[key] = node
            parent_node.children.append(key)
            nodes.append(node)

        return root


# Auto-register adapters; availability is checked on lookup
register_adapter(LegacyArrayAdapter)
register_adapter(ElementTreeAdapter)
register_adapter(LxmlAdapter)
register_adapter(BeautifulSoupAdapter)
register_adapter(PandasAdapter)
