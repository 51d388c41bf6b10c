"""Tree building for the markup loader.

``TreeBuilder.build`` is the driving loop of a parse: it pulls classified
tags from the scanner, tokenizes attributes of open tags, and assembles
nodes on an explicit stack whose bottom frame is the synthetic root. A node
is linked into its parent only once it is complete, so a frame that is
popped and dropped never leaves a partial link behind.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from markup_tree.character import decode_entities
from markup_tree.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ErrorKind,
    MismatchPolicy,
    ParseError,
    ParseFailure,
    ParserConfig,
    PerformanceMetrics,
    UnclosedPolicy,
    get_logger,
    position_for,
)
from markup_tree.tokenization import (
    TRIM_CHARACTERS,
    AttributeTokenizer,
    Tag,
    TagKind,
    TagScanner,
)

from .node import Node

COMPONENT = "tree_builder"

# Keys used by the legacy flat representation for node bookkeeping
RESERVED_NAMES = frozenset({"Contents", "Children", "NodeName", "Parameters"})


@dataclass
class ParseResult:
    """Result of loading one markup string.

    ``root`` is always present, possibly partial. ``success`` is False only
    when strict mode stopped the parse or an internal error occurred; in
    that case ``failure`` tells why.
    """

    root: Node = field(default_factory=Node.create_root)
    success: bool = True
    failure: Optional[ParseFailure] = None
    unclosed: List[Node] = field(default_factory=list)

    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    correlation_id: Optional[str] = None

    @property
    def tree(self) -> Node:
        """Alias of ``root``."""
        return self.root

    def __getitem__(self, key: str) -> Node:
        return self.root[key]

    @property
    def element_count(self) -> int:
        """Number of nodes below the synthetic root."""
        return sum(1 for _ in self.root.iter_descendants())

    @property
    def attribute_count(self) -> int:
        return sum(len(node.attributes) for node in self.root.iter_descendants())

    @property
    def max_depth(self) -> int:
        """Nesting depth of the deepest node (top-level nodes are depth 1)."""
        return self.root.depth()

    @property
    def processing_time_ms(self) -> float:
        return self.performance.processing_time_ms

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        kind: Optional[ErrorKind] = None,
        position: Optional[Dict[str, int]] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> DiagnosticEntry:
        """Add diagnostic entry to result."""
        entry = DiagnosticEntry(
            severity=severity,
            message=message,
            component=component,
            kind=kind,
            position=position,
            details=details,
            correlation_id=self.correlation_id
        )
        self.diagnostics.append(entry)
        return entry

    def get_diagnostics_by_severity(
        self, severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        """Get diagnostics of specific severity level."""
        return [diag for diag in self.diagnostics if diag.severity == severity]

    def get_diagnostics_by_kind(self, kind: ErrorKind) -> List[DiagnosticEntry]:
        return [diag for diag in self.diagnostics if diag.kind == kind]

    def has_errors(self) -> bool:
        """Check if result contains any error diagnostics."""
        return any(diag.is_error for diag in self.diagnostics)

    def raise_for_failure(self) -> None:
        """Raise ParseError if the parse failed."""
        if self.failure is not None:
            raise ParseError(self.failure)

    def to_markup(self, indent: Optional[int] = None) -> str:
        """Serialize the loaded tree back to markup."""
        from .serializer import serialize

        return serialize(self.root, indent=indent)

    def summary(self) -> Dict[str, Any]:
        """Get summary statistics for the parse result."""
        by_severity: Dict[str, int] = {}
        for diag in self.diagnostics:
            by_severity[diag.severity.name] = by_severity.get(diag.severity.name, 0) + 1

        return {
            "success": self.success,
            "failure": str(self.failure) if self.failure else None,
            "element_count": self.element_count,
            "attribute_count": self.attribute_count,
            "max_depth": self.max_depth,
            "unclosed_count": len(self.unclosed),
            "diagnostic_count": len(self.diagnostics),
            "diagnostics_by_severity": by_severity,
            "processing_time_ms": self.performance.processing_time_ms,
            "characters_processed": self.performance.characters_processed,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result, tree included, to a JSON-friendly dictionary."""
        return {
            "success": self.success,
            "failure": str(self.failure) if self.failure else None,
            "root": self.root.to_dict(),
            "unclosed": [node.to_dict() for node in self.unclosed],
            "diagnostics": [diag.to_dict() for diag in self.diagnostics],
            "correlation_id": self.correlation_id,
        }


class TreeBuilder:
    """Assemble a node tree from markup in a single pass.

    A builder can be reused for many inputs; all per-parse state is reset
    at the start of ``build``. Instances are not safe to share between
    threads while a build is in progress.
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize tree builder.

        Args:
            config: Parser configuration (defaults to lenient)
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or ParserConfig()
        self.correlation_id = correlation_id or self.config.correlation_id
        self.logger = get_logger(__name__, self.correlation_id, COMPONENT)

        self._source = ""
        self._stack: List[Node] = []
        self._result = ParseResult()

    def build(self, source: str) -> ParseResult:
        """Load ``source`` into a tree.

        Args:
            source: Markup text; surrounding whitespace is ignored

        Returns:
            ParseResult holding the tree and all diagnostics
        """
        start_time = time.time()
        self._source = source
        self._stack = [Node.create_root()]
        self._result = result = ParseResult(
            root=self._stack[0], correlation_id=self.correlation_id
        )

        body = source.strip(TRIM_CHARACTERS)
        base_offset = len(source) - len(source.lstrip(TRIM_CHARACTERS)) if body else 0
        result.performance.characters_processed = len(source)

        self.logger.info(
            "Starting tree building",
            extra={"content_length": len(source), "strict": self.config.strict}
        )

        scanner = TagScanner(
            body,
            on_diagnostic=self._report,
            base_offset=base_offset,
            report_trailing_text=self.config.report_trailing_text,
            correlation_id=self.correlation_id,
        )
        tokenizer = AttributeTokenizer(
            self.config.attributes,
            on_diagnostic=self._report,
            correlation_id=self.correlation_id,
        )

        try:
            if not body:
                self._report(self._diagnostic(
                    DiagnosticSeverity.INFO,
                    ErrorKind.EMPTY_INPUT,
                    "Input contains no markup; empty tree created",
                    None,
                ))

            for tag in scanner.scan():
                if tag.kind is TagKind.CLOSE:
                    self._close(tag, base_offset)
                else:
                    self._open(tag, tokenizer, base_offset)

            self._finish_unclosed(base_offset + len(body))

        except ParseError as e:
            result.success = False
            result.failure = e.failure
            self.logger.warning(
                "Strict parse stopped",
                extra={"kind": e.failure.kind.name, "offset": e.failure.offset}
            )

        except Exception as e:
            # Never-fail: keep whatever was built so far
            self.logger.exception("Tree building failed")
            result.success = False
            entry = result.add_diagnostic(
                DiagnosticSeverity.CRITICAL,
                f"Tree building failed: {e}",
                COMPONENT,
                kind=ErrorKind.INTERNAL,
                details={"exception_type": type(e).__name__},
            )
            result.failure = ParseFailure.from_diagnostic(entry)

        result.performance.tags_scanned = scanner.tags_scanned
        result.performance.processing_time_ms = (time.time() - start_time) * 1000

        self.logger.info(
            "Tree building completed",
            extra={
                "success": result.success,
                "nodes_created": result.performance.nodes_created,
                "diagnostic_count": len(result.diagnostics),
                "processing_time_ms": result.performance.processing_time_ms,
            }
        )
        return result

    # Tag handlers

    def _open(self, tag: Tag, tokenizer: AttributeTokenizer, base_offset: int) -> None:
        tree_config = self.config.tree

        if (
            tag.kind is TagKind.PROCESSING_INSTRUCTION
            and not tree_config.include_processing_instructions
        ):
            self.logger.debug("Processing instruction skipped", extra={"tag": tag.name})
            return

        raw_attributes = tokenizer.tokenize(tag.attribute_text, base_offset + tag.name_end)
        if self.config.decode_entities:
            attributes = {name: decode_entities(value) for name, value in raw_attributes.items()}
        else:
            attributes = dict(raw_attributes)

        node = Node(
            name=tag.name,
            attributes=attributes,
            instruction=tag.kind is TagKind.PROCESSING_INSTRUCTION,
        )
        self._result.performance.nodes_created += 1

        if tree_config.check_reserved_names:
            self._check_reserved(node, base_offset + tag.start)

        if tag.kind.is_self_contained:
            self._link(self._stack[-1], node, base_offset + tag.start)
        else:
            self._stack.append(node)

    def _close(self, tag: Tag, base_offset: int) -> None:
        stack = self._stack
        offset = base_offset + tag.start

        if len(stack) > 1 and stack[-1].name == tag.name:
            node = stack.pop()
            node.text = self._capture_text(tag.text_before)
            self._link(stack[-1], node, offset)
            return

        match_index = self._find_open(tag.name)
        if self.config.tree.mismatch_policy is MismatchPolicy.BACKTRACK and match_index:
            self._backtrack(tag, match_index, offset)
            return

        expected = stack[-1].name if len(stack) > 1 else None
        message = (
            f"Close tag '{tag.name}' does not match open element '{expected}'; ignored"
            if expected is not None
            else f"Close tag '{tag.name}' has no open element; ignored"
        )
        self._report(self._diagnostic(
            DiagnosticSeverity.ERROR,
            ErrorKind.TAG_MISMATCH,
            message,
            offset,
            {"close_tag": tag.name, "open_element": expected},
        ))

    def _backtrack(self, tag: Tag, match_index: int, offset: int) -> None:
        stack = self._stack
        text = self._capture_text(tag.text_before)

        # The text right before the close tag belongs to the innermost node
        stack[-1].text = text
        while len(stack) - 1 > match_index:
            folded = stack.pop()
            self._report(self._diagnostic(
                DiagnosticSeverity.WARNING,
                ErrorKind.UNCLOSED_ELEMENT,
                f"Element '{folded.name}' implicitly closed by '</{tag.name}>'",
                offset,
                {"element": folded.name, "close_tag": tag.name},
            ))
            self._link(stack[-1], folded, offset)

        node = stack.pop()
        self._link(stack[-1], node, offset)

    def _finish_unclosed(self, end_offset: int) -> None:
        stack = self._stack
        if len(stack) == 1:
            return

        for node in stack[1:]:
            self._report(self._diagnostic(
                DiagnosticSeverity.ERROR,
                ErrorKind.UNCLOSED_ELEMENT,
                f"Element '{node.name}' is never closed",
                end_offset,
                {"element": node.name},
            ))

        if self.config.tree.unclosed_policy is UnclosedPolicy.FOREST:
            self._result.unclosed = stack[1:]
            del stack[1:]
            return

        while len(stack) > 1:
            node = stack.pop()
            self._link(stack[-1], node, end_offset)

    # Helpers

    def _find_open(self, name: str) -> int:
        """Stack index of the innermost open node called ``name``, 0 if none."""
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].name == name:
                return index
        return 0

    def _capture_text(self, segment: str) -> str:
        text = segment.strip(TRIM_CHARACTERS)
        if text and self.config.decode_entities:
            text = decode_entities(text)
        return text

    def _link(self, parent: Node, node: Node, offset: int) -> None:
        if (
            self.config.tree.check_reserved_names
            and node.name is not None
            and parent.next_child_key(node.name) in parent.attributes
        ):
            self._report(self._diagnostic(
                DiagnosticSeverity.ERROR,
                ErrorKind.RESERVED_NAME,
                f"Child '{node.name}' has the same name as an attribute of "
                f"'{parent.name}'",
                offset,
                {"name": node.name},
            ))
        parent.attach(node)

    def _check_reserved(self, node: Node, offset: int) -> None:
        clashes = [
            name for name in [node.name, *node.attributes] if name in RESERVED_NAMES
        ]
        for name in clashes:
            self._report(self._diagnostic(
                DiagnosticSeverity.ERROR,
                ErrorKind.RESERVED_NAME,
                f"Name '{name}' is reserved for node bookkeeping",
                offset,
                {"name": name, "element": node.name},
            ))

    def _diagnostic(
        self,
        severity: DiagnosticSeverity,
        kind: ErrorKind,
        message: str,
        offset: Optional[int],
        details: Optional[Dict[str, Any]] = None,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            severity=severity,
            message=message,
            component=COMPONENT,
            kind=kind,
            position={"offset": offset} if offset is not None else None,
            details=details,
            correlation_id=self.correlation_id,
        )

    def _report(self, entry: DiagnosticEntry) -> None:
        """Record a diagnostic; in strict mode errors end the parse."""
        if entry.position is not None and "offset" in entry.position:
            entry.position = position_for(self._source, entry.position["offset"])
        self._result.diagnostics.append(entry)

        self.logger.debug(
            "Diagnostic recorded",
            extra={
                "severity": entry.severity.name,
                "kind": entry.kind.name if entry.kind else None,
                "detail": entry.message,
            }
        )

        if self.config.strict and entry.is_error:
            raise ParseError(ParseFailure.from_diagnostic(entry))
