"""Diagnostic and failure types shared by every parsing layer.

The loader follows a best-effort philosophy: problems in the input are
recorded as diagnostics and parsing continues. Only strict mode turns the
first error into a ``ParseFailure`` that ends the parse.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()      # Debug-level information
    INFO = auto()       # Informational messages
    WARNING = auto()    # Suspicious input that was accepted
    ERROR = auto()      # Malformed input that was recovered from
    CRITICAL = auto()   # Failures that stopped the parse


class ErrorKind(Enum):
    """Classification of input problems detected while loading markup."""

    EMPTY_INPUT = auto()
    UNTERMINATED_TAG = auto()               # "<" without a following ">"
    UNTERMINATED_ATTRIBUTE_VALUE = auto()   # quoted value never closed
    TAG_MISMATCH = auto()                   # close tag does not match open node
    UNCLOSED_ELEMENT = auto()               # node still open at end of input
    RESERVED_NAME = auto()                  # collides with legacy bookkeeping keys
    EMPTY_TAG_NAME = auto()
    MALFORMED_TAG = auto()
    MALFORMED_ATTRIBUTE = auto()
    DUPLICATE_ATTRIBUTE = auto()
    TRAILING_TEXT = auto()
    ENCODING = auto()                       # undecodable or unknown encoding
    INTERNAL = auto()


ERROR_SEVERITIES = (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    kind: Optional[ErrorKind] = None
    position: Optional[Dict[str, int]] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")

    @property
    def is_error(self) -> bool:
        """Check if this entry is error level or worse."""
        return self.severity in ERROR_SEVERITIES

    @property
    def offset(self) -> Optional[int]:
        """Input offset the entry refers to, if known."""
        if self.position is None:
            return None
        return self.position.get("offset")

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to a JSON-friendly dictionary."""
        result: Dict[str, Any] = {
            "severity": self.severity.name,
            "message": self.message,
            "component": self.component,
        }
        if self.kind is not None:
            result["kind"] = self.kind.name
        if self.position:
            result["position"] = dict(self.position)
        if self.details:
            result["details"] = dict(self.details)
        return result


@dataclass
class ParseFailure:
    """Why a strict parse stopped, and roughly where."""

    kind: ErrorKind
    message: str
    offset: Optional[int] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def from_diagnostic(cls, entry: DiagnosticEntry) -> "ParseFailure":
        """Build a failure from the diagnostic that triggered it."""
        position = entry.position or {}
        return cls(
            kind=entry.kind or ErrorKind.INTERNAL,
            message=entry.message,
            offset=position.get("offset"),
            line=position.get("line"),
            column=position.get("column"),
        )

    def __str__(self) -> str:
        if self.line is not None:
            return f"{self.kind.name} at line {self.line}, column {self.column}: {self.message}"
        if self.offset is not None:
            return f"{self.kind.name} at offset {self.offset}: {self.message}"
        return f"{self.kind.name}: {self.message}"


class ParseError(Exception):
    """Raised when strict parsing meets malformed input."""

    def __init__(self, failure: ParseFailure) -> None:
        super().__init__(str(failure))
        self.failure = failure

    @property
    def kind(self) -> ErrorKind:
        return self.failure.kind

    @property
    def offset(self) -> Optional[int]:
        return self.failure.offset


@dataclass
class PerformanceMetrics:
    """Performance counters for a single parse."""

    processing_time_ms: float = 0.0
    characters_processed: int = 0
    tags_scanned: int = 0
    nodes_created: int = 0

    @property
    def characters_per_second(self) -> float:
        """Calculate characters processed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.characters_processed * 1000.0) / self.processing_time_ms


def position_for(source: str, offset: int) -> Dict[str, int]:
    """Translate a string offset into an offset/line/column mapping."""
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return {"offset": offset, "line": line, "column": column}
