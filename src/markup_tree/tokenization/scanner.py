"""Tag scanning and classification.

The scanner finds ``<...>`` spans without understanding quoting or nesting:
the first ``>`` after a ``<`` ends the tag, so attribute values must not
contain a raw ``>``. Each span is then classified by its first and last
characters and the tag name is cut at the first whitespace character.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Callable, Iterator, List, Optional, Tuple

from markup_tree.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ErrorKind,
    get_logger,
)

# Characters that end a tag name or separate attributes; \r is included so
# CRLF input splits the same way as LF
WHITESPACE = " \t\n\x0b\r"

# Characters stripped from the input and from captured text
TRIM_CHARACTERS = " \t\n\r\0\x0b"

DiagnosticSink = Callable[[DiagnosticEntry], None]

COMPONENT = "tag_scanner"


class TagKind(Enum):
    """Kinds of tags recognized by the classifier."""

    OPEN = auto()                     # <name ...>
    CLOSE = auto()                    # </name>
    SELF_CLOSING = auto()             # <name .../>
    PROCESSING_INSTRUCTION = auto()   # <?name ...?>

    @property
    def is_self_contained(self) -> bool:
        """Check if the tag creates a node without a matching close tag."""
        return self in (TagKind.SELF_CLOSING, TagKind.PROCESSING_INSTRUCTION)


@dataclass(frozen=True)
class Tag:
    """A classified ``<...>`` span.

    Offsets index into the scanned string: ``start`` is the ``<``, ``close``
    is the ``>``. ``attribute_text`` is the tag interior after the name,
    without a trailing ``/`` or ``?`` marker; it begins at ``name_end``.
    """

    kind: TagKind
    name: str
    start: int
    close: int
    name_end: int
    content_end: int
    attribute_text: str = ""
    text_before: str = ""

    @property
    def end(self) -> int:
        """Offset just past the closing ``>``."""
        return self.close + 1


def find_tag_span(source: str, offset: int) -> Optional[Tuple[int, Optional[int]]]:
    """Locate the next tag at or after ``offset``.

    Returns:
        None when no ``<`` remains, otherwise ``(start, close)`` where
        ``close`` is None if the tag is never terminated by ``>``.
    """
    start = source.find("<", offset)
    if start < 0:
        return None
    close = source.find(">", start + 1)
    return start, (close if close >= 0 else None)


def classify_tag(source: str, start: int, close: int) -> Tag:
    """Classify the span ``source[start:close + 1]`` and extract its name."""
    marker = source[start + 1] if start + 1 < close else ""

    if marker == "/":
        kind = TagKind.CLOSE
        name_start = start + 2
        content_end = close
    elif marker == "?":
        kind = TagKind.PROCESSING_INSTRUCTION
        name_start = start + 2
        if close - 1 >= name_start and source[close - 1] == "?":
            content_end = close - 1
        else:
            content_end = close
    elif close - 1 > start and source[close - 1] == "/":
        kind = TagKind.SELF_CLOSING
        name_start = start + 1
        content_end = close - 1
    else:
        kind = TagKind.OPEN
        name_start = start + 1
        content_end = close

    name_end = name_start
    while name_end < content_end and source[name_end] not in WHITESPACE:
        name_end += 1

    return Tag(
        kind=kind,
        name=source[name_start:name_end],
        start=start,
        close=close,
        name_end=name_end,
        content_end=content_end,
        attribute_text=source[name_end:content_end],
    )


class TagScanner:
    """Iterate over the classified tags of a (trimmed) markup string.

    Problems are passed to ``on_diagnostic`` as they are found; without a
    sink they are collected in ``diagnostics``. Offsets in diagnostics are
    shifted by ``base_offset`` so they refer to the caller's original input.
    """

    def __init__(
        self,
        source: str,
        on_diagnostic: Optional[DiagnosticSink] = None,
        base_offset: int = 0,
        report_trailing_text: bool = True,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.source = source
        self.base_offset = base_offset
        self.report_trailing_text = report_trailing_text
        self.correlation_id = correlation_id
        self.diagnostics: List[DiagnosticEntry] = []
        self._sink = on_diagnostic or self.diagnostics.append
        self.logger = get_logger(__name__, correlation_id, COMPONENT)

        self.tags_scanned = 0
        self.trailing_text = ""

    def scan(self) -> Iterator[Tag]:
        """Yield tags in input order."""
        source = self.source
        offset = 0

        while offset < len(source):
            span = find_tag_span(source, offset)
            if span is None:
                self._handle_trailing(offset)
                return

            start, close = span
            if close is None:
                self.trailing_text = source[start:]
                self._report(
                    DiagnosticSeverity.ERROR,
                    ErrorKind.UNTERMINATED_TAG,
                    "Tag is not terminated by '>'; remaining input ignored",
                    start,
                    {"remaining_length": len(source) - start},
                )
                return

            self.tags_scanned += 1
            tag = classify_tag(source, start, close)

            if not tag.name:
                self._report(
                    DiagnosticSeverity.ERROR,
                    ErrorKind.EMPTY_TAG_NAME,
                    "Tag has no name and was skipped",
                    start,
                    {"tag": source[start:close + 1]},
                )
                offset = close + 1
                continue

            self._check_shape(tag)
            yield replace(tag, text_before=source[offset:start])
            offset = close + 1

    def _check_shape(self, tag: Tag) -> None:
        if tag.kind is TagKind.PROCESSING_INSTRUCTION and tag.content_end == tag.close:
            self._report(
                DiagnosticSeverity.WARNING,
                ErrorKind.MALFORMED_TAG,
                f"Processing instruction '{tag.name}' does not end with '?>'",
                tag.start,
            )
        elif tag.kind is TagKind.CLOSE and tag.attribute_text.strip(WHITESPACE):
            self._report(
                DiagnosticSeverity.WARNING,
                ErrorKind.MALFORMED_TAG,
                f"Close tag '{tag.name}' carries extra content that was ignored",
                tag.start,
                {"content": tag.attribute_text.strip(WHITESPACE)},
            )

    def _handle_trailing(self, offset: int) -> None:
        rest = self.source[offset:]
        self.trailing_text = rest
        if rest.strip(TRIM_CHARACTERS) and self.report_trailing_text:
            self._report(
                DiagnosticSeverity.WARNING,
                ErrorKind.TRAILING_TEXT,
                "Text after the last tag was ignored",
                offset,
                {"length": len(rest)},
            )

    def _report(
        self,
        severity: DiagnosticSeverity,
        kind: ErrorKind,
        message: str,
        offset: int,
        details: Optional[dict] = None,
    ) -> None:
        self.logger.debug(
            message, extra={"kind": kind.name, "offset": self.base_offset + offset}
        )
        self._sink(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=COMPONENT,
                kind=kind,
                position={"offset": self.base_offset + offset},
                details=details,
                correlation_id=self.correlation_id,
            )
        )
