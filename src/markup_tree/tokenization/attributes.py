"""Attribute tokenization for the interior of open and self-closing tags.

The tokenizer is an explicit finite-state machine. Each state has one
handler that consumes a single character and returns the next state::

    SEEKING_NAME --'='--> AFTER_EQUALS --'"'--> IN_DOUBLE_QUOTE --'"'--> SEEKING_NAME
                                       --"'"--> IN_SINGLE_QUOTE --"'"--> SEEKING_NAME
                                       --other--> IN_UNQUOTED --space--> SEEKING_NAME

Inside a quoted value a backslash escapes the following character only, so
``\\"`` does not close a double-quoted value. The backslash itself is kept
in the value unless ``unescape_backslashes`` is enabled. The other quote
kind has no special meaning inside a quoted value.

Values are returned raw; entity decoding is the caller's concern.
"""

import re
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from markup_tree.shared import (
    AttributeConfig,
    DiagnosticEntry,
    DiagnosticSeverity,
    ErrorKind,
)

from .scanner import WHITESPACE, DiagnosticSink

COMPONENT = "attribute_tokenizer"

_BACKSLASH_PAIR = re.compile(r"\\(.)", re.DOTALL)


class AttributeState(Enum):
    """States of the attribute tokenizer."""

    SEEKING_NAME = auto()      # Between attributes or inside a name
    AFTER_EQUALS = auto()      # Saw '=', waiting for the value to start
    IN_DOUBLE_QUOTE = auto()   # Inside "..."
    IN_SINGLE_QUOTE = auto()   # Inside '...'
    IN_UNQUOTED = auto()       # Inside a bare value, ended by whitespace


_QUOTE_STATES = {
    '"': AttributeState.IN_DOUBLE_QUOTE,
    "'": AttributeState.IN_SINGLE_QUOTE,
}


class AttributeTokenizer:
    """Split ``name="value"`` pairs out of a tag interior.

    A tokenizer instance may be reused; ``tokenize`` resets all state.

    Examples:
        >>> AttributeTokenizer().tokenize(' x="1" y=\\'2\\'')
        {'x': '1', 'y': '2'}
    """

    def __init__(
        self,
        config: Optional[AttributeConfig] = None,
        on_diagnostic: Optional[DiagnosticSink] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.config = config or AttributeConfig()
        self.correlation_id = correlation_id
        self.diagnostics: List[DiagnosticEntry] = []
        self._sink = on_diagnostic or self.diagnostics.append

        self._handlers: Dict[AttributeState, Callable[[str], AttributeState]] = {
            AttributeState.SEEKING_NAME: self._seeking_name,
            AttributeState.AFTER_EQUALS: self._after_equals,
            AttributeState.IN_DOUBLE_QUOTE: self._in_double_quote,
            AttributeState.IN_SINGLE_QUOTE: self._in_single_quote,
            AttributeState.IN_UNQUOTED: self._in_unquoted,
        }
        self._reset("", 0)

    def _reset(self, text: str, base_offset: int) -> None:
        self._text = text
        self._base_offset = base_offset
        self._index = 0
        self.state = AttributeState.SEEKING_NAME
        self._escaped = False
        self._name_start: Optional[int] = None
        self._name_end: Optional[int] = None
        self._pending_name = ""
        self._value_start = 0
        self._discard_value = False
        self._attributes: Dict[str, str] = {}

    def tokenize(self, text: str, base_offset: int = 0) -> Dict[str, str]:
        """Tokenize ``text`` into an ordered name -> raw value mapping.

        Args:
            text: Tag interior following the tag name
            base_offset: Offset of ``text`` in the input, used in diagnostics

        Returns:
            Attributes in order of first appearance
        """
        self._reset(text, base_offset)
        for index, char in enumerate(text):
            self._index = index
            if self._escaped:
                self._escaped = False
                continue
            self.state = self._handlers[self.state](char)
        self._index = len(text)
        self._finish()
        return self._attributes

    # State handlers

    def _seeking_name(self, char: str) -> AttributeState:
        if char in WHITESPACE:
            if self._name_start is not None and self._name_end is None:
                self._name_end = self._index
            return AttributeState.SEEKING_NAME

        if char == "=":
            self._take_pending_name()
            return AttributeState.AFTER_EQUALS

        if self._name_end is not None:
            # Previous word was never followed by '='
            self._report_bare_name()
            self._name_start = self._index
            self._name_end = None
        elif self._name_start is None:
            self._name_start = self._index
        return AttributeState.SEEKING_NAME

    def _after_equals(self, char: str) -> AttributeState:
        if char in WHITESPACE:
            return AttributeState.AFTER_EQUALS

        if char in _QUOTE_STATES:
            self._value_start = self._index + 1
            return _QUOTE_STATES[char]

        self._value_start = self._index
        if not self.config.allow_unquoted_values:
            self._discard_value = True
            self._report(
                DiagnosticSeverity.WARNING,
                ErrorKind.MALFORMED_ATTRIBUTE,
                f"Unquoted value for attribute '{self._pending_name}' was ignored",
                self._index,
            )
        return AttributeState.IN_UNQUOTED

    def _in_double_quote(self, char: str) -> AttributeState:
        return self._in_quote(char, '"', AttributeState.IN_DOUBLE_QUOTE)

    def _in_single_quote(self, char: str) -> AttributeState:
        return self._in_quote(char, "'", AttributeState.IN_SINGLE_QUOTE)

    def _in_quote(self, char: str, quote: str, state: AttributeState) -> AttributeState:
        if char == "\\" and self.config.backslash_escapes:
            self._escaped = True
            return state
        if char == quote:
            value = self._text[self._value_start:self._index]
            if self.config.unescape_backslashes:
                value = _BACKSLASH_PAIR.sub(r"\1", value)
            self._store(value)
            return AttributeState.SEEKING_NAME
        return state

    def _in_unquoted(self, char: str) -> AttributeState:
        if char in WHITESPACE:
            self._store(self._text[self._value_start:self._index])
            return AttributeState.SEEKING_NAME
        return AttributeState.IN_UNQUOTED

    # Helpers

    def _finish(self) -> None:
        state = self.state
        if state in (AttributeState.IN_DOUBLE_QUOTE, AttributeState.IN_SINGLE_QUOTE):
            self._report(
                DiagnosticSeverity.ERROR,
                ErrorKind.UNTERMINATED_ATTRIBUTE_VALUE,
                f"Quoted value of attribute '{self._pending_name}' is never closed",
                self._value_start - 1,
            )
        elif state is AttributeState.AFTER_EQUALS:
            self._report(
                DiagnosticSeverity.WARNING,
                ErrorKind.MALFORMED_ATTRIBUTE,
                f"Attribute '{self._pending_name}' has no value",
                self._index,
            )
        elif state is AttributeState.IN_UNQUOTED:
            self._store(self._text[self._value_start:])
        elif self._name_start is not None:
            self._report_bare_name()

    def _take_pending_name(self) -> None:
        if self._name_start is None:
            name = ""
        else:
            end = self._name_end if self._name_end is not None else self._index
            name = self._text[self._name_start:end]
        self._name_start = None
        self._name_end = None
        self._pending_name = name
        self._discard_value = False
        if not name:
            self._report(
                DiagnosticSeverity.WARNING,
                ErrorKind.MALFORMED_ATTRIBUTE,
                "Attribute value without a name was ignored",
                self._index,
            )

    def _store(self, value: str) -> None:
        name = self._pending_name
        self._pending_name = ""
        if not name or self._discard_value:
            self._discard_value = False
            return
        if name in self._attributes:
            self._report(
                DiagnosticSeverity.WARNING,
                ErrorKind.DUPLICATE_ATTRIBUTE,
                f"Attribute '{name}' repeated; the last value wins",
                self._index,
            )
        self._attributes[name] = value

    def _report_bare_name(self) -> None:
        end = self._name_end if self._name_end is not None else self._index
        name = self._text[self._name_start:end]
        self._name_start = None
        self._name_end = None
        self._report(
            DiagnosticSeverity.WARNING,
            ErrorKind.MALFORMED_ATTRIBUTE,
            f"Attribute '{name}' has no value and was ignored",
            end,
        )

    def _report(
        self,
        severity: DiagnosticSeverity,
        kind: ErrorKind,
        message: str,
        index: int,
    ) -> None:
        self._sink(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=COMPONENT,
                kind=kind,
                position={"offset": self._base_offset + max(index, 0)},
                correlation_id=self.correlation_id,
            )
        )
