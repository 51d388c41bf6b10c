"""Core parser API with progressive disclosure.

Level 1 is the module-level functions ``parse``, ``parse_string`` and
``parse_file``; level 2 is the reusable, configured ``MarkupTreeParser``.
Neither level raises on malformed input: problems are reported through the
returned ``ParseResult``.
"""

import codecs
import re
import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, TextIO, Tuple, Union

from markup_tree.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ErrorKind,
    ParseFailure,
    ParserConfig,
    get_logger,
)
from markup_tree.tree import ParseResult, TreeBuilder

# Type definitions for input data
InputType = Union[str, bytes, BinaryIO, TextIO, Path]

# Constants for API operations
PREVIEW_LENGTH = 100  # Max length for content preview in logs
MS_PER_SECOND = 1000
DECLARATION_SAMPLE_SIZE = 256

_DECLARED_ENCODING = re.compile(
    rb"""^\s*<\?xml[^>]*?\sencoding\s*=\s*["']([A-Za-z0-9._\-]+)["']"""
)

_BOMS = (
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


def decode_markup(
    raw: bytes, default_encoding: str = "utf-8"
) -> Tuple[str, str, List[str]]:
    """Decode raw markup bytes.

    A byte order mark wins, then the ``encoding`` pseudo-attribute of a
    leading ``<?xml ...?>`` declaration, then ``default_encoding``.
    Undecodable bytes are replaced.

    Returns:
        Tuple of (text, encoding used, list of warning messages)
    """
    warnings: List[str] = []

    for bom, bom_encoding in _BOMS:
        if raw.startswith(bom):
            if bom_encoding == "utf-8":
                raw = raw[len(bom):]
            encoding = bom_encoding
            break
    else:
        encoding = default_encoding
        match = _DECLARED_ENCODING.match(raw[:DECLARATION_SAMPLE_SIZE])
        if match:
            declared = match.group(1).decode("ascii")
            try:
                encoding = codecs.lookup(declared).name
            except LookupError:
                warnings.append(
                    f"Unknown declared encoding '{declared}'; using {default_encoding}"
                )

    try:
        text = raw.decode(encoding)
    except UnicodeDecodeError as e:
        warnings.append(f"Input is not valid {encoding}; undecodable bytes replaced: {e}")
        text = raw.decode(encoding, errors="replace")

    return text.lstrip("\ufeff"), encoding, warnings


def parse(
    input_data: InputType,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> ParseResult:
    """Parse markup from various input sources with automatic type detection.

    Args:
        input_data: Markup as string, bytes, file-like object, or Path
        config: Optional parser configuration (defaults to lenient)
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParseResult containing the tree and diagnostics

    Examples:
        >>> result = parse('<root><item>value</item></root>')
        >>> result.success
        True
        >>> result["root"]["item"].text
        'value'
    """
    start_time = time.time()
    logger = get_logger(__name__, correlation_id, "parse")

    logger.info(
        "Starting universal parse operation",
        extra={
            "input_type": type(input_data).__name__,
            "has_correlation_id": correlation_id is not None
        }
    )

    try:
        if isinstance(input_data, str):
            return parse_string(input_data, config, correlation_id)
        if isinstance(input_data, (bytes, bytearray)):
            return _parse_bytes(bytes(input_data), config, correlation_id)
        if isinstance(input_data, Path):
            return parse_file(input_data, config=config, correlation_id=correlation_id)
        if hasattr(input_data, "read"):
            return _parse_file_like_object(input_data, config, correlation_id)

        return _create_error_result(
            f"Unsupported input type: {type(input_data).__name__}",
            correlation_id,
            (time.time() - start_time) * MS_PER_SECOND,
        )

    except Exception as e:
        processing_time = (time.time() - start_time) * MS_PER_SECOND
        logger.exception(
            "Parse operation failed",
            extra={"processing_time_ms": processing_time}
        )
        return _create_error_result(
            f"Parse operation failed: {e}", correlation_id, processing_time
        )


def parse_string(
    markup: str,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> ParseResult:
    """Parse markup held in a string.

    Examples:
        >>> result = parse_string('<r><c>1</c><c>2</c></r>')
        >>> result["r"].children
        ['c', 'c_1']
        >>> result["r"]["c_1"].text
        '2'
    """
    logger = get_logger(__name__, correlation_id, "parse_string")
    logger.debug(
        "Starting string parse operation",
        extra={
            "content_length": len(markup),
            "preview": (
                markup[:PREVIEW_LENGTH] + "..."
                if len(markup) > PREVIEW_LENGTH else markup
            )
        }
    )
    return TreeBuilder(config, correlation_id).build(markup)


def parse_file(
    file_path: Union[str, Path],
    encoding: Optional[str] = None,
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> ParseResult:
    """Parse markup from a file.

    Args:
        file_path: Path to the file (string or Path object)
        encoding: Encoding override; detected from the content if omitted
        config: Optional parser configuration
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParseResult; a missing or unreadable file yields ``success=False``
    """
    start_time = time.time()
    logger = get_logger(__name__, correlation_id, "parse_file")
    path_obj = Path(file_path)

    logger.info(
        "Starting file parse operation",
        extra={"file_path": str(path_obj), "encoding_override": encoding}
    )

    error_message = None
    if not path_obj.exists():
        error_message = f"File not found: {path_obj}"
    elif not path_obj.is_file():
        error_message = f"Path is not a file: {path_obj}"
    if error_message:
        return _create_error_result(
            error_message, correlation_id, (time.time() - start_time) * MS_PER_SECOND
        )

    try:
        raw = path_obj.read_bytes()
    except OSError as e:
        logger.warning("File could not be read", extra={"file_path": str(path_obj)})
        return _create_error_result(
            f"Cannot read file {path_obj}: {e}",
            correlation_id,
            (time.time() - start_time) * MS_PER_SECOND,
        )

    if encoding:
        config = (config or ParserConfig()).override(encoding=encoding)
    result = _parse_bytes(raw, config, correlation_id, force_encoding=bool(encoding))
    result.performance.processing_time_ms = (time.time() - start_time) * MS_PER_SECOND
    return result


def _parse_bytes(
    raw: bytes,
    config: Optional[ParserConfig],
    correlation_id: Optional[str],
    force_encoding: bool = False,
) -> ParseResult:
    config = config or ParserConfig()
    if force_encoding:
        warnings: List[str] = []
        try:
            text = raw.decode(config.encoding)
        except UnicodeDecodeError as e:
            warnings.append(f"Input is not valid {config.encoding}; undecodable bytes replaced: {e}")
            text = raw.decode(config.encoding, errors="replace")
        text = text.lstrip("\ufeff")
    else:
        text, _, warnings = decode_markup(raw, config.encoding)

    result = parse_string(text, config, correlation_id)
    result.diagnostics[:0] = [
        DiagnosticEntry(
            severity=DiagnosticSeverity.WARNING,
            message=message,
            component="api_parser",
            kind=ErrorKind.ENCODING,
            correlation_id=correlation_id,
        )
        for message in warnings
    ]
    return result


def _parse_file_like_object(
    file_obj: Union[BinaryIO, TextIO],
    config: Optional[ParserConfig],
    correlation_id: Optional[str]
) -> ParseResult:
    content = file_obj.read()
    if isinstance(content, (bytes, bytearray)):
        return _parse_bytes(bytes(content), config, correlation_id)
    return parse_string(content, config, correlation_id)


def _create_error_result(
    error_message: str,
    correlation_id: Optional[str],
    processing_time: float
) -> ParseResult:
    """Create an empty, failed result carrying a CRITICAL diagnostic."""
    result = ParseResult(correlation_id=correlation_id)
    result.success = False
    result.performance.processing_time_ms = processing_time

    entry = result.add_diagnostic(
        DiagnosticSeverity.CRITICAL,
        error_message,
        "api_parser",
        kind=ErrorKind.INTERNAL,
    )
    result.failure = ParseFailure.from_diagnostic(entry)
    return result


class MarkupTreeParser:
    """Reusable parser with a fixed configuration.

    Examples:
        >>> parser = MarkupTreeParser(ParserConfig.recovering())
        >>> result = parser.parse('<a><b>x</a>')
        >>> result["a"]["b"].text
        'x'
        >>> parser.statistics["total_parses"]
        1
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        self.config = config or ParserConfig()
        self.correlation_id = correlation_id or self.config.correlation_id
        self.logger = get_logger(__name__, self.correlation_id, "markup_tree_parser")

        self._parse_count = 0
        self._successful_parses = 0
        self._total_processing_time = 0.0

    def parse(
        self,
        input_data: InputType,
        config_override: Optional[ParserConfig] = None,
        correlation_id_override: Optional[str] = None
    ) -> ParseResult:
        """Parse input with this parser's configuration.

        Args:
            input_data: Markup as any supported input type
            config_override: Configuration to use for this call only
            correlation_id_override: Correlation ID for this call only
        """
        config = config_override or self.config
        correlation_id = correlation_id_override or self.correlation_id

        result = parse(input_data, config, correlation_id)

        self._parse_count += 1
        self._total_processing_time += result.performance.processing_time_ms
        if result.success:
            self._successful_parses += 1

        self.logger.debug(
            "Configured parse completed",
            extra={
                "success": result.success,
                "total_parses": self._parse_count,
            }
        )
        return result

    def reconfigure(self, config: ParserConfig) -> None:
        """Replace the parser configuration."""
        self.config = config
        self.logger.info("Parser reconfigured", extra={"preset": config.name})

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get parser usage statistics."""
        return {
            "total_parses": self._parse_count,
            "successful_parses": self._successful_parses,
            "success_rate": (
                self._successful_parses / self._parse_count
                if self._parse_count > 0 else 0.0
            ),
            "total_processing_time_ms": self._total_processing_time,
            "average_processing_time_ms": (
                self._total_processing_time / self._parse_count
                if self._parse_count > 0 else 0.0
            ),
            "correlation_id": self.correlation_id,
        }

    def reset_statistics(self) -> None:
        """Reset parser usage statistics."""
        self._parse_count = 0
        self._successful_parses = 0
        self._total_processing_time = 0.0
