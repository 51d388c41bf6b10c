"""Tests for the progressive parsing API."""

import io

import pytest

from markup_tree.api import MarkupTreeParser, decode_markup, parse, parse_file, parse_string
from markup_tree.shared import (
    DiagnosticSeverity,
    ErrorKind,
    MismatchPolicy,
    ParserConfig,
)


class TestParseString:
    """Test parse_string and parse with text input."""

    def test_basic(self):
        """Test a simple document."""
        result = parse_string("<root><item>value</item></root>")

        assert result.success
        assert result["root"]["item"].text == "value"

    def test_parse_dispatches_strings(self):
        """Test universal parse with a string."""
        result = parse("<r><c>1</c><c>2</c></r>")

        assert result["r"].children == ["c", "c_1"]

    def test_config_and_correlation_id(self):
        """Test passing configuration and correlation id."""
        result = parse("<a><b>x</a>", ParserConfig.recovering(), correlation_id="req-1")

        assert result.correlation_id == "req-1"
        assert result["a"]["b"].text == "x"
        assert all(d.correlation_id == "req-1" for d in result.diagnostics)


class TestParseBytes:
    """Test byte input and encoding handling."""

    def test_utf8_bytes(self):
        """Test UTF-8 input."""
        result = parse("<a>café</a>".encode("utf-8"))

        assert result["a"].text == "café"
        assert result.diagnostics == []

    def test_declared_encoding(self):
        """Test honouring the XML declaration."""
        data = '<?xml version="1.0" encoding="ISO-8859-1"?><a>café</a>'.encode("latin-1")
        result = parse(data)

        assert result["a"].text == "café"
        assert result["xml"].attributes["encoding"] == "ISO-8859-1"
        assert result.diagnostics == []

    def test_utf8_bom_stripped(self):
        """Test that a UTF-8 byte order mark is removed."""
        result = parse(b"\xef\xbb\xbf<a>x</a>")

        assert result.root.children == ["a"]
        assert result.diagnostics == []

    def test_utf16_bom(self):
        """Test UTF-16 input detected by its byte order mark."""
        result = parse("<a>wide</a>".encode("utf-16"))

        assert result["a"].text == "wide"

    def test_undecodable_bytes_replaced(self):
        """Test the fallback for invalid input."""
        result = parse(b"<a>bad \xff byte</a>")

        assert result.success
        assert result["a"].text == "bad \ufffd byte"
        assert result.diagnostics[0].kind is ErrorKind.ENCODING
        assert result.diagnostics[0].severity is DiagnosticSeverity.WARNING

    def test_unknown_declared_encoding(self):
        """Test an encoding name that Python does not know."""
        result = parse(b'<?xml version="1.0" encoding="no-such-codec"?><a>x</a>')

        assert result["a"].text == "x"
        assert result.diagnostics[0].kind is ErrorKind.ENCODING

    def test_config_default_encoding(self):
        """Test the configured fallback encoding."""
        config = ParserConfig(encoding="latin-1")
        result = parse("<a>é</a>".encode("latin-1"), config)

        assert result["a"].text == "é"


class TestDecodeMarkup:
    """Test the byte decoder directly."""

    def test_returns_encoding_used(self):
        """Test the reported encoding."""
        text, encoding, warnings = decode_markup(b'<?xml encoding="latin-1"?><a/>')

        assert text.endswith("<a/>")
        assert encoding == "iso8859-1"
        assert warnings == []

    def test_default_encoding(self):
        """Test input without a declaration."""
        assert decode_markup(b"<a/>") == ("<a/>", "utf-8", [])


class TestFileInput:
    """Test file and file-like input."""

    def test_parse_file(self, tmp_path):
        """Test parsing from a path."""
        path = tmp_path / "doc.xml"
        path.write_text("<doc><p>hello</p></doc>", encoding="utf-8")

        result = parse_file(path)

        assert result.success
        assert result["doc"]["p"].text == "hello"

    def test_parse_file_from_string_path(self, tmp_path):
        """Test a string path."""
        path = tmp_path / "doc.xml"
        path.write_text("<doc/>", encoding="utf-8")

        assert parse_file(str(path)).root.children == ["doc"]

    def test_parse_path_object(self, tmp_path):
        """Test universal parse with a Path."""
        path = tmp_path / "doc.xml"
        path.write_bytes("<doc>ü</doc>".encode("utf-8"))

        assert parse(path)["doc"].text == "ü"

    def test_encoding_override(self, tmp_path):
        """Test an explicit encoding."""
        path = tmp_path / "doc.xml"
        path.write_bytes("<doc>é</doc>".encode("cp1252"))

        result = parse_file(path, encoding="cp1252")

        assert result["doc"].text == "é"
        assert result.diagnostics == []

    def test_missing_file(self, tmp_path):
        """Test that a missing file is reported, not raised."""
        result = parse_file(tmp_path / "missing.xml")

        assert not result.success
        assert result.failure.kind is ErrorKind.INTERNAL
        assert "File not found" in result.diagnostics[0].message
        assert result.diagnostics[0].severity is DiagnosticSeverity.CRITICAL

    def test_directory_is_not_a_file(self, tmp_path):
        """Test passing a directory."""
        result = parse_file(tmp_path)

        assert not result.success
        assert "not a file" in result.diagnostics[0].message

    def test_text_stream(self):
        """Test a text file-like object."""
        assert parse(io.StringIO("<a>s</a>"))["a"].text == "s"

    def test_binary_stream(self):
        """Test a binary file-like object."""
        assert parse(io.BytesIO(b"<a>b</a>"))["a"].text == "b"

    def test_unsupported_type(self):
        """Test input of an unsupported type."""
        result = parse(42)  # type: ignore[arg-type]

        assert not result.success
        assert "Unsupported input type" in result.diagnostics[0].message


class TestMarkupTreeParser:
    """Test the configured parser class."""

    def test_uses_configuration(self):
        """Test that the parser applies its configuration."""
        parser = MarkupTreeParser(ParserConfig.recovering())
        result = parser.parse("<a><b>x</a>")

        assert not result.has_errors()
        assert result["a"]["b"].text == "x"

    def test_config_override(self):
        """Test a per-call configuration."""
        parser = MarkupTreeParser()
        result = parser.parse("<a></b></a>", config_override=ParserConfig(strict=True))

        assert not result.success
        assert parser.config.strict is False

    def test_correlation_id_override(self):
        """Test a per-call correlation id."""
        parser = MarkupTreeParser(correlation_id="base")

        assert parser.parse("<a/>").correlation_id == "base"
        assert parser.parse("<a/>", correlation_id_override="other").correlation_id == "other"

    def test_statistics(self):
        """Test usage statistics."""
        parser = MarkupTreeParser(ParserConfig.strict_mode())
        parser.parse("<a/>")
        parser.parse("<a>")

        stats = parser.statistics
        assert stats["total_parses"] == 2
        assert stats["successful_parses"] == 1
        assert stats["success_rate"] == pytest.approx(0.5)
        assert stats["average_processing_time_ms"] >= 0

        parser.reset_statistics()
        assert parser.statistics["total_parses"] == 0
        assert parser.statistics["success_rate"] == 0.0

    def test_reconfigure(self):
        """Test replacing the configuration."""
        parser = MarkupTreeParser()
        parser.reconfigure(ParserConfig.recovering())

        assert parser.config.tree.mismatch_policy is MismatchPolicy.BACKTRACK

    def test_correlation_id_from_config(self):
        """Test taking the correlation id from the configuration."""
        parser = MarkupTreeParser(ParserConfig(correlation_id="cfg"))

        assert parser.correlation_id == "cfg"
        assert parser.parse("<a/>").correlation_id == "cfg"
