"""Tests for the CLI main module."""

import json
import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from markup_tree.cli.main import (
    CLIConfig,
    MarkupProcessor,
    build_cli_config,
    create_argument_parser,
    format_results,
    main,
)
from markup_tree.shared.config import ConfigError, MismatchPolicy, ParserConfig


@pytest.fixture
def markup_dir(tmp_path):
    """Directory holding a valid and a broken document."""
    (tmp_path / "good.xml").write_text("<doc><item>1</item></doc>", encoding="utf-8")
    (tmp_path / "bad.xml").write_text("<doc><item>1</doc>", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("<doc/>", encoding="utf-8")
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "image.svg").write_text("<svg/>", encoding="utf-8")
    return tmp_path


class TestCLIConfig:
    """Test CLI configuration management."""

    def test_default_config(self):
        """Test default configuration values."""
        config = CLIConfig()
        assert config.parser_config == ParserConfig.lenient()
        assert config.max_workers is None
        assert config.output_format == "json"

    def test_config_from_file(self):
        """Test loading configuration from file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            json.dump({"preset": "recovering", "max_workers": 4, "output_format": "text"}, f)
            config_path = Path(f.name)

        try:
            config = CLIConfig.from_file(config_path)
            assert config.parser_config.tree.mismatch_policy is MismatchPolicy.BACKTRACK
            assert config.max_workers == 4
            assert config.output_format == "text"
        finally:
            config_path.unlink()

    def test_parser_section_wins_over_preset(self, tmp_path):
        """Test an explicit parser mapping."""
        config_path = tmp_path / "config.json"
        config_path.write_text(
            json.dumps({"preset": "recovering", "parser": {"strict": True}}),
            encoding="utf-8",
        )

        config = CLIConfig.from_file(config_path)

        assert config.parser_config.strict is True
        assert config.parser_config.tree.mismatch_policy is MismatchPolicy.IGNORE

    def test_missing_file(self, tmp_path):
        """Test a config path that does not exist."""
        with pytest.raises(ConfigError, match="Could not load"):
            CLIConfig.from_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Test a config file that is not JSON."""
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError):
            CLIConfig.from_file(config_path)

    def test_non_object(self, tmp_path):
        """Test a JSON document that is not an object."""
        config_path = tmp_path / "config.json"
        config_path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ConfigError, match="JSON object"):
            CLIConfig.from_file(config_path)


class TestMarkupProcessor:
    """Test the file processing logic."""

    def test_process_single_file(self, markup_dir):
        """Test the per-file summary."""
        processor = MarkupProcessor(CLIConfig())
        result = processor.process_single_file(markup_dir / "good.xml")

        assert result["success"] is True
        assert result["element_count"] == 2
        assert result["max_depth"] == 2
        assert result["unclosed_count"] == 0
        assert result["diagnostics"] == []

    def test_process_broken_file(self, markup_dir):
        """Test that problems show up as diagnostics."""
        processor = MarkupProcessor(CLIConfig())
        result = processor.process_single_file(markup_dir / "bad.xml")

        assert result["diagnostics"]
        assert any(d["severity"] == "ERROR" for d in result["diagnostics"])

    def test_find_markup_files(self, markup_dir):
        """Test directory discovery."""
        processor = MarkupProcessor(CLIConfig())

        recursive = {p.name for p in processor.find_markup_files(markup_dir)}
        flat = {p.name for p in processor.find_markup_files(markup_dir, recursive=False)}

        assert recursive == {"good.xml", "bad.xml", "image.svg"}
        assert flat == {"good.xml", "bad.xml"}

    def test_find_single_file(self, markup_dir):
        """Test that a file path is yielded as is."""
        processor = MarkupProcessor(CLIConfig())
        path = markup_dir / "notes.txt"

        assert list(processor.find_markup_files(path)) == [path]

    def test_batch_process(self, markup_dir):
        """Test sequential batch processing."""
        processor = MarkupProcessor(CLIConfig())
        results = processor.batch_process([markup_dir], recursive=False)

        assert [Path(r["file"]).name for r in results] == ["bad.xml", "good.xml"]

    def test_batch_process_empty(self, tmp_path):
        """Test a directory without markup files."""
        assert MarkupProcessor(CLIConfig()).batch_process([tmp_path]) == []


class TestArgumentParser:
    """Test argument parsing."""

    def test_parse_command(self):
        """Test the parse command arguments."""
        args = create_argument_parser().parse_args(
            ["parse", "a.xml", "b.xml", "-r", "-f", "text", "-w", "2", "--mismatch", "backtrack"]
        )

        assert args.command == "parse"
        assert args.paths == [Path("a.xml"), Path("b.xml")]
        assert args.recursive is True
        assert args.format == "text"
        assert args.workers == 2
        assert args.mismatch == "backtrack"

    def test_convert_defaults(self):
        """Test the convert command defaults."""
        args = create_argument_parser().parse_args(["convert", "doc.xml"])

        assert args.target == "json"
        assert args.indent == 2
        assert args.output is None
        assert args.strict is False

    def test_invalid_preset(self):
        """Test that unknown presets are rejected."""
        with pytest.raises(SystemExit):
            create_argument_parser().parse_args(["parse", "a.xml", "--preset", "fast"])

    def test_build_cli_config_overrides(self):
        """Test combining preset and flags."""
        args = create_argument_parser().parse_args(
            ["validate", "a.xml", "--preset", "recovering", "--strict"]
        )
        config = build_cli_config(args)

        assert config.parser_config.strict is True
        assert config.parser_config.tree.mismatch_policy is MismatchPolicy.BACKTRACK


class TestFormatResults:
    """Test result formatting."""

    RESULTS = [
        {
            "file": "good.xml",
            "success": True,
            "failure": None,
            "element_count": 3,
            "max_depth": 2,
            "processing_time_ms": 1.25,
            "diagnostics": [],
        },
        {
            "file": "bad.xml",
            "success": False,
            "failure": "TAG_MISMATCH at offset 5",
            "element_count": 1,
            "max_depth": 1,
            "processing_time_ms": 0.5,
            "diagnostics": [
                {"severity": "ERROR", "message": f"problem {i}"} for i in range(5)
            ],
        },
    ]

    def test_json(self):
        """Test JSON output."""
        assert json.loads(format_results(self.RESULTS, "json")) == self.RESULTS

    def test_text(self):
        """Test the text report."""
        text = format_results(self.RESULTS, "text")

        assert text.startswith("Processed 2 files, 1 successful")
        assert "OK good.xml" in text
        assert "FAILED bad.xml" in text
        assert "Failure: TAG_MISMATCH at offset 5" in text
        assert "Error: problem 2" in text
        assert "Error: problem 3" not in text
        assert "... and 2 more errors" in text

    def test_text_empty(self):
        """Test the text report without results."""
        assert format_results([], "text") == "No results to display."


class TestMain:
    """Test the entry point."""

    def test_no_command(self, capsys):
        """Test running without a command."""
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_parse_success(self, markup_dir, capsys):
        """Test parsing a valid file."""
        assert main(["parse", str(markup_dir / "good.xml")]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output[0]["success"] is True
        assert output[0]["element_count"] == 2

    def test_parse_strict_failure(self, markup_dir, capsys):
        """Test that strict parsing of a broken file fails."""
        assert main(["parse", str(markup_dir / "bad.xml"), "--strict", "-f", "text"]) == 1
        assert "FAILED" in capsys.readouterr().out

    def test_parse_to_output_file(self, markup_dir, tmp_path, capsys):
        """Test writing results to a file."""
        output = tmp_path / "report.json"

        assert main(["parse", str(markup_dir / "good.xml"), "-o", str(output)]) == 0
        assert json.loads(output.read_text(encoding="utf-8"))[0]["success"] is True
        assert "Results written to" in capsys.readouterr().err

    def test_parse_nothing_found(self, tmp_path):
        """Test a directory without markup."""
        assert main(["-q", "parse", str(tmp_path)]) == 1

    def test_convert_markup(self, tmp_path, capsys):
        """Test conversion back to indented markup."""
        path = tmp_path / "doc.xml"
        path.write_text('<a x="1"><b>t</b></a>', encoding="utf-8")

        assert main(["convert", str(path), "--to", "markup"]) == 0
        assert capsys.readouterr().out == '<a x="1">\n  <b>t</b>\n</a>\n'

    def test_convert_legacy(self, tmp_path, capsys):
        """Test conversion to the flat mapping view."""
        path = tmp_path / "doc.xml"
        path.write_text("<a><b>1</b><b>2</b></a>", encoding="utf-8")

        assert main(["convert", str(path), "--to", "legacy"]) == 0
        view = json.loads(capsys.readouterr().out)
        assert view["a"]["Children"] == ["b", "b_1"]
        assert view["a"]["b_1"]["Contents"] == "2"

    def test_convert_reports_diagnostics(self, tmp_path, capsys):
        """Test that problems are printed to stderr."""
        path = tmp_path / "doc.xml"
        path.write_text("<a><b>x</c></b></a>", encoding="utf-8")

        assert main(["convert", str(path)]) == 0
        captured = capsys.readouterr()
        assert "ERROR:" in captured.err
        assert json.loads(captured.out)["success"] is True

    def test_convert_reports_encoder_recursion(self, tmp_path, capsys):
        """Test the error path when JSON encoding runs out of depth."""
        path = tmp_path / "doc.xml"
        path.write_text("<a/>", encoding="utf-8")

        with patch("markup_tree.cli.main.json.dumps", side_effect=RecursionError):
            assert main(["convert", str(path), "--to", "legacy"]) == 1

        captured = capsys.readouterr()
        assert "nested too deeply to encode as JSON" in captured.err
        assert captured.out == ""

    def test_convert_deep_document(self, tmp_path, capsys):
        """Test that very deep documents end with an exit code."""
        depth = 3000
        path = tmp_path / "deep.xml"
        path.write_text("<n>" * depth + "</n>" * depth, encoding="utf-8")

        exit_code = main(["convert", str(path)])

        captured = capsys.readouterr()
        if exit_code == 0:
            assert captured.out.startswith('{\n  "success": true')
        else:
            assert exit_code == 1
            assert "nested too deeply" in captured.err

    def test_convert_deep_document_as_markup(self, tmp_path, capsys):
        """Test markup output for very deep documents."""
        depth = 3000
        path = tmp_path / "deep.xml"
        path.write_text("<n>" * depth + "</n>" * depth, encoding="utf-8")

        assert main(["convert", str(path), "--to", "markup"]) == 0
        assert capsys.readouterr().out.count("<n") == depth

    def test_validate(self, markup_dir, capsys):
        """Test validation of valid and broken files."""
        exit_code = main([
            "validate", str(markup_dir / "good.xml"), str(markup_dir / "bad.xml"),
        ])

        assert exit_code == 1
        output = capsys.readouterr().out
        assert "Validated 2 files, 1 valid" in output
        assert "INVALID" in output

    def test_validate_json(self, markup_dir, capsys):
        """Test JSON validation output."""
        assert main(["validate", str(markup_dir / "good.xml"), "-f", "json"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output == [
            {"file": str(markup_dir / "good.xml"), "valid": True, "warnings": 0, "errors": 0}
        ]

    def test_config_error(self, tmp_path, capsys):
        """Test the exit code for a broken configuration file."""
        config_path = tmp_path / "config.json"
        config_path.write_text('{"parser": {"no_such_field": 1}}', encoding="utf-8")

        assert main(["validate", "doc.xml", "--config", str(config_path)]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_keyboard_interrupt(self, capsys):
        """Test interruption handling."""
        interrupted = Mock(side_effect=KeyboardInterrupt)
        with patch.dict("markup_tree.cli.main.COMMANDS", {"parse": interrupted}):
            assert main(["parse", "doc.xml"]) == 130

        assert "interrupted" in capsys.readouterr().err
