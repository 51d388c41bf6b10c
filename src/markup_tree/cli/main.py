"""Main CLI entry point for the markup-tree command-line tool.

Provides parse, convert and validate commands for markup files.
"""

import argparse
import json
import logging
import sys
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from markup_tree import __version__
from markup_tree.api import LegacyArrayAdapter, MarkupTreeParser
from markup_tree.shared.config import ConfigError, MismatchPolicy, ParserConfig
from markup_tree.shared.logging import configure_logging, get_logger

MARKUP_SUFFIXES = (".xml", ".xhtml", ".svg")
PRESETS = ("lenient", "strict", "recovering")
MAX_LISTED_ERRORS = 3


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self) -> None:
        self.parser_config = ParserConfig.lenient()
        self.max_workers: Optional[int] = None
        self.output_format = "json"

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        Recognised keys are ``preset``, ``parser`` (a ``ParserConfig``
        mapping applied instead of the preset), ``max_workers`` and
        ``output_format``.

        Raises:
            ConfigError: If the file cannot be read or holds invalid settings
        """
        config = cls()
        try:
            with config_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not load config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must hold a JSON object")

        if "parser" in data:
            config.parser_config = ParserConfig.from_dict(data["parser"])
        elif "preset" in data:
            config.parser_config = ParserConfig.preset(data["preset"])

        config.max_workers = data.get("max_workers", config.max_workers)
        config.output_format = data.get("output_format", config.output_format)
        return config


class MarkupProcessor:
    """Core processing logic for CLI operations."""

    def __init__(self, config: CLIConfig) -> None:
        self.config = config
        self.parser = MarkupTreeParser(config=config.parser_config)
        self.logger = get_logger(__name__, None, "cli_processor")

    def process_single_file(self, file_path: Path) -> Dict[str, Any]:
        """Parse a single file and summarise the outcome."""
        result = self.parser.parse(Path(file_path))
        summary = result.summary()

        return {
            "file": str(file_path),
            "success": result.success,
            "failure": summary["failure"],
            "element_count": summary["element_count"],
            "attribute_count": summary["attribute_count"],
            "max_depth": summary["max_depth"],
            "unclosed_count": summary["unclosed_count"],
            "processing_time_ms": summary["processing_time_ms"],
            "diagnostics": [diag.to_dict() for diag in result.diagnostics],
        }

    def find_markup_files(self, path: Path, recursive: bool = True) -> Iterator[Path]:
        """Yield ``path`` itself if it is a file, else the markup files below it."""
        if path.is_dir():
            for suffix in MARKUP_SUFFIXES:
                pattern = f"**/*{suffix}" if recursive else f"*{suffix}"
                for markup_file in sorted(path.glob(pattern)):
                    if markup_file.is_file():
                        yield markup_file
        else:
            # Missing files are reported by the parser
            yield path

    def batch_process(self, paths: List[Path], recursive: bool = True) -> List[Dict[str, Any]]:
        """Process several files, in parallel when more than one worker is allowed."""
        all_files: List[Path] = []
        for path in paths:
            all_files.extend(self.find_markup_files(path, recursive))

        if not all_files:
            return []

        self.logger.info(
            "Batch processing started",
            extra={"file_count": len(all_files), "max_workers": self.config.max_workers}
        )

        if len(all_files) == 1 or not self.config.max_workers or self.config.max_workers == 1:
            return [self.process_single_file(file_path) for file_path in all_files]

        with ProcessPoolExecutor(max_workers=self.config.max_workers) as executor:
            return list(executor.map(self.process_single_file, all_files))


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="markup-tree",
        description="Load XML-like markup into a navigable tree and report problems"
    )

    parser.add_argument("--version", action="version", version=__version__)

    # Options shared by every command that parses input
    parser_options = argparse.ArgumentParser(add_help=False)
    parser_options.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path (JSON)"
    )
    parser_options.add_argument(
        "--preset",
        choices=PRESETS,
        help="Parser configuration preset"
    )
    parser_options.add_argument(
        "--mismatch",
        choices=[policy.name.lower() for policy in MismatchPolicy],
        help="How to handle close tags that do not match the open element"
    )
    parser_options.add_argument(
        "--strict",
        action="store_true",
        help="Stop at the first error"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser(
        "parse", parents=[parser_options], help="Parse markup files"
    )
    parse_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Markup files or directories to parse"
    )
    parse_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Recursively process directories"
    )
    parse_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        help="Output format (default: json)"
    )
    parse_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    parse_parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of parallel workers"
    )

    # Convert command
    convert_parser = subparsers.add_parser(
        "convert", parents=[parser_options], help="Convert a markup file"
    )
    convert_parser.add_argument("path", type=Path, help="Markup file to convert")
    convert_parser.add_argument(
        "--to", "-t",
        dest="target",
        choices=["json", "legacy", "markup"],
        default="json",
        help="Target representation (default: json)"
    )
    convert_parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="Indentation width (default: 2)"
    )
    convert_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", parents=[parser_options], help="Check markup files for errors"
    )
    validate_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Markup files to validate"
    )
    validate_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format"
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def build_cli_config(args: argparse.Namespace) -> CLIConfig:
    """Combine the config file with command-line overrides."""
    config = CLIConfig.from_file(args.config) if args.config else CLIConfig()

    if args.preset:
        config.parser_config = ParserConfig.preset(args.preset)
    if args.mismatch:
        config.parser_config = config.parser_config.override(
            tree__mismatch_policy=MismatchPolicy[args.mismatch.upper()]
        )
    if args.strict:
        config.parser_config = config.parser_config.override(strict=True)
    return config


def format_results(results: List[Dict[str, Any]], format_type: str) -> str:
    """Format processing results for output."""
    if format_type == "text":
        if not results:
            return "No results to display."

        successful = sum(1 for r in results if r.get("success", False))
        lines = [f"Processed {len(results)} files, {successful} successful", "-" * 60]

        for result in results:
            status = "OK" if result.get("success", False) else "FAILED"
            lines.append(f"{status} {result['file']}")
            lines.append(
                f"   Elements: {result.get('element_count', 0)}, "
                f"Depth: {result.get('max_depth', 0)}, "
                f"Time: {result.get('processing_time_ms', 0):.1f}ms"
            )
            if result.get("failure"):
                lines.append(f"   Failure: {result['failure']}")

            errors = [
                d for d in result.get("diagnostics", [])
                if d.get("severity") in ("ERROR", "CRITICAL")
            ]
            for error in errors[:MAX_LISTED_ERRORS]:
                lines.append(f"   Error: {error.get('message', '')}")
            if len(errors) > MAX_LISTED_ERRORS:
                lines.append(f"   ... and {len(errors) - MAX_LISTED_ERRORS} more errors")
            lines.append("")

        return "\n".join(lines)

    return json.dumps(results, indent=2)


def _write_output(text: str, output: Optional[Path]) -> int:
    if output is None:
        print(text)
        return 0
    try:
        output.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    print(f"Results written to {output}", file=sys.stderr)
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    config = build_cli_config(args)
    if args.workers:
        config.max_workers = args.workers
    output_format = args.format or config.output_format

    processor = MarkupProcessor(config)
    results = processor.batch_process(args.paths, args.recursive)

    if _write_output(format_results(results, output_format), args.output):
        return 1

    if not results:
        return 1
    return 0 if all(r.get("success", False) for r in results) else 1


def cmd_convert(args: argparse.Namespace) -> int:
    """Handle convert command."""
    config = build_cli_config(args)
    result = MarkupTreeParser(config.parser_config).parse(args.path)

    for diag in result.diagnostics:
        if diag.severity.name != "INFO":
            print(f"{diag.severity.name}: {diag.message}", file=sys.stderr)

    if args.target == "markup":
        text = result.to_markup(indent=args.indent)
    else:
        if args.target == "legacy":
            data = LegacyArrayAdapter().to_target(result).converted_data
        else:
            data = result.to_dict()
        try:
            text = json.dumps(data, indent=args.indent)
        except RecursionError:
            # The json encoder recurses once per nesting level
            print(
                f"Error: {args.path} is nested too deeply to encode as JSON; "
                "use --to markup",
                file=sys.stderr
            )
            return 1

    if _write_output(text, args.output):
        return 1
    return 0 if result.success else 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    processor = MarkupProcessor(build_cli_config(args))
    results = []

    for path in args.paths:
        result = processor.process_single_file(path)
        diagnostics = result["diagnostics"]
        errors = [
            d["message"] for d in diagnostics if d["severity"] in ("ERROR", "CRITICAL")
        ]
        validation_result: Dict[str, Any] = {
            "file": str(path),
            "valid": result["success"] and not errors,
            "warnings": sum(1 for d in diagnostics if d["severity"] == "WARNING"),
            "errors": len(errors),
        }
        if errors:
            validation_result["error_details"] = errors[:5]
        results.append(validation_result)

    if args.format == "json":
        print(json.dumps(results, indent=2))
    else:
        valid_count = sum(1 for r in results if r["valid"])
        print(f"Validated {len(results)} files, {valid_count} valid")
        print("-" * 50)
        for result in results:
            status = "OK" if result["valid"] else "INVALID"
            print(f"{status} {result['file']}")
            for error in result.get("error_details", [])[:MAX_LISTED_ERRORS]:
                print(f"   Error: {error}")

    return 0 if all(r["valid"] for r in results) else 1


COMMANDS = {
    "parse": cmd_parse,
    "convert": cmd_convert,
    "validate": cmd_validate,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging verbosity
    if args.verbose:
        configure_logging(logging.DEBUG)
    elif args.quiet:
        configure_logging(logging.ERROR)
    else:
        configure_logging(logging.WARNING)

    try:
        return COMMANDS[args.command](args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
