#!/usr/bin/env python3
"""
Quick Start Guide for markup-tree.

This example walks through loading markup, navigating the resulting tree,
handling malformed input and converting the tree to other representations.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from markup_tree import (
    MarkupTreeParser,
    MismatchPolicy,
    ParseError,
    ParserConfig,
    parse,
    serialize,
)
from markup_tree.api import ElementTreeAdapter, LegacyArrayAdapter


BOOK = """<?xml version="1.0"?>
<book id="123" genre="fiction">
    <title>My Book</title>
    <author>John Doe</author>
    <author>Jane Roe</author>
    <price currency="USD">19.99</price>
    <note>Fish &amp; Chips &lt;3</note>
</book>"""


def quick_start_example():
    """Quick start example showing basic usage."""

    print("🚀 QUICK START - markup-tree")
    print("=" * 45)

    # Step 1: Load a document
    print("\n📄 Step 1: Loading Markup")
    print("-" * 30)

    result = parse(BOOK)

    print(f"✅ Success: {result.success}")
    print(f"📦 Top-level keys: {result.root.children}")
    print(f"📏 Document depth: {result.max_depth}")

    # Step 2: Navigate the tree
    print("\n🧭 Step 2: Navigation")
    print("-" * 30)

    book = result["book"]
    print(f"📚 Children of <book>: {book.children}")
    print(f"📖 Title: {book['title'].text}")
    # Repeated siblings are stored under numbered keys
    print(f"✍️  Authors: {book['author'].text}, {book['author_1'].text}")
    print(f"💰 Price: {book['price'].get_attribute('currency')} {book['price'].text}")
    print(f"📝 Decoded note: {book['note'].text}")

    # Step 3: Statistics
    print("\n📊 Step 3: Document Statistics")
    print("-" * 30)

    for key, value in result.summary().items():
        print(f"  {key}: {value}")

    print("\n🎉 Quick start complete!")


def malformed_input_example():
    """Example showing how problems are reported."""

    print("\n\n🔍 MALFORMED INPUT EXAMPLE")
    print("=" * 40)

    broken = "<list><item>one</wrong><item>two</item></list>trailing"

    configs = [
        (ParserConfig.lenient(), "Ignore stray close tags"),
        (ParserConfig.recovering(), "Close elements back to a matching ancestor"),
    ]

    for config, description in configs:
        print(f"\n📋 {config.name} ({description}):")
        result = MarkupTreeParser(config).parse(broken)

        print(f"  Success: {result.success}")
        print(f"  Tree: {serialize(result.root)}")
        # Elements never closed are kept apart from the tree
        print(f"  Unclosed: {[node.name for node in result.unclosed]}")
        for diag in result.diagnostics:
            print(f"  {diag.severity.name}: {diag.message}")

    print("\n📋 strict (Fail on the first malformed construct):")
    result = parse(broken, ParserConfig.strict_mode())
    print(f"  Success: {result.success}")
    print(f"  Failure: {result.failure}")
    try:
        result.raise_for_failure()
    except ParseError as e:
        print(f"  ❌ Raised: {e}")

    custom = ParserConfig().override(tree__mismatch_policy=MismatchPolicy.BACKTRACK)
    print(f"\n🔧 Custom policy: {custom.tree.mismatch_policy.name}")


def conversion_example():
    """Example showing the conversion adapters."""

    print("\n\n🔄 CONVERSION EXAMPLE")
    print("=" * 35)

    result = parse('<items><item id="1">Sample text</item><item id="2"/></items>')

    print("\n📋 Indented markup:")
    print(serialize(result.root, indent=2))

    print("\n📋 Legacy flat mapping:")
    legacy = LegacyArrayAdapter().to_target(result)
    print(f"  {legacy.converted_data}")

    print("\n📋 ElementTree:")
    conversion = ElementTreeAdapter().to_target(result)
    if conversion.success:
        element = conversion.converted_data
        print(f"  <{element.tag}> with {len(element)} children")
    else:
        print(f"  ❌ Failed: {conversion.errors}")


def main():
    """Main function."""
    try:
        quick_start_example()
        malformed_input_example()
        conversion_example()

        print("\n✅ All examples completed successfully!")
        return 0

    except Exception as e:
        print(f"\n❌ Example failed: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
