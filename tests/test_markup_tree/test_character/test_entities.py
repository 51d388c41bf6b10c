"""Tests for predefined entity decoding and escaping."""

import pytest

from markup_tree.character import (
    PREDEFINED_ENTITIES,
    decode_entities,
    escape_attribute,
    escape_text,
)


class TestDecodeEntities:
    """Test decode_entities."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("&amp;", "&"),
            ("&lt;", "<"),
            ("&gt;", ">"),
            ("&apos;", "'"),
            ("&quot;", '"'),
            ("&lt;x&gt;", "<x>"),
            ("a &amp; b", "a & b"),
        ],
    )
    def test_predefined_entities(self, raw, expected):
        """Test each predefined entity."""
        assert decode_entities(raw) == expected

    def test_single_pass(self):
        """Test that decoded output is not decoded again."""
        assert decode_entities("&amp;lt;") == "&lt;"
        assert decode_entities("&amp;amp;") == "&amp;"

    def test_unknown_references_untouched(self):
        """Test that other references are left alone."""
        assert decode_entities("&nbsp;&#65;&#x41;") == "&nbsp;&#65;&#x41;"
        assert decode_entities("AT&T") == "AT&T"
        assert decode_entities("&lt") == "&lt"

    def test_plain_text(self):
        """Test text without entities."""
        assert decode_entities("") == ""
        assert decode_entities("plain") == "plain"

    def test_table(self):
        """Test the entity table."""
        assert set(PREDEFINED_ENTITIES) == {"amp", "lt", "gt", "apos", "quot"}


class TestEscaping:
    """Test escape_text and escape_attribute."""

    def test_escape_text(self):
        """Test text escaping."""
        assert escape_text('a < b & c > "d"') == 'a &lt; b &amp; c &gt; "d"'

    def test_escape_attribute(self):
        """Test attribute escaping."""
        assert escape_attribute('say "<hi>" & go') == "say &quot;&lt;hi&gt;&quot; &amp; go"

    @pytest.mark.parametrize("value", ["&lt;", "a&b", "<>\"'", "&amp;amp;"])
    def test_escape_then_decode(self, value):
        """Test that escaping is undone by decoding."""
        assert decode_entities(escape_text(value)) == value
        assert decode_entities(escape_attribute(value)) == value
