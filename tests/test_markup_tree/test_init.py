"""Test module for markup_tree package initialization."""


def test_package_import() -> None:
    """Test that the package can be imported successfully."""
    # Arrange & Act
    import markup_tree

    # Assert
    assert markup_tree is not None


def test_package_has_version() -> None:
    """Test that the package has a version attribute."""
    import markup_tree

    assert isinstance(markup_tree.__version__, str)
    assert markup_tree.__version__ == "0.1.0"


def test_package_has_author() -> None:
    """Test that the package has an author attribute."""
    import markup_tree

    assert markup_tree.__author__ == "Markup Tree Team"


def test_package_all_exports() -> None:
    """Test that every name in __all__ is importable from the package."""
    import markup_tree

    for name in markup_tree.__all__:
        assert hasattr(markup_tree, name), name

    for name in ("parse", "parse_string", "parse_file", "MarkupTreeParser", "Node"):
        assert name in markup_tree.__all__


def test_top_level_parse_round_trip() -> None:
    """Test the level 1 API end to end."""
    from markup_tree import parse

    result = parse("<greeting lang='en'>hello</greeting>")

    assert result.success
    assert result["greeting"].text == "hello"
    assert result["greeting"].attributes == {"lang": "en"}
