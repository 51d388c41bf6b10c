"""Tests for the Node data model."""

import pytest

from markup_tree.tree import Node


def make_tree() -> Node:
    root = Node.create_root()
    a = Node("a", {"id": "1"})
    b = Node("b", text="one")
    c = Node("c")
    d = Node("b", text="two")
    c.attach(Node("leaf", text="x"))
    a.attach(b)
    a.attach(c)
    a.attach(d)
    root.attach(a)
    return root


class TestChildAttachment:
    """Test the sibling key assignment rule."""

    def test_first_child_uses_bare_name(self):
        """Test that the first child is stored under its name."""
        parent = Node("p")
        key = parent.attach(Node("c"))

        assert key == "c"
        assert parent.children == ["c"]
        assert parent["c"].name == "c"

    def test_repeated_names_get_suffixes(self):
        """Test numbering of repeated sibling names."""
        parent = Node("p")
        keys = [parent.attach(Node("c", text=str(i))) for i in range(4)]

        assert keys == ["c", "c_1", "c_2", "c_3"]
        assert parent.children == keys
        assert [parent[key].text for key in keys] == ["0", "1", "2", "3"]

    def test_smallest_unused_suffix(self):
        """Test that the suffix skips keys already taken by other tags."""
        parent = Node("p")
        parent.attach(Node("c"))
        parent.attach(Node("c_1"))

        assert parent.next_child_key("c") == "c_2"
        assert parent.attach(Node("c")) == "c_2"
        assert parent.children == ["c", "c_1", "c_2"]

    def test_children_and_map_agree(self):
        """Test that every child key appears once in both containers."""
        parent = Node("p")
        for name in ["x", "y", "x", "x", "y"]:
            parent.attach(Node(name))

        assert len(parent.children) == len(set(parent.children))
        assert set(parent.children) == set(parent.child_map)

    def test_root_cannot_be_attached(self):
        """Test that the synthetic root is never a child."""
        with pytest.raises(ValueError, match="root"):
            Node("p").attach(Node.create_root())

    def test_attributes_do_not_collide_with_children(self):
        """Test that attribute names and child names live apart."""
        parent = Node("p", {"c": "attr"})
        parent.attach(Node("c"))

        assert parent.attributes["c"] == "attr"
        assert parent["c"].name == "c"


class TestNavigation:
    """Test lookup and traversal."""

    def test_root(self):
        """Test the synthetic root."""
        root = Node.create_root()

        assert root.is_root
        assert root.name is None
        assert not root.has_children

    def test_item_access(self):
        """Test mapping-style access."""
        root = make_tree()

        assert "a" in root
        assert "z" not in root
        assert root["a"]["b_1"].text == "two"
        assert root.get("z") is None
        with pytest.raises(KeyError):
            root["z"]

    def test_iter_children(self):
        """Test iteration in document order."""
        a = make_tree()["a"]

        assert [key for key, _ in a.iter_children()] == ["b", "c", "b_1"]

    def test_iter_descendants_document_order(self):
        """Test depth-first traversal."""
        root = make_tree()

        assert [n.name for n in root.iter_descendants()] == ["a", "b", "c", "leaf", "b"]

    def test_find(self):
        """Test searching by tag name."""
        root = make_tree()

        assert root.find("leaf").text == "x"
        assert root.find("missing") is None
        assert [n.text for n in root.find_all("b")] == ["one", "two"]

    def test_attributes(self):
        """Test attribute helpers."""
        a = make_tree()["a"]

        assert a.get_attribute("id") == "1"
        assert a.get_attribute("missing", "dflt") == "dflt"
        assert a.has_attribute("id")
        assert not a.has_attribute("missing")

    def test_depth(self):
        """Test subtree height."""
        root = make_tree()

        assert root.depth() == 3
        assert root["a"]["b"].depth() == 0

    def test_depth_of_deep_chain(self):
        """Test that very deep trees do not recurse."""
        root = Node.create_root()
        current = root
        for _ in range(5000):
            child = Node("n")
            current.attach(child)
            current = child

        assert root.depth() == 5000
        assert sum(1 for _ in root.iter_descendants()) == 5000


class TestSerialization:
    """Test dictionary conversion."""

    def test_to_dict(self):
        """Test dictionary form of a small tree."""
        parent = Node("p", {"k": "v"}, text="t")
        parent.attach(Node("c"))

        assert parent.to_dict() == {
            "name": "p",
            "attributes": {"k": "v"},
            "text": "t",
            "children": [
                {"key": "c", "node": {"name": "c", "attributes": {}, "text": "", "children": []}}
            ],
        }

    def test_instruction_flag_in_dict(self):
        """Test that processing instructions are marked."""
        assert Node("xml", instruction=True).to_dict()["instruction"] is True

    def test_from_dict_round_trip(self):
        """Test rebuilding a tree from its dictionary form."""
        root = make_tree()

        assert Node.from_dict(root.to_dict()) == root

    def test_dict_conversion_of_deep_chain(self):
        """Test that dictionary conversion does not recurse per level."""
        depth = 5000
        root = Node.create_root()
        current = root
        for level in range(depth):
            child = Node("n", text=str(level))
            current.attach(child)
            current = child

        data = root.to_dict()
        entry = data
        for _ in range(depth):
            entry = entry["children"][0]["node"]
        assert entry["text"] == str(depth - 1)
        assert entry["children"] == []

        rebuilt = Node.from_dict(data)
        assert rebuilt.depth() == depth
        assert [n.text for n in rebuilt.iter_descendants()] == [str(i) for i in range(depth)]
