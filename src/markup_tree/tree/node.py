"""Node data model for loaded markup trees.

A node keeps its attributes, its child keys and its child nodes in three
separate containers, so attribute names and child tag names can never
collide with each other or with the node's own bookkeeping.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass
class Node:
    """A labelled element of the loaded tree.

    Attributes:
        name: Tag name, or None for the synthetic document root
        attributes: Decoded attribute values in source order
        text: Decoded text captured right before the node's close tag
        children: Child keys in document order
        child_map: Child key -> child node
        instruction: True for nodes created from ``<?name ...?>``

    Repeated sibling names are disambiguated by ``attach``: the first child
    named ``c`` is stored under ``"c"``, later ones under ``"c_1"``,
    ``"c_2"``, and so on.
    """

    name: Optional[str]
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List[str] = field(default_factory=list)
    child_map: Dict[str, "Node"] = field(default_factory=dict)
    instruction: bool = False

    @classmethod
    def create_root(cls) -> "Node":
        """Create the synthetic root that holds top-level nodes."""
        return cls(name=None)

    @property
    def is_root(self) -> bool:
        return self.name is None

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def next_child_key(self, name: str) -> str:
        """Key the next child called ``name`` would be stored under."""
        if name not in self.child_map:
            return name
        suffix = 1
        while f"{name}_{suffix}" in self.child_map:
            suffix += 1
        return f"{name}_{suffix}"

    def attach(self, child: "Node") -> str:
        """Link a completed node as the last child and return its key."""
        if child.name is None:
            raise ValueError("The document root cannot be attached to a parent")
        key = self.next_child_key(child.name)
        self.child_map[key] = child
        self.children.append(key)
        return key

    def __getitem__(self, key: str) -> "Node":
        return self.child_map[key]

    def __contains__(self, key: object) -> bool:
        return key in self.child_map

    def get(self, key: str, default: Optional["Node"] = None) -> Optional["Node"]:
        """Get a child by key with optional default."""
        return self.child_map.get(key, default)

    def iter_children(self) -> Iterator[Tuple[str, "Node"]]:
        """Iterate over (key, child) pairs in document order."""
        for key in self.children:
            yield key, self.child_map[key]

    def iter_descendants(self) -> Iterator["Node"]:
        """Iterate over all descendants in document order.

        Uses an explicit stack, so arbitrarily deep trees are safe.
        """
        stack = [self.child_map[key] for key in reversed(self.children)]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(node.child_map[key] for key in reversed(node.children))

    def find(self, name: str) -> Optional["Node"]:
        """Find the first descendant with matching tag name."""
        return next((node for node in self.iter_descendants() if node.name == name), None)

    def find_all(self, name: str) -> List["Node"]:
        """Find all descendants with matching tag name."""
        return [node for node in self.iter_descendants() if node.name == name]

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get attribute value with optional default."""
        return self.attributes.get(name, default)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def depth(self) -> int:
        """Height of the subtree below this node (0 for a leaf)."""
        deepest = 0
        stack = [(self, 0)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            stack.extend((child, level + 1) for child in node.child_map.values())
        return deepest

    def to_dict(self) -> Dict[str, Any]:
        """Convert node to dictionary representation.

        Built with an explicit stack, so deep trees do not hit the
        interpreter's recursion limit.
        """
        result = self._dict_entry()
        stack = [(self, result)]
        while stack:
            node, entry = stack.pop()
            for key, child in node.iter_children():
                child_entry = child._dict_entry()
                entry["children"].append({"key": key, "node": child_entry})
                stack.append((child, child_entry))
        return result

    def _dict_entry(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "name": self.name,
            "attributes": dict(self.attributes),
            "text": self.text,
            "children": [],
        }
        if self.instruction:
            entry["instruction"] = True
        return entry

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """Rebuild a node from ``to_dict`` output."""
        root = cls._from_entry(data)
        stack = [(root, data)]
        while stack:
            node, source = stack.pop()
            for entry in source.get("children", []):
                child = cls._from_entry(entry["node"])
                node.child_map[entry["key"]] = child
                node.children.append(entry["key"])
                stack.append((child, entry["node"]))
        return root

    @classmethod
    def _from_entry(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            name=data.get("name"),
            attributes=dict(data.get("attributes", {})),
            text=data.get("text", ""),
            instruction=bool(data.get("instruction", False)),
        )
