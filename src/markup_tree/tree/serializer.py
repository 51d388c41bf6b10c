"""Serialize node trees back to markup.

The output is shaped so that loading it again yields a structurally
identical tree: a node's text is written after its children, where the
loader captures it, and attribute values are always double-quoted with
``& < > "`` escaped.

A value ending in a backslash cannot be written so that it reads back
unchanged while backslash escapes are enabled, since there is no entity
for the backslash.
"""

from typing import List, Optional, Tuple

from markup_tree.character import escape_attribute, escape_text

from .node import Node


def _attribute_text(node: Node) -> str:
    return "".join(
        f' {name}="{escape_attribute(value)}"' for name, value in node.attributes.items()
    )


def _start_tag(node: Node) -> str:
    attributes = _attribute_text(node)
    if node.instruction:
        return f"<?{node.name}{attributes}?>"
    if not node.children and not node.text:
        return f"<{node.name}{attributes}/>"
    return f"<{node.name}{attributes}>"


def serialize(node: Node, indent: Optional[int] = None) -> str:
    """Render ``node`` as markup.

    Args:
        node: Node to render; for the synthetic root only its children are
            rendered
        indent: Spaces per nesting level, or None for compact output

    Returns:
        Markup string
    """
    parts: List[str] = []
    newline = "\n" if indent is not None else ""
    step = " " * indent if indent is not None else ""

    # (node, level, closing) frames; closing frames emit text and end tag
    stack: List[Tuple[Node, int, bool]] = []
    if node.is_root:
        stack.extend((child, 0, False) for _, child in reversed(list(node.iter_children())))
    else:
        stack.append((node, 0, False))

    while stack:
        current, level, closing = stack.pop()
        pad = step * level

        if closing:
            if current.text:
                if current.children:
                    parts.append(f"{step * (level + 1)}{escape_text(current.text)}{newline}")
                    parts.append(f"{pad}</{current.name}>{newline}")
                else:
                    parts.append(f"{escape_text(current.text)}</{current.name}>{newline}")
            else:
                parts.append(f"{pad}</{current.name}>{newline}")
            continue

        start = _start_tag(current)
        if current.instruction or (not current.children and not current.text):
            parts.append(f"{pad}{start}{newline}")
            continue

        if current.children:
            parts.append(f"{pad}{start}{newline}")
        else:
            parts.append(f"{pad}{start}")
        stack.append((current, level, True))
        stack.extend(
            (child, level + 1, False) for _, child in reversed(list(current.iter_children()))
        )

    return "".join(parts).rstrip("\n") if indent is not None else "".join(parts)
