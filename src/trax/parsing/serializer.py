"""
Serialization of TRAX trees back to markup.

`serialize` writes markup that parses back to the same structure and order;
`outline` renders a token-style listing for debugging.
"""

from trax.core.document import Document
from trax.core.tree_node import Comment, Element, Text
from trax.core.types import NodeId


def _open_tag(element: Element, close: bool = False) -> str:
    parts = [element.tag] + [prop.to_markup() for prop in element.properties]
    suffix = " />" if close else ">"
    return "<" + " ".join(parts) + suffix


def serialize(document: Document, node: NodeId | None = None) -> str:
    """
    Render a node (the document root by default) as markup.

    One node per line, nested content indented with `settings.indent`.
    Class instance shadows are not written; they are rebuilt when the markup
    is parsed and instantiated again.

    Params:
        document: Document owning the node
        node: Handle of the subtree to render

    Returns:
        Markup text ending with a newline, or "" for an empty document
    """
    if node is None:
        node = document.root
        if node is None:
            return ""
    lines: list[str] = []
    _write(document, node, 0, lines)
    return "\n".join(lines) + "\n"


def _write(document: Document, node_id: NodeId, depth: int, lines: list[str]) -> None:
    indent = document.settings.indent * depth
    node = document.get(node_id)
    if isinstance(node, Text):
        lines.append(indent + node.text)
    elif isinstance(node, Comment):
        lines.append(f"{indent}/*{node.text}*/")
    elif not node.children:
        lines.append(indent + _open_tag(node, close=True))
    else:
        lines.append(indent + _open_tag(node))
        for child in node.children:
            _write(document, child, depth + 1, lines)
        lines.append(f"{indent}</{node.tag}>")


def outline(document: Document, node: NodeId | None = None) -> str:
    """
    Render a token-style listing of a subtree.

    Each element opens with `< tag`, followed by `- key="value"` for
    attributes, `+ name` for modifiers, `* text` for comments and quoted
    text for character data, indented by depth.
    """
    if node is None:
        node = document.root
        if node is None:
            return ""
    lines: list[str] = []
    for node_id in document.iter_descendants(node):
        depth = _depth(document, node_id, node)
        indent = "  " * depth
        current = document.get(node_id)
        if isinstance(current, Element):
            lines.append(f"{indent}< {current.tag}")
            for prop in current.properties:
                marker = "+" if prop.is_modifier else "-"
                text = prop.name if prop.value is None else f'{prop.name}="{prop.value}"'
                lines.append(f"{indent}  {marker} {text}")
        elif isinstance(current, Comment):
            lines.append(f"{indent}* {current.text.strip()}")
        else:
            lines.append(f"{indent}{current.text!r}")
    return "\n".join(lines)


def _depth(document: Document, node_id: NodeId, top: NodeId) -> int:
    depth = 0
    while node_id != top:
        node_id = document.get(node_id).parent
        depth += 1
    return depth
