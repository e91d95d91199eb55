"""
Per-document class registry.

Class definitions are stored on `Document.classes` keyed by class name. The
helpers below discover `class:` declarations in a subtree, register them and
find the class instance a node belongs to.
"""

import logging
from collections.abc import Iterable, Iterator

from trax.core.document import Document
from trax.core.tree_node import Element
from trax.core.types import NodeId
from trax.structure.templates import CLASS_PREFIX, ClassDefinition

log = logging.getLogger(__name__)


def iter_declarations(document: Document, roots: Iterable[NodeId]) -> Iterator[NodeId]:
    """Yield `class:` elements under `roots` in document order, outermost only."""
    for root in roots:
        stack = [root]
        while stack:
            node_id = stack.pop()
            node = document.get(node_id)
            if not isinstance(node, Element):
                continue
            if node.prefix == CLASS_PREFIX:
                yield node_id
                continue
            stack.extend(reversed(node.children))


def register_classes(document: Document, roots: Iterable[NodeId] | None = None) -> list[ClassDefinition]:
    """
    Register every class declared under `roots` (the whole document by default).

    A later declaration of the same name replaces the earlier one.

    Params:
        document: Document whose registry is updated
        roots: Subtrees to scan

    Returns:
        The definitions registered, in document order

    Raises:
        ClassDefinitionError: If a declaration is malformed
        UndeclaredFieldError: If a declaration binds or reads an undeclared field
    """
    if roots is None:
        roots = [document.root] if document.root is not None else []
    registered = []
    for node_id in iter_declarations(document, roots):
        definition = ClassDefinition.from_element(document, node_id)
        if definition.name in document.classes:
            log.debug("Class '%s' redeclared", definition.name)
        document.classes[definition.name] = definition
        registered.append(definition)
    return registered


def class_of(document: Document, element: Element) -> ClassDefinition | None:
    """The class an element instantiates, or None for ordinary elements."""
    if element.prefix:
        return None
    return document.classes.get(element.tag)


def is_instance(document: Document, node_id: NodeId) -> bool:
    node = document.get(node_id)
    return isinstance(node, Element) and class_of(document, node) is not None


def nearest_instance(document: Document, node_id: NodeId, field: str) -> NodeId | None:
    """
    Find the closest ancestor instance whose class declares `field`.

    Shadow nodes have their instance element as parent, so this walks out of
    expanded blueprints into the instance that owns them.
    """
    current = document.get(node_id).parent
    while current is not None:
        element = document.element(current)
        definition = class_of(document, element)
        if definition is not None and definition.declares(field):
            return current
        current = element.parent
    return None
