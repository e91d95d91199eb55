"""
Tree edits performed by `insert` and `insertProp` messages.

Both functions apply one message to a document and raise on any problem;
the caller is responsible for restoring the document when they do.
"""

from trax.core.document import Document
from trax.core.tree_node import Element, Property, Text
from trax.core.types import NodeId
from trax.core.url import is_valid_url
from trax.exceptions import MutationError
from trax.execution.resolution import UrlResolver
from trax.mutation.messages import InsertMessage, InsertPropMessage


def apply_insert(document: Document, message: InsertMessage) -> list[NodeId]:
    """
    Insert, replace or delete children of the target element.

    Without `start`/`end`/`index` the target itself is replaced by the body,
    or deleted when the body is empty. `start`/`end` insert the body as the
    first/last children, offset by `index` when given. A bare `index`
    replaces (or, with an empty body, deletes) the nth child. Positions count
    element and text children; comments are skipped.

    Returns:
        Handles of the inserted top-level nodes

    Raises:
        ElementNotFound, UrlSyntaxError, RemoteReferenceError: If the target
            does not resolve in this document
        MutationError: If the edit is impossible (index out of range,
            deleting the document root, a root replacement that is not one
            element)
    """
    target = UrlResolver(document).resolve(message.target)

    if not message.anchored and message.index is None:
        if message.is_empty:
            if target == document.root:
                raise MutationError(message.tag, "refusing to delete the document root")
            document.drop(target)
            return []
        if target == document.root:
            return _replace_root(document, message)
        body = _import_body(document, message)
        document.replace(target, body)
        return body

    positional = document.positional_children(target)
    if message.anchored:
        point = message.insertion_point(len(positional))
        children = document.element(target).children
        raw = children.index(positional[point]) if point < len(positional) else len(children)
        body = _import_body(document, message)
        document.insert_children(target, raw, body)
        return body

    if message.index >= len(positional):
        raise MutationError(
            message.tag, f"index {message.index} is out of range ({len(positional)} children)"
        )
    child = positional[message.index]
    if message.is_empty:
        document.drop(child)
        return []
    body = _import_body(document, message)
    document.replace(child, body)
    return body


def _import_body(document: Document, message: InsertMessage) -> list[NodeId]:
    source = message.body.document
    return [document.import_subtree(source, node_id) for node_id in message.body.nodes]


def _replace_root(document: Document, message: InsertMessage) -> list[NodeId]:
    source = message.body.document
    nodes = message.body_nodes
    if len(nodes) != 1 or isinstance(source.get(nodes[0]), Text):
        raise MutationError(message.tag, "the document root can only be replaced by one element")
    new_root = document.import_subtree(source, nodes[0])
    document.replace(document.root, [new_root])
    return [new_root]


def apply_insert_prop(document: Document, message: InsertPropMessage) -> NodeId:
    """
    Edit the property sequence of the target element.

    Dispatches on which of `key` and `value` are given:

    - key and value: replace the property at `index` (default 0), or with
      `start`/`end` insert a new attribute there
    - key only: with `start`/`end` insert a modifier named `key`, otherwise
      rename the property at `index`
    - value only: replace the value of the property at `index`
    - neither: delete the property at `index`; with no `index`, `start` or
      `end` at all, delete every property

    `start`/`end` count `index` from the first/last property. Attributes and
    modifiers form one sequence, in document order.

    Returns:
        Handle of the edited element, resolved before the edit

    Raises:
        ElementNotFound, UrlSyntaxError, RemoteReferenceError: If the target
            does not resolve in this document
        MutationError: On an index out of range, a duplicate key or an
            invalid locator for an evaluation-prefixed property
    """
    target = UrlResolver(document).resolve(message.target)
    element = document.element(target)
    document.touch(target)
    properties = element.properties
    key, value = message.key, message.value

    if key is not None and message.anchored:
        new = Property(key, value)
        _check_unique(message, element, new.key)
        _check_locator(document, message, new)
        properties.insert(message.insertion_point(len(properties)), new)
        return target

    if key is None and value is None and not message.anchored and message.index is None:
        properties.clear()
        return target

    position = message.selected_in(len(properties))
    if position is None:
        raise MutationError(
            message.tag, f"no property at index {message.index or 0} ({len(properties)} properties)"
        )
    old = properties[position]

    if key is None and value is None:
        del properties[position]
        return target

    if key is not None and value is not None:
        new = Property(key, value)
    elif key is not None:
        new = Property(key, old.value, is_modifier=old.is_modifier)
        if new.is_modifier and new.value is not None and new.eval_prefix is None:
            raise MutationError(
                message.tag, f"'{key}' cannot carry a locator without an asRef: or asEval: prefix"
            )
    else:
        keeps_locator = old.is_modifier and old.eval_prefix is not None
        new = Property(old.name, value, is_modifier=keeps_locator)

    _check_unique(message, element, new.key, ignore=position)
    _check_locator(document, message, new)
    properties[position] = new
    return target


def _check_unique(
    message: InsertPropMessage, element: Element, key: str, ignore: int | None = None
) -> None:
    for position, prop in enumerate(element.properties):
        if position != ignore and prop.key == key:
            raise MutationError(message.tag, f"<{element.tag}> already has a property '{key}'")


def _check_locator(document: Document, message: InsertPropMessage, prop: Property) -> None:
    url = prop.url_text
    if url is not None and not is_valid_url(url, document.settings):
        raise MutationError(message.tag, f"'{prop.name}' requires a valid locator, got '{url}'")

