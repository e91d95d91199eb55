"""
Arena-backed TRAX documents.

A Document owns every node of its tree in a handle-addressed arena. Handles
are allocated monotonically and never reused, so a handle to a dropped node
stays detectably stale. All structural edits go through the methods below,
which keep `children`/`shadow` ownership and `parent` back-references
consistent.
"""

import logging
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from trax.config import DEFAULT_SETTINGS, TraxSettings
from trax.core.tree_node import Comment, Element, Node, Property, Text
from trax.core.types import NodeId
from trax.core.url import PathSegment, TraxURL
from trax.exceptions import ElementNotFound

if TYPE_CHECKING:
    from trax.structure.templates import ClassDefinition

log = logging.getLogger(__name__)


@dataclass(eq=False)
class DocumentSnapshot:
    """
    Rollback point of a document.

    Nodes are copied lazily: the first edit of a node after the snapshot was
    taken saves the node's previous state in `saved`. Nodes allocated after
    the snapshot have handles from `next_id` on and are simply discarded.
    """

    root: NodeId | None
    next_id: int
    classes: dict[str, Any]
    saved: dict[NodeId, Node] = field(default_factory=dict)


class Document:
    """
    Root container of a TRAX tree.

    Params:
        url: Locator the document was loaded from (scheme + authority identify it)
        settings: Engine settings used by everything operating on this document
    """

    def __init__(
        self, url: TraxURL | None = None, settings: TraxSettings = DEFAULT_SETTINGS
    ):
        self.url = url
        self.settings = settings
        self.root: NodeId | None = None
        self.classes: dict[str, "ClassDefinition"] = {}
        self.lock = threading.RLock()
        self._nodes: dict[NodeId, Node] = {}
        self._next_id = 0
        self._open_snapshots: list[DocumentSnapshot] = []

    def __repr__(self) -> str:
        return f"Document(url={str(self.url)!r}, nodes={len(self._nodes)})"

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    # Arena access

    def allocate(self, node: Node) -> NodeId:
        """Store a new, detached node and return its handle."""
        node_id = self._next_id
        self._next_id += 1
        node.parent = None
        self._nodes[node_id] = node
        return node_id

    def get(self, node_id: NodeId) -> Node:
        """
        Look up a node by handle.

        Raises:
            ElementNotFound: If the handle is stale or was never allocated
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise ElementNotFound(f"#{node_id}", "stale or unknown node handle") from None

    def element(self, node_id: NodeId) -> Element:
        node = self.get(node_id)
        if not isinstance(node, Element):
            raise ElementNotFound(f"#{node_id}", "node is not an element")
        return node

    @property
    def root_element(self) -> Element | None:
        return self.element(self.root) if self.root is not None else None

    def set_root(self, node_id: NodeId) -> None:
        element = self.element(node_id)
        if element.parent is not None:
            raise ValueError("the document root must be a detached element")
        self.root = node_id

    def parent_of(self, node_id: NodeId) -> NodeId | None:
        return self.get(node_id).parent

    def is_attached(self, node_id: NodeId) -> bool:
        """Whether `node_id` is reachable from the document root."""
        current: NodeId | None = node_id
        while current is not None:
            if current == self.root:
                return True
            if current not in self._nodes:
                return False
            current = self._nodes[current].parent
        return False

    def is_in_shadow(self, node_id: NodeId) -> bool:
        """Whether `node_id` belongs to some class instance's expanded blueprint."""
        current = node_id
        parent = self.get(current).parent
        while parent is not None:
            if current in self.element(parent).shadow:
                return True
            current, parent = parent, self.get(parent).parent
        return False

    # Structure

    def children(self, node_id: NodeId) -> list[Node]:
        return [self._nodes[child] for child in self.element(node_id).children]

    def positional_children(self, node_id: NodeId) -> list[NodeId]:
        """Children that count for positional edits: elements and text, not comments."""
        return [
            child
            for child in self.element(node_id).children
            if not isinstance(self._nodes[child], Comment)
        ]

    def same_tag_siblings(self, parent_id: NodeId, tag: str) -> list[NodeId]:
        return [
            child
            for child in self.element(parent_id).children
            if isinstance(self._nodes[child], Element) and self._nodes[child].tag == tag
        ]

    def append_child(self, parent_id: NodeId, child_id: NodeId) -> None:
        self.insert_children(parent_id, len(self.element(parent_id).children), [child_id])

    def insert_children(
        self, parent_id: NodeId, position: int, node_ids: Iterable[NodeId], shadow: bool = False
    ) -> None:
        """
        Attach detached nodes under `parent_id` starting at `position`.

        Params:
            parent_id: The new owner
            position: Index in the owner's child list (clamped to its bounds)
            node_ids: Detached nodes, attached in the given order
            shadow: Attach to the owner's shadow list instead of its children
        """
        parent = self.element(parent_id)
        target = parent.shadow if shadow else parent.children
        position = max(0, min(position, len(target)))
        self.touch(parent_id)
        for offset, node_id in enumerate(node_ids):
            node = self.get(node_id)
            if node.parent is not None or node_id == self.root:
                raise ValueError(f"node #{node_id} is already attached")
            self.touch(node_id)
            node.parent = parent_id
            target.insert(position + offset, node_id)

    def detach(self, node_id: NodeId) -> None:
        """Unlink a node from its owner, keeping it (and its subtree) in the arena."""
        node = self.get(node_id)
        if node_id == self.root:
            self.root = None
            return
        if node.parent is None:
            return
        self.touch(node_id)
        self.touch(node.parent)
        owner = self.element(node.parent)
        if node_id in owner.children:
            owner.children.remove(node_id)
        else:
            owner.shadow.remove(node_id)
        node.parent = None

    def drop(self, node_id: NodeId) -> None:
        """Unlink a node and delete its whole subtree from the arena."""
        self.detach(node_id)
        for descendant in list(self.iter_descendants(node_id, include_shadow=True)):
            self.touch(descendant)
            del self._nodes[descendant]

    def replace(self, node_id: NodeId, new_ids: list[NodeId]) -> None:
        """
        Put detached `new_ids` where `node_id` is, then drop `node_id`.

        Replacing the document root requires exactly one new element.
        """
        node = self.get(node_id)
        if node_id == self.root:
            if len(new_ids) != 1 or not isinstance(self.get(new_ids[0]), Element):
                raise ValueError("the document root can only be replaced by one element")
            self.drop(node_id)
            self.set_root(new_ids[0])
            return
        if node.parent is None:
            raise ValueError(f"node #{node_id} is detached")
        owner = self.element(node.parent)
        in_shadow = node_id not in owner.children
        siblings = owner.shadow if in_shadow else owner.children
        position = siblings.index(node_id)
        parent_id = node.parent
        self.drop(node_id)
        self.insert_children(parent_id, position, new_ids, shadow=in_shadow)

    # Traversal

    def iter_descendants(self, node_id: NodeId, include_shadow: bool = False) -> Iterator[NodeId]:
        """Yield `node_id` and its descendants depth-first, in document order."""
        stack = [node_id]
        while stack:
            current = stack.pop()
            yield current
            node = self._nodes[current]
            if isinstance(node, Element):
                following = list(node.children)
                if include_shadow:
                    following = list(node.shadow) + following
                stack.extend(reversed(following))

    def iter_elements(self, include_shadow: bool = False) -> Iterator[NodeId]:
        """Yield every element reachable from the root."""
        if self.root is None:
            return
        for node_id in self.iter_descendants(self.root, include_shadow=include_shadow):
            if isinstance(self._nodes[node_id], Element):
                yield node_id

    # Copying

    def import_subtree(self, source: "Document", node_id: NodeId) -> NodeId:
        """
        Deep-copy a subtree of `source` into this arena.

        Shadows are not copied; class instances are expanded again where the
        copy is attached.

        Returns:
            Handle of the detached copy
        """
        node = source.get(node_id)
        if isinstance(node, Element):
            copied = Element(
                node.tag,
                properties=[replace(prop) for prop in node.properties],
                location=node.location,
            )
            new_id = self.allocate(copied)
            for child in node.children:
                child_copy = self.import_subtree(source, child)
                self._nodes[child_copy].parent = new_id
                copied.children.append(child_copy)
            return new_id
        return self.allocate(replace(node, parent=None))

    def copy_subtree(self, node_id: NodeId) -> NodeId:
        return self.import_subtree(self, node_id)

    def snapshot(self) -> DocumentSnapshot:
        """
        Open a rollback point.

        The snapshot stays open until it is passed to `restore` or `release`.
        Snapshots nest: closing one also closes every snapshot taken after it.
        """
        snapshot = DocumentSnapshot(root=self.root, next_id=self._next_id, classes=dict(self.classes))
        self._open_snapshots.append(snapshot)
        return snapshot

    def restore(self, snapshot: DocumentSnapshot) -> None:
        """Undo every edit made since `snapshot` was taken, and close it."""
        for node_id in range(snapshot.next_id, self._next_id):
            self._nodes.pop(node_id, None)
        for node_id, saved in snapshot.saved.items():
            self._nodes[node_id] = _clone(saved)
        self.root = snapshot.root
        self._next_id = snapshot.next_id
        self.classes = dict(snapshot.classes)
        self.release(snapshot)

    def release(self, snapshot: DocumentSnapshot) -> None:
        """Close `snapshot` and keep the edits made since it was taken."""
        for position, candidate in enumerate(self._open_snapshots):
            if candidate is snapshot:
                del self._open_snapshots[position:]
                return

    def touch(self, node_id: NodeId) -> None:
        """
        Record a node's current state in the open snapshots before it is edited.

        Structural methods of the document call this themselves; code that
        edits a node in place (its `properties`, say) must call it first.
        """
        if not self._open_snapshots or node_id not in self._nodes:
            return
        saved = None
        for snapshot in self._open_snapshots:
            if node_id < snapshot.next_id and node_id not in snapshot.saved:
                if saved is None:
                    saved = _clone(self._nodes[node_id])
                snapshot.saved[node_id] = saved

    # Locators

    def locate(self, node_id: NodeId) -> TraxURL:
        """
        Canonical locator of an element: one `Tag#n` segment per level.

        Raises:
            ElementNotFound: If the element is detached or inside a class
                instance's shadow, where locators do not reach
        """
        segments: list[PathSegment] = []
        current = node_id
        while current != self.root:
            element = self.element(current)
            if element.parent is None:
                raise ElementNotFound(f"#{node_id}", "element is not attached to the document")
            siblings = self.same_tag_siblings(element.parent, element.tag)
            if current not in siblings:
                raise ElementNotFound(f"#{node_id}", "element is inside a class instance")
            segments.append(PathSegment(element.tag, index=siblings.index(current)))
            current = element.parent
        segments.append(PathSegment(self.element(current).tag))
        base = self.url.document() if self.url is not None else TraxURL(scheme=self.settings.default_scheme)
        return base.with_path(tuple(reversed(segments)))

    # Convenience

    def new_element(self, tag: str, properties: list[Property] | None = None) -> NodeId:
        return self.allocate(Element(tag, properties=list(properties or [])))

    def new_text(self, text: str) -> NodeId:
        return self.allocate(Text(text))


class Fragment:
    """
    A sequence of top-level nodes parsed without a document wrapper.

    Used for standalone message elements and message bodies.
    """

    def __init__(self, document: Document, nodes: list[NodeId]):
        self.document = document
        self.nodes = nodes

    @property
    def elements(self) -> list[NodeId]:
        return [node_id for node_id in self.nodes if isinstance(self.document.get(node_id), Element)]

    def __iter__(self) -> Iterator[NodeId]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"Fragment(nodes={self.nodes})"


def _clone(node: Node) -> Node:
    """Copy of a node with its own property and handle lists."""
    if isinstance(node, Element):
        return replace(
            node,
            properties=[replace(prop) for prop in node.properties],
            children=list(node.children),
            shadow=list(node.shadow),
        )
    return replace(node)
