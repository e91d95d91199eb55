"""
Message catalog of the mutation protocol.

Every message arrives as a markup element. Parsing turns it into a typed
command and validates its attributes at receipt, so malformed messages are
rejected before they are buffered.

    <get doc="trax://app/Frame" />
    <redirect url="trax://app/Other" cosmetic />
    <insert target="Frame/Body" start><Todo title="milk" /></insert>
    <insertProp target="Frame/Body/Todo#1" key="done" end />
    <commit />
"""

from dataclasses import dataclass, field
from typing import ClassVar

from trax.config import DEFAULT_SETTINGS, TraxSettings
from trax.core.document import Document, Fragment
from trax.core.tree_node import Comment, Element, Text
from trax.core.types import INT_LITERAL, NodeId
from trax.core.url import TraxURL, parse_url
from trax.core.xmlchar import is_valid_name
from trax.exceptions import MessageError, UrlSyntaxError


@dataclass
class Message:
    """Base of all parsed messages."""

    tag: ClassVar[str] = ""

    def __str__(self) -> str:
        return f"<{self.tag}>"


@dataclass
class GetMessage(Message):
    """Request that a document be loaded (a no-op when already resident)."""

    tag: ClassVar[str] = "get"

    doc: TraxURL

    def __str__(self) -> str:
        return f'<get doc="{self.doc}">'


@dataclass
class RedirectMessage(Message):
    """
    Rebind a connection's address.

    Params:
        url: The new address
        connection: Address of the connection to rebind; the receiving
            connection when omitted
        cosmetic: Only the displayed address changes, nothing is loaded
    """

    tag: ClassVar[str] = "redirect"

    url: TraxURL
    connection: TraxURL | None = None
    cosmetic: bool = False

    def __str__(self) -> str:
        return f'<redirect url="{self.url}"{" cosmetic" if self.cosmetic else ""}>'


@dataclass
class PositionalMessage(Message):
    """Shared `start`/`end`/`index` handling of insert-style messages."""

    target: TraxURL
    start: bool = field(default=False, kw_only=True)
    end: bool = field(default=False, kw_only=True)
    index: int | None = field(default=None, kw_only=True)

    def __post_init__(self):
        if self.start and self.end:
            raise MessageError(self.tag, "start and end are mutually exclusive")
        if self.index is not None and self.index < 0:
            raise MessageError(self.tag, f"index must not be negative, got {self.index}")

    @property
    def anchored(self) -> bool:
        """Whether `start` or `end` is given."""
        return self.start or self.end

    def insertion_point(self, length: int) -> int:
        """
        Position for inserting among `length` items.

        `start` counts `index` from the front, `end` from the back; both
        clamp to the valid range. A bare `index` must not exceed `length`.
        """
        offset = self.index or 0
        if self.start:
            return min(offset, length)
        if self.end:
            return max(length - offset, 0)
        return offset

    def selected_in(self, length: int) -> int | None:
        """Position of an existing item among `length`, or None when out of range."""
        offset = self.index or 0
        position = length - 1 - offset if self.end else offset
        if 0 <= position < length:
            return position
        return None


@dataclass
class InsertMessage(PositionalMessage):
    """
    Insert, replace or delete children.

    Params:
        target: Element the edit applies to
        body: Parsed body nodes, detached, in their own arena
    """

    tag: ClassVar[str] = "insert"

    body: Fragment | None = None

    @property
    def body_nodes(self) -> list[NodeId]:
        """Body elements and text; comments do not make a body non-empty."""
        if self.body is None:
            return []
        return [
            node_id
            for node_id in self.body.nodes
            if not isinstance(self.body.document.get(node_id), Comment)
        ]

    @property
    def is_empty(self) -> bool:
        return not self.body_nodes

    def __str__(self) -> str:
        return f'<insert target="{self.target}">'


@dataclass
class InsertPropMessage(PositionalMessage):
    """
    Edit the properties of an element.

    Params:
        target: Element whose properties are edited
        key: New property key, if given
        value: New property value, if given
    """

    tag: ClassVar[str] = "insertProp"

    key: str | None = None
    value: str | None = None

    def __post_init__(self):
        super().__post_init__()
        if self.key is not None and not is_valid_name(self.key):
            raise MessageError(self.tag, f"invalid property key '{self.key}'")

    def __str__(self) -> str:
        return f'<insertProp target="{self.target}">'


@dataclass
class CommitMessage(Message):
    """Apply every buffered message of the connection."""

    tag: ClassVar[str] = "commit"


MESSAGE_TYPES: dict[str, type[Message]] = {
    cls.tag: cls
    for cls in (GetMessage, RedirectMessage, InsertMessage, InsertPropMessage, CommitMessage)
}


def _url(element: Element, key: str, settings: TraxSettings, required: bool = True) -> TraxURL | None:
    text = element.get_attribute(key)
    if text is None:
        if required:
            raise MessageError(element.tag, f"missing '{key}' attribute")
        return None
    try:
        return parse_url(text, settings)
    except UrlSyntaxError as e:
        raise MessageError(element.tag, f"'{key}' is not a valid locator: {e.reason}") from None


def _index(element: Element) -> int | None:
    text = element.get_attribute("index")
    if text is None:
        return None
    if not INT_LITERAL.match(text.strip()):
        raise MessageError(element.tag, f"index must be an integer, got '{text}'")
    return int(text)


def parse_message(
    document: Document, node_id: NodeId, settings: TraxSettings = DEFAULT_SETTINGS
) -> Message:
    """
    Build a typed message from a parsed message element.

    Params:
        document: Arena holding the element (typically a Fragment's)
        node_id: Handle of the message element
        settings: Used to parse the locators the message carries

    Returns:
        The typed message; an `insert` keeps its children as body

    Raises:
        MessageError: On unknown message tags and malformed attributes
    """
    node = document.get(node_id)
    if isinstance(node, Text):
        raise MessageError("text", f"unexpected text '{node.text}' between messages")
    if not isinstance(node, Element):
        raise MessageError("comment", "comments are not messages")
    if node.tag not in MESSAGE_TYPES:
        raise MessageError(node.tag, "unknown message")

    if node.tag == GetMessage.tag:
        return GetMessage(doc=_url(node, "doc", settings))
    if node.tag == RedirectMessage.tag:
        return RedirectMessage(
            url=_url(node, "url", settings),
            connection=_url(node, "connection", settings, required=False),
            cosmetic=node.has_modifier("cosmetic"),
        )
    if node.tag == CommitMessage.tag:
        return CommitMessage()

    positional = {
        "target": _url(node, "target", settings),
        "start": node.has_modifier("start"),
        "end": node.has_modifier("end"),
        "index": _index(node),
    }
    if node.tag == InsertMessage.tag:
        return InsertMessage(**positional, body=Fragment(document, list(node.children)))
    if node.has_property("key") and node.get_attribute("key") is None:
        raise MessageError(node.tag, "key must be given as an attribute")
    return InsertPropMessage(
        **positional, key=node.get_attribute("key"), value=node.get_attribute("value")
    )


def parse_messages(fragment: Fragment, settings: TraxSettings = DEFAULT_SETTINGS) -> list[Message]:
    """Parse the top-level elements of a fragment as messages, in order; comments are skipped."""
    return [
        parse_message(fragment.document, node_id, settings)
        for node_id in fragment.nodes
        if not isinstance(fragment.document.get(node_id), Comment)
    ]
