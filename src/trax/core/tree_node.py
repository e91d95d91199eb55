"""
Node types of a TRAX document tree.

Nodes live in a document's arena and refer to each other through integer
handles: an element owns the handles in its `children` (and, for class
instances, its `shadow`), while `parent` is a non-owning back-reference used
for traversal and locator resolution only.
"""

from dataclasses import dataclass, field
from enum import Enum

from trax.core.types import NodeId
from trax.core.xmlchar import is_valid_name, split_name
from trax.exceptions import TextRange


class EvalPrefix(Enum):
    """Evaluation prefix carried by a property name."""

    AS_REF = "asRef"
    AS_EVAL = "asEval"


EVAL_PREFIXES = {prefix.value: prefix for prefix in EvalPrefix}


def is_quotable(value: str) -> bool:
    """Whether `value` can be written as a quoted attribute value (no entities exist)."""
    return "<" not in value and not ('"' in value and "'" in value)


@dataclass
class Property:
    """
    An attribute or modifier of an element.

    Params:
        name: Name as written, including any prefix (`asEval:done`)
        value: Attribute value; for an evaluation-prefixed modifier the URL it
            points to; None for a plain modifier
        is_modifier: True for presence-only (boolean) properties
    """

    name: str
    value: str | None = None
    is_modifier: bool = False

    def __post_init__(self):
        if not is_valid_name(self.name):
            raise ValueError(f"Invalid property name: {self.name!r}")
        if self.value is None:
            self.is_modifier = True

    @property
    def prefix(self) -> str:
        return split_name(self.name)[0]

    @property
    def local(self) -> str:
        return split_name(self.name)[1]

    @property
    def eval_prefix(self) -> EvalPrefix | None:
        return EVAL_PREFIXES.get(self.prefix)

    @property
    def key(self) -> str:
        """Name without an evaluation prefix; unique within an element."""
        if self.eval_prefix is not None:
            return self.local
        return self.name

    @property
    def is_attribute(self) -> bool:
        return not self.is_modifier

    @property
    def url_text(self) -> str | None:
        """Locator text of an evaluation-prefixed property.

        A bare prefixed modifier (`asRef:Settings`) uses its local name as the
        locator.
        """
        if self.eval_prefix is None:
            return None
        return self.value if self.value is not None else self.local

    def to_markup(self) -> str:
        if self.value is None:
            return self.name
        quote = "'" if '"' in self.value else '"'
        operator = "?=" if self.is_modifier else "="
        return f"{self.name}{operator}{quote}{self.value}{quote}"


@dataclass
class Node:
    """Base of all tree nodes."""

    parent: NodeId | None = field(default=None, kw_only=True)
    location: TextRange | None = field(default=None, kw_only=True, compare=False)


@dataclass
class Element(Node):
    """
    A tagged node with ordered properties and ordered children.

    Params:
        tag: Qualified tag name (`Body`, `class:Todo`, `read:title`)
        properties: Attributes and modifiers in document order
        children: Owned child handles, order significant
        shadow: Expanded class blueprint of an instance; not serialized and
            not reachable through locators
    """

    tag: str
    properties: list[Property] = field(default_factory=list)
    children: list[NodeId] = field(default_factory=list)
    shadow: list[NodeId] = field(default_factory=list)

    def __post_init__(self):
        if not is_valid_name(self.tag):
            raise ValueError(f"Invalid tag name: {self.tag!r}")

    @property
    def prefix(self) -> str:
        return split_name(self.tag)[0]

    @property
    def local(self) -> str:
        return split_name(self.tag)[1]

    @property
    def attributes(self) -> list[Property]:
        return [prop for prop in self.properties if prop.is_attribute]

    @property
    def modifiers(self) -> list[Property]:
        return [prop for prop in self.properties if prop.is_modifier]

    def index_of(self, key: str) -> int | None:
        """Position of the property with `key` in the property sequence."""
        for position, prop in enumerate(self.properties):
            if prop.key == key:
                return position
        return None

    def get_property(self, key: str) -> Property | None:
        position = self.index_of(key)
        return self.properties[position] if position is not None else None

    def get_attribute(self, key: str, default: str | None = None) -> str | None:
        prop = self.get_property(key)
        if prop is None or prop.is_modifier:
            return default
        return prop.value

    def has_modifier(self, key: str) -> bool:
        prop = self.get_property(key)
        return prop is not None and prop.is_modifier

    def has_property(self, key: str) -> bool:
        return self.index_of(key) is not None


@dataclass
class Text(Node):
    """Character data, trimmed of surrounding whitespace."""

    text: str


@dataclass
class Comment(Node):
    """A `/* ... */` comment; excluded from reference and evaluation."""

    text: str
