"""
Core TRAX components.

This package provides the typed value union and its coercions, the node types
of a document tree, the arena-backed Document, and the TraxURL locator
syntax.
"""

from trax.core.document import Document, DocumentSnapshot, Fragment
from trax.core.tree_node import (
    EVAL_PREFIXES,
    Comment,
    Element,
    EvalPrefix,
    Node,
    Property,
    Text,
    is_quotable,
)
from trax.core.types import (
    UNDEFINED,
    VOID,
    CoercionError,
    NodeId,
    Value,
    ValueKind,
    coerce,
    parse_literal,
    promote,
    widen,
)
from trax.core.url import PathSegment, TraxURL, is_valid_url, parse_url
from trax.core.xmlchar import is_valid_name, split_name

__all__ = [
    "Document",
    "DocumentSnapshot",
    "Fragment",
    "Node",
    "Element",
    "Text",
    "Comment",
    "Property",
    "EvalPrefix",
    "EVAL_PREFIXES",
    "is_quotable",
    "NodeId",
    "Value",
    "ValueKind",
    "UNDEFINED",
    "VOID",
    "CoercionError",
    "coerce",
    "parse_literal",
    "promote",
    "widen",
    "PathSegment",
    "TraxURL",
    "parse_url",
    "is_valid_url",
    "is_valid_name",
    "split_name",
]
