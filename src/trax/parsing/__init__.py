"""
TRAX markup parsing.

This package provides the PEG grammar of TRAX markup, the parser lowering it
into arena-backed documents and fragments, and the serializer writing trees
back out.
"""

from trax.parsing.grammar import trax_grammar
from trax.parsing.parser import TraxParser, TreeBuilder, parse_document, parse_fragment
from trax.parsing.serializer import outline, serialize

__all__ = [
    "trax_grammar",
    "TraxParser",
    "TreeBuilder",
    "parse_document",
    "parse_fragment",
    "serialize",
    "outline",
]
