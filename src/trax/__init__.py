"""
TRAX - An addressable, mutable markup tree engine

TRAX parses XML-like markup into an arena-backed document tree, resolves
locators into its nodes, evaluates nodes as typed values and applies
buffered mutation messages under a commit protocol.
"""

from importlib.metadata import version

from trax.config import TraxSettings, load_settings
from trax.core import Document, TraxURL, Value, ValueKind, parse_url
from trax.execution import Evaluator, Intent, UrlResolver
from trax.mutation import MutationEngine, QueueLoader
from trax.parsing import parse_document, parse_fragment, serialize

__version__ = version("trax")

__all__ = [
    "__version__",
    "Document",
    "TraxURL",
    "Value",
    "ValueKind",
    "parse_url",
    "parse_document",
    "parse_fragment",
    "serialize",
    "UrlResolver",
    "Evaluator",
    "Intent",
    "MutationEngine",
    "QueueLoader",
    "TraxSettings",
    "load_settings",
]
