"""
TRAX execution components.

This package provides locator resolution against a document and the
evaluation engine reading nodes as references or computed values.
"""

from trax.execution.evaluation import ARITHMETIC, Evaluator, Intent
from trax.execution.resolution import RemoteReference, UrlResolver

__all__ = [
    "ARITHMETIC",
    "Evaluator",
    "Intent",
    "RemoteReference",
    "UrlResolver",
]
