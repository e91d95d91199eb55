"""
TRAX templating.

This package provides class (template) definitions with typed `let:` fields
and two-way `bind:` fields, the per-document class registry, and the
instantiation of class blueprints into instance shadows.
"""

from trax.structure.instantiation import Instantiator, PropertyEvaluator
from trax.structure.registry import (
    class_of,
    is_instance,
    iter_declarations,
    nearest_instance,
    register_classes,
)
from trax.structure.templates import (
    BIND_PREFIX,
    CLASS_PREFIX,
    CLEAR_PREFIX,
    DECLARATION_PREFIXES,
    LET_PREFIX,
    READ_PREFIX,
    ClassDefinition,
    FieldSpec,
    FieldType,
)

__all__ = [
    "ClassDefinition",
    "FieldSpec",
    "FieldType",
    "Instantiator",
    "PropertyEvaluator",
    "register_classes",
    "iter_declarations",
    "class_of",
    "is_instance",
    "nearest_instance",
    "CLASS_PREFIX",
    "LET_PREFIX",
    "BIND_PREFIX",
    "READ_PREFIX",
    "CLEAR_PREFIX",
    "DECLARATION_PREFIXES",
]
