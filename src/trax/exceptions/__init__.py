"""
TRAX exception classes.

This package provides all exception types used throughout the TRAX engine
for consistent error handling and reporting.
"""

from trax.exceptions.core import (
    AsEvalModifierTypeMismatch,
    ClassDefinitionError,
    ClassInstantiationError,
    ConnectionStateError,
    DivideByZero,
    DocumentParseException,
    ElementNotFound,
    EmptyDocumentError,
    ErrorLevel,
    InvalidTreeStructureError,
    MessageError,
    MutationError,
    RemoteReferenceError,
    TextPos,
    TextRange,
    TraxError,
    UndeclaredFieldError,
    UrlSyntaxError,
)

__all__ = [
    "TraxError",
    "ErrorLevel",
    "TextPos",
    "TextRange",
    "DocumentParseException",
    "EmptyDocumentError",
    "InvalidTreeStructureError",
    "UrlSyntaxError",
    "ElementNotFound",
    "RemoteReferenceError",
    "DivideByZero",
    "AsEvalModifierTypeMismatch",
    "ClassDefinitionError",
    "ClassInstantiationError",
    "UndeclaredFieldError",
    "MessageError",
    "MutationError",
    "ConnectionStateError",
]
