"""
Exception classes for the TRAX document engine.

This module defines specific exception types for the error conditions that
can occur while parsing markup, resolving locators, evaluating nodes,
instantiating classes and applying mutation messages.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorLevel(Enum):
    """Error message detail level for operators vs developers."""

    USER = "user"  # Position and description only
    DEVELOPER = "developer"  # Also echoes the offending source line


@dataclass(frozen=True)
class TextPos:
    """
    Position in markup text.

    Params:
        row: Line number, starting from 1
        col: Column number, starting from 1
    """

    row: int
    col: int

    @classmethod
    def from_offset(cls, text: str, offset: int) -> "TextPos":
        """
        Compute the row/column of a character offset in `text`.

        Params:
            text: The full source text
            offset: Zero-based character offset into `text`

        Returns:
            TextPos of the character at `offset`
        """
        offset = max(0, min(offset, len(text)))
        row = text.count("\n", 0, offset) + 1
        line_start = text.rfind("\n", 0, offset) + 1
        return cls(row=row, col=offset - line_start + 1)

    def __str__(self) -> str:
        return f"{self.row}:{self.col}"


@dataclass(frozen=True)
class TextRange:
    """Span between two positions in markup text (end exclusive)."""

    start: TextPos
    end: TextPos

    @classmethod
    def from_offsets(cls, text: str, start: int, end: int) -> "TextRange":
        return cls(TextPos.from_offset(text, start), TextPos.from_offset(text, end))

    def format_location(self, source: str | None, error_level: ErrorLevel) -> str:
        """
        Format location information based on error level.

        Params:
            source: The text the range points into, if still available
            error_level: Whether to show USER or DEVELOPER level details

        Returns:
            Formatted location string with appropriate detail level
        """
        lines = [f"  at {self}"]

        if error_level == ErrorLevel.DEVELOPER and source is not None:
            source_lines = source.split("\n")
            if 0 < self.start.row <= len(source_lines):
                lines.append(f"  | {source_lines[self.start.row - 1]}")
                lines.append("  | " + " " * (self.start.col - 1) + "^")

        return "\n".join(lines)

    def __str__(self) -> str:
        if self.start == self.end:
            return str(self.start)
        return f"{self.start}..{self.end}"


class TraxError(Exception):
    """Base exception for all TRAX-related errors."""

    pass


class DocumentParseException(TraxError):
    """Raised when markup text cannot be parsed into a document tree."""

    def __init__(self, location: TextRange, description: str):
        """
        Initialize the exception.

        Params:
            location: Where in the source the parse failed
            description: What went wrong
        """
        self.location = location
        self.description = description
        super().__init__(f"at {location}: {description}")

    def format_location(
        self, source: str | None = None, error_level: ErrorLevel = ErrorLevel.USER
    ) -> str:
        """Render the description followed by its location block."""
        return f"{self.description}\n{self.location.format_location(source, error_level)}"


class EmptyDocumentError(DocumentParseException):
    """Raised when a document source contains no element at all."""

    def __init__(self, location: TextRange):
        super().__init__(location, "Can't parse an empty document")


class InvalidTreeStructureError(DocumentParseException):
    """Raised when a close tag does not match the innermost open element."""

    def __init__(self, closed_elem: str, current_open_elem: str, location: TextRange):
        """
        Initialize the exception.

        Params:
            closed_elem: The element the close tag attempted to close
            current_open_elem: The innermost open element that should be closed first
            location: Location of the offending close tag
        """
        self.closed_elem = closed_elem
        self.current_open_elem = current_open_elem
        super().__init__(
            location,
            f"invalid tree structure: `{closed_elem}` was closed here but a different "
            f"element `{current_open_elem}` was opened after it, and should be closed first",
        )


class UrlSyntaxError(TraxError):
    """Raised when a locator string is malformed."""

    def __init__(self, url: str, reason: str):
        """
        Initialize the exception.

        Params:
            url: The malformed locator text
            reason: Why the locator is invalid
        """
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL '{url}': {reason}")


class ElementNotFound(TraxError):
    """Raised when a locator segment yields no match or an ambiguous match."""

    def __init__(self, url: str, reason: str = "no matching element"):
        self.url = str(url)
        self.reason = reason
        super().__init__(f"Element not found for '{url}': {reason}")


class RemoteReferenceError(TraxError):
    """Raised when a cross-document URL is dereferenced against a local document."""

    def __init__(self, url: str):
        self.url = str(url)
        super().__init__(
            f"URL '{url}' refers to another document and must be loaded first"
        )


class DivideByZero(TraxError):
    """Raised when a `div` or `mod` divisor evaluates to zero."""

    def __init__(self):
        super().__init__("division by zero")


class AsEvalModifierTypeMismatch(TraxError):
    """Raised when an asEval modifier's target evaluates to a non-boolean value."""

    def __init__(self, modifier: str, url: str, value: Any):
        """
        Initialize the exception.

        Params:
            modifier: Key of the modifier being evaluated
            url: The locator the modifier points to
            value: The offending (non-Bool) evaluated value
        """
        self.modifier = modifier
        self.url = str(url)
        self.value = value
        super().__init__(
            f"asEval modifier '{modifier}' expects a Bool from '{url}', got {value}"
        )


class ClassDefinitionError(TraxError):
    """Raised when a `class:` declaration is malformed."""

    def __init__(self, class_name: str, reason: str):
        self.class_name = class_name
        self.reason = reason
        super().__init__(f"Invalid class '{class_name}': {reason}")


class ClassInstantiationError(TraxError):
    """Raised when a class instance cannot be bound to its definition."""

    def __init__(self, class_name: str, reason: str):
        """
        Initialize the exception.

        Params:
            class_name: The class being instantiated
            reason: The underlying reason for the failure
        """
        self.class_name = class_name
        self.reason = reason
        super().__init__(f"Cannot instantiate class '{class_name}': {reason}")


class UndeclaredFieldError(TraxError):
    """Raised when a field is bound, read or updated without a `let:` declaration."""

    def __init__(self, class_name: str, field: str):
        self.class_name = class_name
        self.field = field
        super().__init__(f"Field '{field}' is not declared in class '{class_name}'")


class MessageError(TraxError):
    """Raised when an incoming message element is malformed."""

    def __init__(self, message: str, reason: str):
        """
        Initialize the exception.

        Params:
            message: Tag (or short description) of the offending message
            reason: Why the message was rejected
        """
        self.message = message
        self.reason = reason
        super().__init__(f"Invalid message <{message}>: {reason}")


class MutationError(TraxError):
    """Raised when a well-formed message cannot be applied to the live tree."""

    def __init__(self, message: str, reason: str):
        self.message = message
        self.reason = reason
        super().__init__(f"Cannot apply <{message}>: {reason}")


class ConnectionStateError(TraxError):
    """Raised on unknown connections or illegal transaction state transitions."""

    def __init__(self, connection_id: str, reason: str):
        self.connection_id = connection_id
        self.reason = reason
        super().__init__(f"Connection '{connection_id}': {reason}")
