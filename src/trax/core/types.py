"""
Core value types for the TRAX engine.

A computed or referenced value is a closed tagged union over eight kinds.
Coercions between kinds are explicit pure functions: int to float widening
happens only through `widen`/`promote`, and float to int narrowing is never
performed.
"""

import re
from enum import Enum
from typing import Any

from attrs import frozen

from trax.exceptions import TraxError

NodeId = int


class ValueKind(Enum):
    """Kind tag of a Value."""

    INT = "Int"
    FLOAT = "Float"
    BOOL = "Bool"
    STRING = "String"
    URL = "Url"
    ELEMENT_REF = "ElementRef"
    UNDEFINED = "Undefined"
    VOID = "Void"


NUMERIC_KINDS = frozenset({ValueKind.INT, ValueKind.FLOAT})

INT_LITERAL = re.compile(r"^[+-]?\d+$")
FLOAT_LITERAL = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+(?:\.\d*)?[eE][+-]?\d+)$")


class CoercionError(TraxError):
    """Raised when a value cannot be converted to the requested kind."""

    def __init__(self, value: "Value", target: ValueKind):
        self.value = value
        self.target = target
        super().__init__(f"Cannot convert {value} to {target.value}")


@frozen
class Value:
    """
    A typed value produced by referencing or evaluating a node.

    `data` holds the Python payload: int, float, bool, str, a TraxURL,
    a NodeId (for ElementRef) or None (for Undefined and Void).
    """

    kind: ValueKind
    data: Any = None

    @classmethod
    def of_int(cls, data: int) -> "Value":
        return cls(ValueKind.INT, int(data))

    @classmethod
    def of_float(cls, data: float) -> "Value":
        return cls(ValueKind.FLOAT, float(data))

    @classmethod
    def of_bool(cls, data: bool) -> "Value":
        return cls(ValueKind.BOOL, bool(data))

    @classmethod
    def of_string(cls, data: str) -> "Value":
        return cls(ValueKind.STRING, str(data))

    @classmethod
    def of_url(cls, data: Any) -> "Value":
        return cls(ValueKind.URL, data)

    @classmethod
    def of_element(cls, node_id: NodeId) -> "Value":
        return cls(ValueKind.ELEMENT_REF, node_id)

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    @property
    def is_defined(self) -> bool:
        return self.kind is not ValueKind.UNDEFINED

    def to_literal(self) -> str:
        """Render the value the way it would be written in markup."""
        if self.kind is ValueKind.BOOL:
            return "true" if self.data else "false"
        if self.kind in (ValueKind.UNDEFINED, ValueKind.VOID):
            return ""
        return str(self.data)

    def __str__(self) -> str:
        if self.kind in (ValueKind.UNDEFINED, ValueKind.VOID):
            return self.kind.value
        return f"{self.kind.value}({self.data!r})"


UNDEFINED = Value(ValueKind.UNDEFINED)
VOID = Value(ValueKind.VOID)


def parse_literal(text: str) -> Value:
    """
    Interpret a literal token as a typed value.

    Params:
        text: A single literal, e.g. `42`, `-0.5`, `true` or `hello`

    Returns:
        Int, Float or Bool value when the token has that shape, else a String
    """
    token = text.strip()
    if INT_LITERAL.match(token):
        return Value.of_int(int(token))
    if FLOAT_LITERAL.match(token):
        return Value.of_float(float(token))
    if token in ("true", "false"):
        return Value.of_bool(token == "true")
    return Value.of_string(text)


def widen(value: Value) -> Value:
    """Widen an Int to a Float; every other value is returned unchanged."""
    if value.kind is ValueKind.INT:
        return Value.of_float(value.data)
    return value


def promote(operands: list[Value]) -> list[Value]:
    """
    Promote numeric operands to a common kind.

    If any operand is a Float, every Int operand is widened to Float.
    Operands are never narrowed.

    Params:
        operands: Numeric values to combine

    Returns:
        New list of operands sharing one numeric kind
    """
    if any(op.kind is ValueKind.FLOAT for op in operands):
        return [widen(op) for op in operands]
    return list(operands)


def coerce(value: Value, target: ValueKind) -> Value:
    """
    Convert `value` to `target` where an implicit conversion is allowed.

    Allowed: identity, Int to Float widening, and literal String parsing
    into Int, Float or Bool when the string has that shape. Float to Int is
    always rejected.

    Raises:
        CoercionError: If no allowed conversion exists
    """
    if value.kind is target:
        return value
    if target is ValueKind.FLOAT and value.kind is ValueKind.INT:
        return widen(value)
    if value.kind is ValueKind.STRING and target in (
        ValueKind.INT,
        ValueKind.FLOAT,
        ValueKind.BOOL,
    ):
        parsed = parse_literal(value.data)
        if parsed.kind is not ValueKind.STRING:
            return coerce(parsed, target)
    if target is ValueKind.STRING and value.kind in (
        ValueKind.INT,
        ValueKind.FLOAT,
        ValueKind.BOOL,
        ValueKind.URL,
    ):
        return Value.of_string(value.to_literal())
    raise CoercionError(value, target)
