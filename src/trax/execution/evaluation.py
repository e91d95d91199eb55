"""
Evaluation engine.

A node is read under one of two intents. Referencing returns the node's
literal content unchanged (an element reference, or the text itself).
Evaluating computes a node-kind specific value:

- Arithmetic elements (`add`, `sub`, `mul`, `div`, `mod`, `abs`) evaluate
  their operands: each whitespace separated token of a text child and the
  value of each child element. Any Float operand widens every Int operand;
  Float is never narrowed to Int.
- `read:field` yields the current value of `field` on the nearest enclosing
  class instance.
- Everything else (view elements, class declarations, instances) is Void.

`DivideByZero` and `AsEvalModifierTypeMismatch` always propagate to the
caller; every other failure while referencing or evaluating degrades to
Undefined.
"""

import logging
from collections.abc import Callable
from enum import Enum
from functools import reduce

from trax.core.document import Document
from trax.core.tree_node import Comment, Element, EvalPrefix, Property, Text
from trax.core.types import (
    UNDEFINED,
    VOID,
    NodeId,
    Value,
    ValueKind,
    parse_literal,
    promote,
)
from trax.exceptions import AsEvalModifierTypeMismatch, DivideByZero, TraxError
from trax.execution.resolution import UrlResolver
from trax.structure.instantiation import Instantiator
from trax.structure.registry import class_of, nearest_instance
from trax.structure.templates import DECLARATION_PREFIXES, READ_PREFIX

log = logging.getLogger(__name__)

HARD_ERRORS = (DivideByZero, AsEvalModifierTypeMismatch)


class Intent(Enum):
    """How a node should be read."""

    REFERENCE = "reference"
    EVALUATE = "evaluate"


def _add(operands: list[Value]) -> Value:
    return _numeric(sum(op.data for op in operands), operands)


def _mul(operands: list[Value]) -> Value:
    return _numeric(reduce(lambda a, b: a * b, (op.data for op in operands)), operands)


def _sub(operands: list[Value]) -> Value:
    if len(operands) == 1:
        return _numeric(-operands[0].data, operands)
    return _numeric(reduce(lambda a, b: a - b, (op.data for op in operands)), operands)


def _div(operands: list[Value]) -> Value:
    if len(operands) < 2:
        return UNDEFINED
    _check_divisors(operands)
    return Value.of_float(reduce(lambda a, b: a / b, (float(op.data) for op in operands)))


def _mod(operands: list[Value]) -> Value:
    if len(operands) < 2:
        return UNDEFINED
    _check_divisors(operands)
    return _numeric(reduce(lambda a, b: a % b, (op.data for op in operands)), operands)


def _abs(operands: list[Value]) -> Value:
    if len(operands) != 1:
        return UNDEFINED
    return _numeric(abs(operands[0].data), operands)


def _check_divisors(operands: list[Value]) -> None:
    if any(op.data == 0 for op in operands[1:]):
        raise DivideByZero()


def _numeric(result: int | float, operands: list[Value]) -> Value:
    # Operands are already promoted, so they share one kind.
    if operands[0].kind is ValueKind.FLOAT:
        return Value.of_float(result)
    return Value.of_int(result)


ARITHMETIC: dict[str, Callable[[list[Value]], Value]] = {
    "add": _add,
    "sub": _sub,
    "mul": _mul,
    "div": _div,
    "mod": _mod,
    "abs": _abs,
}


class Evaluator:
    """
    Reads nodes of one document as references or computed values.

    Params:
        document: The document the nodes belong to
        resolver: Resolver used for `asRef:`/`asEval:` locators
    """

    def __init__(self, document: Document, resolver: UrlResolver | None = None):
        self.document = document
        self.resolver = resolver or UrlResolver(document)

    def read(self, node_id: NodeId, intent: Intent) -> Value:
        if intent is Intent.REFERENCE:
            return self.reference(node_id)
        return self.evaluate(node_id)

    def reference(self, node_id: NodeId) -> Value:
        """
        Return the literal content of a node.

        Elements are returned as element references, text unchanged as a
        String. Comments have no content.
        """
        try:
            node = self.document.get(node_id)
        except TraxError as e:
            log.debug("Reference to #%s failed: %s", node_id, e)
            return UNDEFINED
        if isinstance(node, Element):
            return Value.of_element(node_id)
        if isinstance(node, Text):
            return Value.of_string(node.text)
        return VOID

    def text_content(self, node_id: NodeId) -> str:
        """Text of a subtree in document order, comments excluded."""
        parts = []
        for descendant in self.document.iter_descendants(node_id):
            node = self.document.get(descendant)
            if isinstance(node, Text):
                parts.append(node.text)
        return " ".join(parts)

    def evaluate(self, node_id: NodeId) -> Value:
        """
        Compute the value of a node.

        Returns:
            The computed value; Undefined when evaluation fails softly

        Raises:
            DivideByZero: If a `div`/`mod` divisor is zero
            AsEvalModifierTypeMismatch: If an asEval modifier met a non-Bool value
        """
        try:
            return self._evaluate(node_id)
        except HARD_ERRORS:
            raise
        except (TraxError, ArithmeticError) as e:
            log.debug("Evaluation of #%s degraded to Undefined: %s", node_id, e)
            return UNDEFINED

    def evaluate_property(self, node_id: NodeId, prop: Property | str) -> Value:
        """
        Compute the value of an element property.

        Plain attributes give their literal, plain modifiers `true`. With an
        `asRef:` prefix an attribute gives the referenced target and a
        modifier whether the locator resolves; with `asEval:` an attribute
        gives the evaluated target and a modifier requires that value to be
        a Bool.

        Params:
            node_id: Handle of the element carrying the property
            prop: The property, or its key

        Raises:
            DivideByZero: If evaluating the target divides by zero
            AsEvalModifierTypeMismatch: If an asEval modifier's target
                evaluates to a defined non-Bool value
        """
        if isinstance(prop, str):
            found = self.document.element(node_id).get_property(prop)
            if found is None:
                return UNDEFINED
            prop = found

        if prop.eval_prefix is None:
            if prop.is_modifier:
                return Value.of_bool(True)
            return parse_literal(prop.value)

        url = prop.url_text
        if prop.eval_prefix is EvalPrefix.AS_REF:
            if prop.is_modifier:
                return Value.of_bool(self.resolver.resolves(url))
            target = self.resolver.try_resolve(url)
            return self.reference(target) if target is not None else UNDEFINED

        target = self.resolver.try_resolve(url)
        if target is None:
            return UNDEFINED
        value = self.evaluate(target)
        if prop.is_modifier and value.is_defined and value.kind is not ValueKind.BOOL:
            raise AsEvalModifierTypeMismatch(prop.key, url, value)
        return value

    def _evaluate(self, node_id: NodeId) -> Value:
        node = self.document.get(node_id)
        if isinstance(node, Comment):
            return VOID
        if isinstance(node, Text):
            return self._evaluate_text(node.text)

        if node.prefix == READ_PREFIX:
            return self._evaluate_read(node_id, node.local)
        if node.prefix in DECLARATION_PREFIXES or class_of(self.document, node) is not None:
            return VOID
        operation = ARITHMETIC.get(node.tag)
        if operation is None:
            return VOID

        operands = self._operands(node)
        if not operands or any(not op.is_numeric for op in operands):
            return UNDEFINED
        return operation(promote(operands))

    def _evaluate_text(self, text: str) -> Value:
        tokens = text.split()
        if not tokens:
            return VOID
        if len(tokens) == 1:
            return parse_literal(tokens[0])
        return Value.of_string(text)

    def _operands(self, element: Element) -> list[Value]:
        operands = []
        for child_id in element.children:
            child = self.document.get(child_id)
            if isinstance(child, Comment):
                continue
            if isinstance(child, Text):
                operands.extend(parse_literal(token) for token in child.text.split())
            else:
                operands.append(self.evaluate(child_id))
        return operands

    def _evaluate_read(self, node_id: NodeId, field: str) -> Value:
        instance = nearest_instance(self.document, node_id, field)
        if instance is None:
            return UNDEFINED
        values = Instantiator(self.document, self._property_evaluator).bind(instance)
        return values[field]

    def _property_evaluator(self, document: Document, node_id: NodeId, prop: Property) -> Value:
        return self.evaluate_property(node_id, prop)
