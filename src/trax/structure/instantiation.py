"""
Class instantiation.

An element whose tag names a registered class is an instance. Instantiating
it type-checks the instance's properties against the class fields and deep
copies the class blueprint into the instance's shadow. `read:` nodes inside
the copy are not substituted; they evaluate to the instance's current field
value, so later property edits stay visible without re-expanding.
"""

import logging
from collections.abc import Callable, Iterable, Iterator

from trax.core.document import Document
from trax.core.tree_node import Element, Property
from trax.core.types import NodeId, Value
from trax.exceptions import ClassInstantiationError
from trax.structure.registry import class_of
from trax.structure.templates import CLASS_PREFIX, ClassDefinition

log = logging.getLogger(__name__)

PropertyEvaluator = Callable[[Document, NodeId, Property], Value]


class Instantiator:
    """
    Expands class instances inside a document.

    Params:
        document: Document whose instances are expanded
        evaluate_property: Computes the value of an evaluation-prefixed
            instance property; without it such properties bind as literals
    """

    def __init__(self, document: Document, evaluate_property: PropertyEvaluator | None = None):
        self.document = document
        self.evaluate_property = evaluate_property
        self.max_depth = document.settings.max_instantiation_depth

    def bind(self, node_id: NodeId) -> dict[str, Value]:
        """
        Compute the field values of an instance from its current properties.

        Returns:
            Field name to typed value, in declaration order

        Raises:
            ClassInstantiationError: On a missing required field or a type mismatch
        """
        element = self.document.element(node_id)
        definition = self._definition(element)
        values = {}
        for spec in definition.fields.values():
            prop = element.get_property(spec.name)
            evaluated = None
            if prop is not None and prop.eval_prefix is not None and self.evaluate_property:
                evaluated = self.evaluate_property(self.document, node_id, prop)
            values[spec.name] = definition.bind_property(spec, prop, evaluated)
        return values

    def expand(self, roots: Iterable[NodeId] | None = None) -> list[NodeId]:
        """
        Instantiate every instance under `roots` (the whole document by default).

        Returns:
            Handles of the instances expanded at the top level
        """
        if roots is None:
            roots = [self.document.root] if self.document.root is not None else []
        expanded = []
        for root in roots:
            for node_id in list(self._instances_in(root)):
                self.instantiate(node_id)
                expanded.append(node_id)
        return expanded

    def instantiate(self, node_id: NodeId, chain: tuple[str, ...] = ()) -> None:
        """
        Expand one instance, replacing any previous expansion.

        Params:
            node_id: Handle of the instance element
            chain: Names of the classes being expanded around this instance

        Raises:
            ClassInstantiationError: On binding errors, recursive classes or
                nesting deeper than `max_instantiation_depth`
        """
        element = self.document.element(node_id)
        definition = self._definition(element)
        if definition.name in chain:
            raise ClassInstantiationError(
                definition.name, "class instantiates itself: " + " > ".join(chain + (definition.name,))
            )
        if len(chain) >= self.max_depth:
            raise ClassInstantiationError(
                definition.name, f"nesting deeper than {self.max_depth} instances"
            )

        self.bind(node_id)

        for old in list(element.shadow):
            self.document.drop(old)
        copies = [self.document.import_subtree(definition.blueprint, top) for top in definition.nodes]
        self.document.insert_children(node_id, 0, copies, shadow=True)
        log.debug("Instantiated %s with %d blueprint nodes", definition.name, len(copies))

        for copy_id in copies:
            for nested in list(self._instances_in(copy_id)):
                self.instantiate(nested, chain + (definition.name,))

    def _definition(self, element: Element) -> ClassDefinition:
        definition = class_of(self.document, element)
        if definition is None:
            raise ClassInstantiationError(element.tag, "no such class is registered")
        return definition

    def _instances_in(self, root: NodeId) -> Iterator[NodeId]:
        stack = [root]
        while stack:
            node_id = stack.pop()
            node = self.document.get(node_id)
            if not isinstance(node, Element) or node.prefix == CLASS_PREFIX:
                continue
            if class_of(self.document, node) is not None:
                yield node_id
            stack.extend(reversed(node.children))
