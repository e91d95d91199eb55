"""
Class (template) definitions.

A `class:Name` element declares a reusable blueprint:

    <class:Todo>
        <let:title String />
        <let:done Bool />
        <bind:done send="toggle" />
        <card><read:title /></card>
    </class:Todo>

`let:` children declare typed fields, `bind:` children mark fields as two-way
and every other child belongs to the blueprint. A definition keeps its own
copy of the blueprint, so it stays usable after the declaring element is
edited or removed from the tree.
"""

from dataclasses import dataclass, field
from enum import Enum

from trax.core.document import Document
from trax.core.tree_node import Element, Property
from trax.core.types import UNDEFINED, CoercionError, NodeId, Value, ValueKind, coerce
from trax.core.url import parse_url
from trax.exceptions import (
    ClassDefinitionError,
    ClassInstantiationError,
    UndeclaredFieldError,
    UrlSyntaxError,
)

CLASS_PREFIX = "class"
LET_PREFIX = "let"
BIND_PREFIX = "bind"
READ_PREFIX = "read"
CLEAR_PREFIX = "clear"

DECLARATION_PREFIXES = frozenset({CLASS_PREFIX, LET_PREFIX, BIND_PREFIX})


class FieldType(Enum):
    """Declared type of a class field."""

    STRING = "String"
    BOOL = "Bool"
    INT = "Int"
    FLOAT = "Float"
    URL = "Url"
    ELEMENT = "Element"

    @property
    def kind(self) -> ValueKind:
        return FIELD_KINDS[self]


FIELD_KINDS = {
    FieldType.STRING: ValueKind.STRING,
    FieldType.BOOL: ValueKind.BOOL,
    FieldType.INT: ValueKind.INT,
    FieldType.FLOAT: ValueKind.FLOAT,
    FieldType.URL: ValueKind.URL,
    FieldType.ELEMENT: ValueKind.ELEMENT_REF,
}

FIELD_TYPES = {field_type.value: field_type for field_type in FieldType}


@dataclass
class FieldSpec:
    """
    A typed field declared with `let:`.

    Params:
        name: Field name, matched against instance property keys
        type: Declared type
        optional: Whether an instance may omit the field
        default: Literal used when an instance omits the field
        bind_event: Outbound event name if the field is two-way (`bind:`)
    """

    name: str
    type: FieldType
    optional: bool = False
    default: str | None = None
    bind_event: str | None = None

    @property
    def required(self) -> bool:
        # Bool fields are satisfied by the presence or absence of a modifier.
        return not self.optional and self.default is None and self.type is not FieldType.BOOL

    def convert_literal(self, text: str) -> Value:
        """
        Type-check a literal property value against this field.

        Raises:
            CoercionError: If the literal does not fit the declared type
        """
        if self.type is FieldType.URL:
            try:
                return Value.of_url(parse_url(text))
            except UrlSyntaxError:
                raise CoercionError(Value.of_string(text), ValueKind.URL) from None
        if self.type is FieldType.ELEMENT:
            try:
                return Value.of_url(parse_url(text))
            except UrlSyntaxError:
                raise CoercionError(Value.of_string(text), ValueKind.ELEMENT_REF) from None
        return coerce(Value.of_string(text), self.type.kind)

    def convert_value(self, value: Value) -> Value:
        """Type-check an already evaluated value against this field."""
        if self.type is FieldType.ELEMENT and value.kind is ValueKind.URL:
            return value
        return coerce(value, self.type.kind)


@dataclass
class ClassDefinition:
    """
    A registered class: ordered fields plus a private blueprint arena.

    Params:
        name: Class name; instances use it as their tag
        fields: Declared fields in declaration order
        blueprint: Arena holding the copied blueprint nodes
        nodes: Top-level blueprint handles inside `blueprint`, in order
    """

    name: str
    fields: dict[str, FieldSpec] = field(default_factory=dict)
    blueprint: Document = field(default_factory=Document)
    nodes: list[NodeId] = field(default_factory=list)

    @classmethod
    def from_element(cls, document: Document, element_id: NodeId) -> "ClassDefinition":
        """
        Build a definition from a `class:Name` element.

        Params:
            document: Document holding the declaration
            element_id: Handle of the `class:` element

        Raises:
            ClassDefinitionError: On malformed `let:`/`bind:` declarations
            UndeclaredFieldError: If `bind:` or `read:` names an undeclared field
        """
        element = document.element(element_id)
        if element.prefix != CLASS_PREFIX or not element.local:
            raise ClassDefinitionError(element.tag, "not a class declaration")
        definition = cls(name=element.local, blueprint=Document(settings=document.settings))

        bindings: list[Element] = []
        for child_id in element.children:
            child = document.get(child_id)
            if isinstance(child, Element) and child.prefix == LET_PREFIX:
                definition._declare(child)
            elif isinstance(child, Element) and child.prefix == BIND_PREFIX:
                bindings.append(child)
            else:
                definition.nodes.append(definition.blueprint.import_subtree(document, child_id))

        for binding in bindings:
            spec = definition.get_field(binding.local)
            event = binding.get_attribute("send")
            if not event:
                raise ClassDefinitionError(
                    definition.name, f"bind:{binding.local} requires a send event"
                )
            spec.bind_event = event

        definition._check_reads()
        return definition

    def _declare(self, let: Element) -> None:
        name = let.local
        if not name:
            raise ClassDefinitionError(self.name, "let: declaration without a field name")
        if name in self.fields:
            raise ClassDefinitionError(self.name, f"duplicate field '{name}'")

        types = [prop.name for prop in let.modifiers if prop.name in FIELD_TYPES]
        unknown = [
            prop.name
            for prop in let.modifiers
            if prop.name not in FIELD_TYPES and prop.name != "optional"
        ]
        if unknown:
            raise ClassDefinitionError(self.name, f"unknown type '{unknown[0]}' for field '{name}'")
        if len(types) != 1:
            raise ClassDefinitionError(self.name, f"field '{name}' needs exactly one type")

        spec = FieldSpec(
            name=name,
            type=FIELD_TYPES[types[0]],
            optional=let.has_modifier("optional"),
            default=let.get_attribute("default"),
        )
        if spec.default is not None:
            try:
                spec.convert_literal(spec.default)
            except CoercionError:
                raise ClassDefinitionError(
                    self.name, f"default '{spec.default}' does not fit {spec.type.value} field '{name}'"
                ) from None
        self.fields[name] = spec

    def _check_reads(self) -> None:
        for top in self.nodes:
            for node_id in self.blueprint.iter_descendants(top):
                node = self.blueprint.get(node_id)
                if isinstance(node, Element) and node.prefix == READ_PREFIX:
                    self.get_field(node.local)

    def get_field(self, name: str) -> FieldSpec:
        """
        Look up a declared field.

        Raises:
            UndeclaredFieldError: If no `let:` declared `name`
        """
        try:
            return self.fields[name]
        except KeyError:
            raise UndeclaredFieldError(self.name, name) from None

    def declares(self, name: str) -> bool:
        return name in self.fields

    @property
    def bound_fields(self) -> list[FieldSpec]:
        return [spec for spec in self.fields.values() if spec.bind_event is not None]

    def bind_property(self, spec: FieldSpec, prop: Property | None, evaluated: Value | None = None) -> Value:
        """
        Bind one field from the instance property carrying its key.

        Params:
            spec: The field to bind
            prop: Matching property of the instance element, if present
            evaluated: Value of an evaluation-prefixed property, already computed

        Returns:
            The typed field value (Undefined for an omitted optional field)

        Raises:
            ClassInstantiationError: On a missing required field or a type mismatch
        """
        if prop is None:
            if spec.type is FieldType.BOOL and spec.default is None:
                return Value.of_bool(False)
            if spec.default is not None:
                return spec.convert_literal(spec.default)
            if spec.optional:
                return UNDEFINED
            raise ClassInstantiationError(self.name, f"missing required field '{spec.name}'")

        try:
            if evaluated is not None:
                if not evaluated.is_defined:
                    raise ClassInstantiationError(
                        self.name, f"field '{spec.name}' evaluated to Undefined"
                    )
                return spec.convert_value(evaluated)
            if prop.is_modifier:
                if spec.type is not FieldType.BOOL:
                    raise ClassInstantiationError(
                        self.name, f"{spec.type.value} field '{spec.name}' needs a value"
                    )
                return Value.of_bool(True)
            return spec.convert_literal(prop.value)
        except CoercionError as e:
            raise ClassInstantiationError(
                self.name, f"field '{spec.name}' expects {spec.type.value}, got {e.value}"
            ) from None
