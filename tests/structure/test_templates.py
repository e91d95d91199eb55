"""
Tests for class definitions and field binding.

This module tests how `class:` declarations are turned into definitions
(typed `let:` fields, `bind:` events, the private blueprint copy) and how
instance properties are type-checked against declared fields.
"""

import pytest

from trax.core.tree_node import Property
from trax.core.types import UNDEFINED, Value, ValueKind
from trax.exceptions import (
    ClassDefinitionError,
    ClassInstantiationError,
    UndeclaredFieldError,
)
from trax.parsing import parse_document
from trax.structure import ClassDefinition, FieldSpec, FieldType


def define(body: str) -> ClassDefinition:
    """Build the definition of `class:Item` with `body` as its content."""
    document = parse_document(f"<Frame><class:Item>{body}</class:Item></Frame>")
    return ClassDefinition.from_element(document, document.root_element.children[0])


class TestClassDefinition:
    """Tests for reading class declarations."""

    def test_todo_declaration(self, todo_markup):
        document = parse_document(todo_markup)
        definition = ClassDefinition.from_element(document, document.root_element.children[0])
        assert definition.name == "Todo"
        assert list(definition.fields) == ["title", "done"]
        assert definition.fields["title"].type is FieldType.STRING
        assert definition.fields["done"].bind_event == "toggle"
        assert [spec.name for spec in definition.bound_fields] == ["done"]

    def test_blueprint_excludes_declarations(self, todo_markup):
        document = parse_document(todo_markup)
        definition = ClassDefinition.from_element(document, document.root_element.children[0])
        assert [definition.blueprint.element(node).tag for node in definition.nodes] == ["card"]

    def test_blueprint_is_a_private_copy(self, todo_markup):
        """The definition survives removal of its declaring element."""
        document = parse_document(todo_markup)
        declaration = document.root_element.children[0]
        definition = ClassDefinition.from_element(document, declaration)
        document.drop(declaration)
        card = definition.blueprint.element(definition.nodes[0])
        assert card.tag == "card"
        assert definition.blueprint.element(card.children[0]).tag == "read:title"

    def test_optional_and_default(self):
        definition = define('<let:note String optional /><let:count Int default="1" />')
        assert definition.fields["note"].optional
        assert not definition.fields["note"].required
        assert definition.fields["count"].default == "1"
        assert not definition.fields["count"].required

    def test_bool_fields_are_never_required(self):
        assert not define("<let:done Bool />").fields["done"].required

    def test_not_a_class_element(self):
        document = parse_document("<Frame />")
        with pytest.raises(ClassDefinitionError):
            ClassDefinition.from_element(document, document.root)

    @pytest.mark.parametrize(
        "body",
        [
            "<let:title />",
            "<let:title Strin />",
            "<let:title String Int />",
            "<let:title String /><let:title Int />",
            '<let:count Int default="many" />',
            "<let:done Bool /><bind:done />",
        ],
    )
    def test_malformed_declarations(self, body):
        """Missing, unknown or duplicate types, bad defaults and events are rejected."""
        with pytest.raises(ClassDefinitionError):
            define(body)

    def test_bind_of_undeclared_field(self):
        with pytest.raises(UndeclaredFieldError) as exc_info:
            define('<bind:done send="toggle" />')
        assert exc_info.value.field == "done"

    def test_read_of_undeclared_field(self):
        with pytest.raises(UndeclaredFieldError):
            define("<let:title String /><card><read:subtitle /></card>")

    def test_get_field(self):
        definition = define("<let:title String />")
        assert definition.get_field("title").name == "title"
        assert definition.declares("title")
        with pytest.raises(UndeclaredFieldError):
            definition.get_field("missing")


class TestBindProperty:
    """Tests for type-checking instance properties against fields."""

    @pytest.fixture
    def definition(self):
        return define(
            "<let:title String />"
            "<let:done Bool />"
            "<let:count Int />"
            "<let:ratio Float />"
            "<let:note String optional />"
            '<let:size Int default="3" />'
            "<let:link Url />"
        )

    def bind(self, definition, name, prop=None, evaluated=None):
        return definition.bind_property(definition.fields[name], prop, evaluated)

    def test_string(self, definition):
        assert self.bind(definition, "title", Property("title", "milk")) == Value.of_string("milk")

    def test_bool_presence(self, definition):
        assert self.bind(definition, "done", Property("done")) == Value.of_bool(True)
        assert self.bind(definition, "done") == Value.of_bool(False)

    def test_int_literal(self, definition):
        assert self.bind(definition, "count", Property("count", "7")) == Value.of_int(7)

    def test_int_field_rejects_float(self, definition):
        with pytest.raises(ClassInstantiationError, match="count"):
            self.bind(definition, "count", Property("count", "2.5"))

    def test_float_field_widens_int(self, definition):
        assert self.bind(definition, "ratio", Property("ratio", "2")) == Value.of_float(2.0)

    def test_missing_required(self, definition):
        with pytest.raises(ClassInstantiationError, match="missing required field 'title'"):
            self.bind(definition, "title")

    def test_missing_optional(self, definition):
        assert self.bind(definition, "note") is UNDEFINED

    def test_default(self, definition):
        assert self.bind(definition, "size") == Value.of_int(3)

    def test_modifier_on_valued_field(self, definition):
        with pytest.raises(ClassInstantiationError):
            self.bind(definition, "count", Property("count"))

    def test_url_field(self, definition):
        value = self.bind(definition, "link", Property("link", "Frame/Body"))
        assert value.kind is ValueKind.URL
        assert str(value.data) == "Frame/Body"

    def test_invalid_url(self, definition):
        with pytest.raises(ClassInstantiationError):
            self.bind(definition, "link", Property("link", "Frame//Body"))

    def test_evaluated_value_is_converted(self, definition):
        prop = Property("asEval:ratio", "Frame/sum")
        assert self.bind(definition, "ratio", prop, Value.of_int(4)) == Value.of_float(4.0)

    def test_evaluated_undefined(self, definition):
        with pytest.raises(ClassInstantiationError):
            self.bind(definition, "ratio", Property("asEval:ratio", "Frame/x"), UNDEFINED)


class TestFieldSpec:
    """Tests for standalone field conversion."""

    def test_element_field_accepts_urls(self):
        spec = FieldSpec("target", FieldType.ELEMENT)
        value = spec.convert_literal("Frame/Body")
        assert spec.convert_value(value) is value

    def test_field_type_kind(self):
        assert FieldType.ELEMENT.kind is ValueKind.ELEMENT_REF
        assert FieldType.BOOL.kind is ValueKind.BOOL
