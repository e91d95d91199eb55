"""
Tests for referencing and evaluating nodes.

This module covers the arithmetic element kinds with numeric promotion, the
asRef/asEval property prefixes, `read:` field access inside class instances
and the soft failure policy (Undefined) versus the errors that always
propagate.
"""

import pytest

from trax.core.types import UNDEFINED, VOID, Value, ValueKind
from trax.exceptions import AsEvalModifierTypeMismatch, DivideByZero
from trax.execution import ARITHMETIC, Evaluator, Intent
from trax.parsing import parse_document
from trax.structure import Instantiator, register_classes


def evaluate_markup(markup: str) -> Value:
    """Evaluate the single child of a wrapping Frame."""
    document = parse_document(f"<Frame>{markup}</Frame>")
    return Evaluator(document).evaluate(document.root_element.children[0])


class TestArithmetic:
    """Tests for arithmetic element kinds."""

    @pytest.mark.parametrize(
        "markup,expected",
        [
            ("<add>1 2<abs>-3</abs></add>", Value.of_int(6)),
            ("<mul>3<abs>-4</abs>5 6</mul>", Value.of_int(360)),
            ("<mod> 35 6 </mod>", Value.of_int(5)),
            ("<div>1 4</div>", Value.of_float(0.25)),
            ("<sub>10 3 2</sub>", Value.of_int(5)),
            ("<sub>4</sub>", Value.of_int(-4)),
            ("<abs>-2.5</abs>", Value.of_float(2.5)),
            ("<add>1 0.5</add>", Value.of_float(1.5)),
            ("<mul>2 <add>1 0.5</add></mul>", Value.of_float(3.0)),
            ("<div>6 3</div>", Value.of_float(2.0)),
        ],
    )
    def test_results(self, markup, expected):
        assert evaluate_markup(markup) == expected

    def test_int_operands_stay_int(self):
        assert evaluate_markup("<add>2 3</add>").kind is ValueKind.INT

    def test_float_operand_promotes_all(self):
        """A Float anywhere among the operands makes the result a Float."""
        assert evaluate_markup("<mod>7 2.0</mod>") == Value.of_float(1.0)

    def test_division_by_zero(self):
        with pytest.raises(DivideByZero):
            evaluate_markup("<div> 1 0 </div>")

    def test_modulo_by_zero(self):
        with pytest.raises(DivideByZero):
            evaluate_markup("<mod>5 0</mod>")

    def test_nested_division_by_zero_propagates(self):
        with pytest.raises(DivideByZero):
            evaluate_markup("<add>1 <div>2 0</div></add>")

    @pytest.mark.parametrize(
        "markup",
        [
            "<add>1 two</add>",
            "<add>1 <Body /></add>",
            "<add></add>",
            "<abs>1 2</abs>",
            "<div>4</div>",
            "<add>1 true</add>",
        ],
    )
    def test_invalid_operands_are_undefined(self, markup):
        assert evaluate_markup(markup) is UNDEFINED

    @pytest.mark.parametrize(
        "markup",
        [
            "<div>" + "9" * 400 + " 3</div>",
            "<add>0.5 " + "9" * 400 + "</add>",
            "<sub>1.5 <div>" + "9" * 400 + " 7</div></sub>",
        ],
    )
    def test_float_overflow_is_undefined(self, markup):
        """Ints too large to widen to Float give Undefined instead of raising."""
        assert evaluate_markup(markup) is UNDEFINED

    def test_comments_are_not_operands(self):
        assert evaluate_markup("<add>1 /* 100 */ 2</add>") == Value.of_int(3)

    def test_operations_table(self):
        assert set(ARITHMETIC) == {"add", "sub", "mul", "div", "mod", "abs"}


class TestEvaluateNodes:
    """Tests for non-arithmetic node kinds."""

    def test_view_elements_are_void(self):
        assert evaluate_markup("<Body><Header /></Body>") is VOID

    def test_single_token_text(self):
        document = parse_document("<Frame> 42 </Frame>")
        text = document.root_element.children[0]
        assert Evaluator(document).evaluate(text) == Value.of_int(42)

    def test_multi_token_text(self):
        document = parse_document("<Frame>hello world</Frame>")
        text = document.root_element.children[0]
        assert Evaluator(document).evaluate(text) == Value.of_string("hello world")

    def test_comment_is_void(self):
        document = parse_document("<Frame>/* note */</Frame>")
        comment = document.root_element.children[0]
        assert Evaluator(document).evaluate(comment) is VOID

    def test_stale_handle_is_undefined(self):
        document = parse_document("<Frame><Body /></Frame>")
        body = document.root_element.children[0]
        document.drop(body)
        assert Evaluator(document).evaluate(body) is UNDEFINED


class TestReference:
    """Tests for the reference intent."""

    def test_element_reference(self):
        document = parse_document("<Frame><add>1 2</add></Frame>")
        add = document.root_element.children[0]
        evaluator = Evaluator(document)
        assert evaluator.read(add, Intent.REFERENCE) == Value.of_element(add)
        assert evaluator.read(add, Intent.EVALUATE) == Value.of_int(3)

    def test_text_reference_is_unchanged(self):
        document = parse_document("<Frame>42</Frame>")
        text = document.root_element.children[0]
        assert Evaluator(document).reference(text) == Value.of_string("42")

    def test_text_content(self):
        document = parse_document("<Frame>a<Body>b /* c */</Body>d</Frame>")
        assert Evaluator(document).text_content(document.root) == "a b d"


class TestPropertyPrefixes:
    """Tests for asRef/asEval property evaluation."""

    MARKUP = """
    <Frame>
        <sum><add>1 2</add></sum>
        <Settings />
        <Probe
            plain="7"
            flag
            asRef:target="Frame/sum/add"
            asRef:Frame
            asRef:missing?="Frame/Nowhere"
            asEval:total="Frame/sum/add"
            asEval:broken="Frame/Nowhere"
            asEval:numeric?="Frame/sum/add"
            asEval:gone?="Frame/Nowhere"
        />
    </Frame>
    """

    @pytest.fixture
    def document(self):
        return parse_document(self.MARKUP)

    @pytest.fixture
    def probe(self, document):
        return document.root_element.children[2]

    def test_plain_attribute(self, document, probe):
        assert Evaluator(document).evaluate_property(probe, "plain") == Value.of_int(7)

    def test_plain_modifier(self, document, probe):
        assert Evaluator(document).evaluate_property(probe, "flag") == Value.of_bool(True)

    def test_as_ref_attribute_returns_target(self, document, probe):
        add = document.element(document.root_element.children[0]).children[0]
        assert Evaluator(document).evaluate_property(probe, "target") == Value.of_element(add)

    def test_as_ref_modifier_tests_resolution(self, document, probe):
        evaluator = Evaluator(document)
        assert evaluator.evaluate_property(probe, "Frame") == Value.of_bool(True)
        assert evaluator.evaluate_property(probe, "missing") == Value.of_bool(False)

    def test_as_eval_attribute_returns_value(self, document, probe):
        assert Evaluator(document).evaluate_property(probe, "total") == Value.of_int(3)

    def test_broken_reference_is_undefined(self, document, probe):
        assert Evaluator(document).evaluate_property(probe, "broken") is UNDEFINED

    def test_as_eval_modifier_requires_bool(self, document, probe):
        with pytest.raises(AsEvalModifierTypeMismatch) as exc_info:
            Evaluator(document).evaluate_property(probe, "numeric")
        assert exc_info.value.modifier == "numeric"
        assert exc_info.value.url == "Frame/sum/add"
        assert exc_info.value.value == Value.of_int(3)

    def test_as_eval_modifier_with_broken_reference(self, document, probe):
        assert Evaluator(document).evaluate_property(probe, "gone") is UNDEFINED

    def test_unknown_key(self, document, probe):
        assert Evaluator(document).evaluate_property(probe, "nothing") is UNDEFINED


class TestReadFields:
    """Tests for `read:` inside class instances."""

    MARKUP = """
    <Frame>
        <class:Item>
            <let:price Int />
            <let:qty Int default="1" />
            <let:done Bool />
            <row>
                <read:price />
                <mul><read:price /><read:qty /></mul>
                <read:done />
            </row>
        </class:Item>
        <Item price="4" qty="3" />
        <read:price />
    </Frame>
    """

    @pytest.fixture
    def document(self):
        document = parse_document(self.MARKUP)
        register_classes(document)
        Instantiator(document).expand()
        return document

    def row_children(self, document):
        item = document.element(document.root_element.children[1])
        row = document.element(item.shadow[0])
        return row.children

    def test_read_field(self, document):
        read_price, _, _ = self.row_children(document)
        assert Evaluator(document).evaluate(read_price) == Value.of_int(4)

    def test_read_in_arithmetic(self, document):
        _, mul, _ = self.row_children(document)
        assert Evaluator(document).evaluate(mul) == Value.of_int(12)

    def test_read_bool_field(self, document):
        _, _, read_done = self.row_children(document)
        assert Evaluator(document).evaluate(read_done) == Value.of_bool(False)

    def test_read_sees_property_edits(self, document):
        read_price, _, _ = self.row_children(document)
        item = document.element(document.root_element.children[1])
        item.get_property("price").value = "9"
        assert Evaluator(document).evaluate(read_price) == Value.of_int(9)

    def test_read_outside_instance_is_undefined(self, document):
        stray = document.root_element.children[2]
        assert Evaluator(document).evaluate(stray) is UNDEFINED

    def test_declarations_and_instances_are_void(self, document):
        evaluator = Evaluator(document)
        declaration, item, _ = document.root_element.children
        assert evaluator.evaluate(declaration) is VOID
        assert evaluator.evaluate(item) is VOID
