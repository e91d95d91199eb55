"""
Tests for markup serialization and the debug outline.
"""

from trax.config import TraxSettings
from trax.core.document import Document
from trax.parsing import TraxParser, outline, parse_document, serialize


class TestSerialize:
    """Tests for writing trees back to markup."""

    def test_layout(self):
        """One node per line, nested content indented, empty elements self-closed."""
        document = parse_document('<Frame><Header title="Todos" /><Body>hi</Body></Frame>')
        assert serialize(document) == (
            "<Frame>\n"
            '\t<Header title="Todos" />\n'
            "\t<Body>\n"
            "\t\thi\n"
            "\t</Body>\n"
            "</Frame>\n"
        )

    def test_properties_keep_their_form(self):
        document = parse_document(
            '<Frame done asEval:flag?="Frame/x" asRef:Settings say=\'a "b"\' />'
        )
        assert serialize(document) == (
            '<Frame done asEval:flag?="Frame/x" asRef:Settings say=\'a "b"\' />\n'
        )

    def test_comments_are_written(self):
        document = parse_document("<Frame>/* note */</Frame>")
        assert serialize(document) == "<Frame>\n\t/* note */\n</Frame>\n"

    def test_custom_indent(self):
        parser = TraxParser(TraxSettings(indent="  "))
        document = parser.parse_document("<Frame><Body /></Frame>")
        assert serialize(document) == "<Frame>\n  <Body />\n</Frame>\n"

    def test_subtree(self):
        document = parse_document("<Frame><Body><Todo /></Body></Frame>")
        body = document.root_element.children[0]
        assert serialize(document, body) == "<Body>\n\t<Todo />\n</Body>\n"

    def test_empty_document(self):
        assert serialize(Document()) == ""

    def test_round_trip_is_stable(self, todo_markup):
        """Serializing a reparsed serialization changes nothing."""
        first = serialize(parse_document(todo_markup))
        assert serialize(parse_document(first)) == first

    def test_round_trip_preserves_structure(self, todo_markup):
        original = parse_document(todo_markup)
        reparsed = parse_document(serialize(original))
        assert outline(reparsed) == outline(original)


class TestOutline:
    """Tests for the token-style outline."""

    def test_outline(self):
        document = parse_document('<Frame title="x" done><Body>hi</Body>/* c */</Frame>')
        assert outline(document).splitlines() == [
            "< Frame",
            '  - title="x"',
            "  + done",
            "  < Body",
            "    'hi'",
            "  * c",
        ]

    def test_outline_of_empty_document(self):
        assert outline(Document()) == ""
