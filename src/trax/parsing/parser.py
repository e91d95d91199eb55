"""
Parser for TRAX markup.

This module lowers the parse tree produced by the PEG grammar into an
arena-backed Document (or a Fragment of top-level nodes), validating the
constraints a context-free grammar cannot express: matching close tags,
unique property keys, locator syntax of evaluation-prefixed properties and
the single-root rule of documents.
"""

import logging

from parsimonious.exceptions import ParseError
from parsimonious.nodes import Node as ParseNode
from parsimonious.nodes import NodeVisitor

from trax.config import DEFAULT_SETTINGS, TraxSettings
from trax.core.document import Document, Fragment
from trax.core.tree_node import Comment, Element, Property, Text
from trax.core.types import NodeId
from trax.core.url import TraxURL, is_valid_url
from trax.exceptions import (
    DocumentParseException,
    EmptyDocumentError,
    InvalidTreeStructureError,
    TextRange,
)
from trax.parsing.grammar import trax_grammar

log = logging.getLogger(__name__)

BOM = "\ufeff"


class TreeBuilder(NodeVisitor):
    """
    Visitor allocating one arena node per element, text and comment.

    Children are visited first, so every `visit_*` method below receives the
    handles of already allocated child nodes and attaches them to its own
    node.
    """

    unwrapped_exceptions = (DocumentParseException,)

    def __init__(self, source: str, document: Document):
        self.source = source
        self.document = document
        self.settings = document.settings

    def _range(self, node: ParseNode) -> TextRange:
        return TextRange.from_offsets(self.source, node.start, node.end)

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_nodes(self, node, visited_children) -> list[NodeId]:
        return [child for child in visited_children if child is not None]

    def visit_item(self, node, visited_children) -> NodeId | None:
        return visited_children[0]

    def visit_element(self, node, visited_children) -> NodeId:
        return visited_children[0]

    def visit_empty_elem(self, node, visited_children) -> NodeId:
        _, tag, properties, _, _ = visited_children
        return self._build_element(node, tag, properties, [])

    def visit_full_elem(self, node, visited_children) -> NodeId:
        (tag, properties), children, closing = visited_children
        if closing != tag:
            raise InvalidTreeStructureError(closing, tag, self._range(node.children[2]))
        return self._build_element(node, tag, properties, children)

    def visit_content(self, node, visited_children) -> list[NodeId]:
        return [child for child in visited_children if child is not None]

    def visit_start_tag(self, node, visited_children) -> tuple[str, list[Property]]:
        _, tag, properties, _, _ = visited_children
        return tag, properties

    def visit_end_tag(self, node, visited_children) -> str:
        return visited_children[1]

    def visit_properties(self, node, visited_children) -> list[tuple[Property, ParseNode]]:
        return [prop for _, prop in visited_children]

    def visit_property(self, node, visited_children) -> tuple[Property, ParseNode]:
        return visited_children[0], node

    def visit_attribute(self, node, visited_children) -> Property:
        name, _, assign, _, value = visited_children
        prop = Property(name, value, is_modifier=assign == "?=")
        if prop.is_modifier and prop.eval_prefix is None:
            raise DocumentParseException(
                self._range(node),
                f"modifier '{name}' can only carry a locator with an asRef: or asEval: prefix",
            )
        return prop

    def visit_modifier(self, node, visited_children) -> Property:
        return Property(visited_children[0])

    def visit_assign(self, node, visited_children) -> str:
        return node.text

    def visit_quoted(self, node, visited_children) -> str:
        return node.text[1:-1]

    def visit_name(self, node, visited_children) -> str:
        return node.text

    def visit_comment(self, node, visited_children) -> NodeId | None:
        if not self.settings.keep_comments:
            return None
        return self.document.allocate(Comment(node.text[2:-2], location=self._range(node)))

    def visit_chardata(self, node, visited_children) -> NodeId | None:
        text = node.text.strip()
        if not text:
            return None
        return self.document.allocate(Text(text, location=self._range(node)))

    def _build_element(
        self,
        node: ParseNode,
        tag: str,
        properties: list[tuple[Property, ParseNode]],
        children: list[NodeId],
    ) -> NodeId:
        seen: set[str] = set()
        for prop, prop_node in properties:
            if prop.key in seen:
                raise DocumentParseException(
                    self._range(prop_node), f"duplicate property '{prop.key}' on <{tag}>"
                )
            seen.add(prop.key)
            url = prop.url_text
            if url is not None and not is_valid_url(url, self.settings):
                raise DocumentParseException(
                    self._range(prop_node),
                    f"property '{prop.name}' requires a valid locator, got '{url}'",
                )

        element = Element(
            tag, properties=[prop for prop, _ in properties], location=self._range(node)
        )
        element_id = self.document.allocate(element)
        for child in children:
            self.document.get(child).parent = element_id
            element.children.append(child)
        return element_id


class TraxParser:
    """
    Parser turning TRAX markup into documents and fragments.

    Params:
        settings: Engine settings; `keep_comments` controls whether comments
            become tree nodes and `known_schemes` is used to validate locators
    """

    def __init__(self, settings: TraxSettings = DEFAULT_SETTINGS):
        self.settings = settings

    def parse_document(self, text: str, url: TraxURL | None = None) -> Document:
        """
        Parse a complete document.

        Params:
            text: Markup with exactly one top-level element, optionally
                surrounded by comments and whitespace
            url: Locator the text was loaded from

        Returns:
            A new Document whose root is the top-level element

        Raises:
            DocumentParseException: If the text is not well-formed or does not
                have exactly one top-level element
        """
        document = Document(url=url, settings=self.settings)
        source, top_level = self._parse_into(text, document)

        elements = [node for node in top_level if isinstance(document.get(node), Element)]
        for node in top_level:
            if isinstance(document.get(node), Text):
                raise DocumentParseException(
                    document.get(node).location, "text outside of the top-level element"
                )
        if not elements:
            raise EmptyDocumentError(TextRange.from_offsets(source, 0, len(source)))
        if len(elements) > 1:
            raise DocumentParseException(
                document.get(elements[1]).location,
                "a document must have exactly one top-level element",
            )

        # Comments around the top-level element have no owner in the tree.
        for node in top_level:
            if node != elements[0]:
                document.drop(node)
        document.set_root(elements[0])
        log.debug("Parsed document %s with %d nodes", url, len(document))
        return document

    def parse_fragment(self, text: str, document: Document | None = None) -> Fragment:
        """
        Parse zero or more top-level elements, texts and comments.

        Used for message bodies and for standalone message elements, which
        arrive without a document wrapper.

        Params:
            text: Markup fragment
            document: Arena to allocate the nodes in; a fresh one by default

        Returns:
            Fragment listing the detached top-level nodes in order

        Raises:
            DocumentParseException: If the fragment is not well-formed
        """
        if document is None:
            document = Document(settings=self.settings)
        _, top_level = self._parse_into(text, document)
        return Fragment(document, top_level)

    def _parse_into(self, text: str, document: Document) -> tuple[str, list[NodeId]]:
        source = text.removeprefix(BOM)
        try:
            tree = trax_grammar.parse(source)
        except ParseError as e:
            raise self._syntax_error(source, e.pos) from None
        return source, TreeBuilder(source, document).visit(tree)

    def _syntax_error(self, source: str, pos: int) -> DocumentParseException:
        location = TextRange.from_offsets(source, pos, pos)
        rest = source[pos:]
        if rest.startswith("/*"):
            description = "unterminated comment"
        elif rest.startswith("</"):
            description = "close tag without a matching open element"
        elif rest.startswith("<"):
            description = "malformed or unclosed element"
        else:
            description = f"unexpected character {rest[:1]!r}"
        return DocumentParseException(location, description)


def parse_document(
    text: str, url: TraxURL | None = None, settings: TraxSettings = DEFAULT_SETTINGS
) -> Document:
    """Parse `text` into a Document; see TraxParser.parse_document."""
    return TraxParser(settings).parse_document(text, url)


def parse_fragment(text: str, settings: TraxSettings = DEFAULT_SETTINGS) -> Fragment:
    """Parse `text` into a Fragment; see TraxParser.parse_fragment."""
    return TraxParser(settings).parse_fragment(text)
