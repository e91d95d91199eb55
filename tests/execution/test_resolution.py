"""
Tests for locator resolution against a document.
"""

import pytest

from trax.core.document import Document
from trax.core.url import parse_url
from trax.exceptions import ElementNotFound, RemoteReferenceError, UrlSyntaxError
from trax.execution import RemoteReference, UrlResolver
from trax.parsing import parse_document
from trax.structure import Instantiator, register_classes

LIST_APP = """
<Frame>
    <class:Todo>
        <let:title String />
        <card><read:title /></card>
    </class:Todo>
    <Header title="Todos" />
    <Body>
        <Todo title="milk" />
        <Todo title="eggs" />
        <Todo title="tea" />
    </Body>
</Frame>
"""


@pytest.fixture
def document():
    document = parse_document(LIST_APP, parse_url("trax://app"))
    register_classes(document)
    Instantiator(document).expand()
    return document


@pytest.fixture
def resolver(document):
    return UrlResolver(document)


def title_of(document, node_id):
    return document.element(node_id).get_attribute("title")


class TestResolve:
    """Tests for walking locator paths."""

    def test_unique_tag(self, document, resolver):
        header = resolver.resolve("Frame/Header")
        assert document.element(header).tag == "Header"

    def test_occurrence_index(self, document, resolver):
        assert title_of(document, resolver.resolve("Frame/Body/Todo#1")) == "eggs"

    def test_attribute_filter(self, document, resolver):
        assert title_of(document, resolver.resolve('Frame/Body/Todo?title="tea"')) == "tea"

    def test_root_segment(self, document, resolver):
        assert resolver.resolve("Frame") == document.root
        assert resolver.resolve("Frame#0") == document.root

    def test_document_only_locator(self, document, resolver):
        assert resolver.resolve("trax://app") == document.root

    def test_same_document_authority(self, document, resolver):
        assert title_of(document, resolver.resolve("trax://app/Frame/Body/Todo#2")) == "tea"

    def test_parsed_url_is_accepted(self, document, resolver):
        url = parse_url("Frame/Body/Todo#0")
        assert title_of(document, resolver.resolve(url)) == "milk"

    def test_canonical_locator_resolves_back(self, document, resolver):
        todo = resolver.resolve("Frame/Body/Todo#2")
        assert resolver.resolve(document.locate(todo)) == todo


class TestResolveFailures:
    """Tests for locators that do not resolve."""

    @pytest.mark.parametrize(
        "url,reason",
        [
            ("Frame/Body/Todo", "ambiguous"),
            ("Frame/Footer", "no child"),
            ("Frame/Body/Todo#3", "out of range"),
            ('Frame/Body/Todo?title="bread"', "no child"),
            ("Other/Body", "top-level"),
            ("Frame#1", "top-level"),
        ],
    )
    def test_element_not_found(self, resolver, url, reason):
        with pytest.raises(ElementNotFound, match=reason):
            resolver.resolve(url)

    def test_shadow_is_not_walked(self, resolver):
        with pytest.raises(ElementNotFound):
            resolver.resolve("Frame/Body/Todo#0/card")

    def test_malformed_locator(self, resolver):
        with pytest.raises(UrlSyntaxError):
            resolver.resolve("Frame//Body")

    def test_empty_document(self):
        with pytest.raises(ElementNotFound, match="empty"):
            UrlResolver(Document()).resolve("Frame")

    def test_try_resolve(self, resolver):
        assert resolver.try_resolve("Frame/Footer") is None
        assert resolver.try_resolve("Frame//Body") is None
        assert resolver.resolves("Frame/Header")
        assert not resolver.resolves("Frame/Body/Todo")


class TestRemoteReferences:
    """Tests for locators naming another document."""

    def test_reference_is_deferred(self, resolver):
        target = resolver.resolve_reference("trax://other/Frame/Body")
        assert isinstance(target, RemoteReference)
        assert str(target.document_url) == "trax://other"

    def test_resolve_raises(self, resolver):
        with pytest.raises(RemoteReferenceError):
            resolver.resolve("trax://other/Frame")

    def test_try_resolve_gives_none(self, resolver):
        assert resolver.try_resolve("trax://other/Frame") is None

    def test_relative_locator_is_local(self, document, resolver):
        assert resolver.resolve_reference("Frame") == document.root
