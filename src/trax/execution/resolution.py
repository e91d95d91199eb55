"""
Locator resolution against a document.

Resolution walks from the document's top-level element: the first path
segment must name it, and every further segment selects a child element by
tag plus either an occurrence index among same-tag siblings (`Tag#n`), an
attribute-equality filter (`Tag?key="value"`, first match) or nothing, in
which case the tag must be unique among the siblings. Class instance shadows
are never walked.
"""

import logging

from attrs import frozen

from trax.core.document import Document
from trax.core.types import NodeId
from trax.core.url import PathSegment, TraxURL, parse_url
from trax.exceptions import ElementNotFound, RemoteReferenceError, UrlSyntaxError

log = logging.getLogger(__name__)


@frozen
class RemoteReference:
    """
    A locator pointing into a document other than the one resolved against.

    It can only be dereferenced once a loader has supplied that document.
    """

    url: TraxURL

    @property
    def document_url(self) -> TraxURL:
        return self.url.document()


class UrlResolver:
    """
    Resolves locators to element handles of one document.

    Params:
        document: The document locators are resolved against
    """

    def __init__(self, document: Document):
        self.document = document

    def parse(self, url: str | TraxURL) -> TraxURL:
        if isinstance(url, TraxURL):
            return url
        return parse_url(url, self.document.settings)

    def resolve_reference(self, url: str | TraxURL) -> NodeId | RemoteReference:
        """
        Resolve a locator, deferring cross-document locators.

        Returns:
            The element handle, or a RemoteReference when the locator names
            another document

        Raises:
            UrlSyntaxError: If the locator is malformed
            ElementNotFound: If a segment has no match or an ambiguous match
        """
        parsed = self.parse(url)
        if not parsed.is_local_to(self.document.url):
            return RemoteReference(parsed)
        return self._walk(parsed)

    def resolve(self, url: str | TraxURL) -> NodeId:
        """
        Resolve a locator to an element of this document.

        Raises:
            UrlSyntaxError: If the locator is malformed
            ElementNotFound: If a segment has no match or an ambiguous match
            RemoteReferenceError: If the locator names another document
        """
        target = self.resolve_reference(url)
        if isinstance(target, RemoteReference):
            raise RemoteReferenceError(str(target.url))
        return target

    def try_resolve(self, url: str | TraxURL) -> NodeId | None:
        """Resolve a locator, returning None instead of raising on any failure."""
        try:
            return self.resolve(url)
        except (UrlSyntaxError, ElementNotFound, RemoteReferenceError) as e:
            log.debug("Locator %s does not resolve: %s", url, e)
            return None

    def resolves(self, url: str | TraxURL) -> bool:
        return self.try_resolve(url) is not None

    def _walk(self, url: TraxURL) -> NodeId:
        root = self.document.root
        if root is None:
            raise ElementNotFound(str(url), "document is empty")
        if url.is_document_root:
            return root

        first = url.segments[0]
        root_element = self.document.element(root)
        if (
            first.tag != root_element.tag
            or (first.index is not None and first.index != 0)
            or (first.has_filter and root_element.get_attribute(first.filter_key) != first.filter_value)
        ):
            raise ElementNotFound(str(url), f"segment '{first}' does not match the top-level element")

        current = root
        for segment in url.segments[1:]:
            current = self._select(current, segment, url)
        return current

    def _select(self, parent: NodeId, segment: PathSegment, url: TraxURL) -> NodeId:
        siblings = self.document.same_tag_siblings(parent, segment.tag)
        if segment.index is not None:
            if segment.index < len(siblings):
                return siblings[segment.index]
            raise ElementNotFound(
                str(url), f"segment '{segment}' is out of range ({len(siblings)} '{segment.tag}' children)"
            )
        if segment.has_filter:
            for sibling in siblings:
                if self.document.element(sibling).get_attribute(segment.filter_key) == segment.filter_value:
                    return sibling
            raise ElementNotFound(str(url), f"no child matches segment '{segment}'")
        if len(siblings) == 1:
            return siblings[0]
        if not siblings:
            raise ElementNotFound(str(url), f"no child matches segment '{segment}'")
        raise ElementNotFound(
            str(url), f"segment '{segment}' is ambiguous among {len(siblings)} children"
        )
