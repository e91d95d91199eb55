"""
TraxURL locator syntax.

A locator addresses a document and/or an element inside it:

    [scheme ":"] ["//"] [authority] path-segments ["?" query] ["#" fragment]

Path segments are `Tag`, `Tag#n` (0-indexed occurrence among same-tag
siblings) or `Tag?key="value"` (first child whose attribute equals value).
A document is identified by its scheme and authority; the path walks from
the document's top-level element.
"""

import re

from attrs import evolve, frozen

from trax.config import DEFAULT_SETTINGS, TraxSettings
from trax.core.xmlchar import NAME_PATTERN
from trax.exceptions import UrlSyntaxError

SCHEME_RE = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*):")
FRAGMENT_RE = re.compile(r"#(?P<fragment>[^#/?]*)$")
SEGMENT_RE = re.compile(
    rf"^(?P<tag>{NAME_PATTERN})"
    r"(?:#(?P<index>\d+)"
    rf"|\?(?P<key>{NAME_PATTERN})=(?P<quote>[\"'])(?P<value>[^\"'/]*)(?P=quote))?"
    r"(?:\?(?P<query>[^/?#\"']*))?$"
)
QUERY_RE = re.compile(r"^[^/?#]*$")


@frozen
class PathSegment:
    """
    One step of a locator path.

    Params:
        tag: Tag name the child must carry
        index: 0-indexed occurrence among same-tag siblings, if given
        filter_key: Attribute key of an equality filter, if given
        filter_value: Attribute value the filter requires
    """

    tag: str
    index: int | None = None
    filter_key: str | None = None
    filter_value: str | None = None

    @property
    def has_filter(self) -> bool:
        return self.filter_key is not None

    def __str__(self) -> str:
        if self.index is not None:
            return f"{self.tag}#{self.index}"
        if self.filter_key is not None:
            return f'{self.tag}?{self.filter_key}="{self.filter_value}"'
        return self.tag


@frozen
class TraxURL:
    """
    A parsed locator.

    Params:
        scheme: Scheme, defaulted when the text carries none
        authority: Host/resource identifying the document, if given
        segments: Element path from the document's top-level element
        query: Raw trailing query (without `?`), if given
        fragment: Fragment (without `#`), if given
    """

    scheme: str = "file"
    authority: str | None = None
    segments: tuple[PathSegment, ...] = ()
    query: str | None = None
    fragment: str | None = None

    @property
    def document_key(self) -> tuple[str, str | None]:
        """Scheme and authority, which together identify a document."""
        return (self.scheme, self.authority)

    @property
    def query_params(self) -> dict[str, str]:
        """Trailing query as an ordered mapping of `key=value` pairs."""
        params: dict[str, str] = {}
        if not self.query:
            return params
        for pair in self.query.split("&"):
            key, _, value = pair.partition("=")
            if key:
                params[key] = value
        return params

    @property
    def is_document_root(self) -> bool:
        return not self.segments

    def is_local_to(self, document_url: "TraxURL | None") -> bool:
        """
        Check whether this locator addresses the document at `document_url`.

        Locators without an authority are relative to whichever document
        they are resolved against.
        """
        if self.authority is None:
            return True
        if document_url is None:
            return False
        return self.document_key == document_url.document_key

    def document(self) -> "TraxURL":
        """This locator reduced to the document it identifies."""
        return TraxURL(scheme=self.scheme, authority=self.authority)

    def child(self, segment: PathSegment) -> "TraxURL":
        """Locator one segment deeper; query and fragment are dropped."""
        return evolve(self, segments=self.segments + (segment,), query=None, fragment=None)

    def with_path(self, segments: tuple[PathSegment, ...]) -> "TraxURL":
        return evolve(self, segments=tuple(segments), query=None, fragment=None)

    def path(self) -> str:
        return "/".join(str(segment) for segment in self.segments)

    def __str__(self) -> str:
        text = ""
        if self.authority is not None:
            text = f"{self.scheme}://{self.authority}"
            if self.segments:
                text += "/"
        text += self.path()
        if self.query is not None:
            text += f"?{self.query}"
        if self.fragment is not None:
            text += f"#{self.fragment}"
        return text


def parse_url(text: str, settings: TraxSettings = DEFAULT_SETTINGS) -> TraxURL:
    """
    Parse a locator string.

    Params:
        text: Locator text, e.g. `Frame/Body/Todo#1` or `trax://host/Frame`
        settings: Supplies the default scheme and the known scheme names

    Returns:
        The parsed TraxURL

    Raises:
        UrlSyntaxError: If the text is not a well-formed locator
    """
    if text is None:
        raise UrlSyntaxError("", "locator is missing")
    if text != text.strip() or any(ch.isspace() for ch in text):
        raise UrlSyntaxError(text, "locators may not contain whitespace")

    rest = text
    fragment = None
    match = FRAGMENT_RE.search(rest)
    if match and not match.group("fragment").isdigit():
        fragment = match.group("fragment")
        rest = rest[: match.start()]

    scheme = settings.default_scheme
    explicit_scheme = False
    match = SCHEME_RE.match(rest)
    if match:
        candidate = match.group("scheme").lower()
        after = rest[match.end() :]
        if after.startswith("//") or candidate in settings.known_schemes:
            scheme = candidate
            explicit_scheme = True
            rest = after

    authority = None
    if rest.startswith("//"):
        authority, _, rest = rest[2:].partition("/")
        authority, query_sep, leftover = authority.partition("?")
        if query_sep:
            rest = "?" + leftover
    elif explicit_scheme and scheme != settings.default_scheme:
        authority, _, rest = rest.partition("/")
    if authority == "":
        authority = None
    if authority is not None and not re.match(r"^[^\s/?#]+$", authority):
        raise UrlSyntaxError(text, f"invalid authority '{authority}'")

    query = None
    if rest.startswith("?"):
        query = rest[1:]
        if not QUERY_RE.match(query):
            raise UrlSyntaxError(text, "query values may not contain '/'")
        rest = ""

    rest = rest.removeprefix("/")
    segments = []
    if rest:
        parts = rest.split("/")
        for position, part in enumerate(parts):
            segment, segment_query = _parse_segment(text, part)
            if segment_query is not None:
                if position != len(parts) - 1:
                    raise UrlSyntaxError(
                        text, f"query in segment '{part}' must be the last part of the path"
                    )
                query = segment_query
            segments.append(segment)

    return TraxURL(
        scheme=scheme,
        authority=authority,
        segments=tuple(segments),
        query=query,
        fragment=fragment,
    )


def _parse_segment(text: str, part: str) -> tuple[PathSegment, str | None]:
    if not part:
        raise UrlSyntaxError(text, "empty path segment")
    match = SEGMENT_RE.match(part)
    if not match:
        raise UrlSyntaxError(text, f"invalid path segment '{part}'")
    index = match.group("index")
    segment = PathSegment(
        tag=match.group("tag"),
        index=int(index) if index is not None else None,
        filter_key=match.group("key"),
        filter_value=match.group("value"),
    )
    return segment, match.group("query")


def is_valid_url(text: str, settings: TraxSettings = DEFAULT_SETTINGS) -> bool:
    """Check whether `text` parses as a locator."""
    try:
        parse_url(text, settings)
    except UrlSyntaxError:
        return False
    return True
