"""
Tests for TraxURL locator parsing.
"""

import pytest

from trax.config import TraxSettings
from trax.core.url import PathSegment, TraxURL, is_valid_url, parse_url
from trax.exceptions import UrlSyntaxError


class TestParseUrl:
    """Tests for splitting a locator into its parts."""

    def test_relative_path(self):
        """A bare path uses the default scheme and no authority."""
        url = parse_url("Frame/Body/Todo#1")
        assert url.scheme == "file"
        assert url.authority is None
        assert url.segments == (
            PathSegment("Frame"),
            PathSegment("Body"),
            PathSegment("Todo", index=1),
        )

    def test_scheme_and_authority(self):
        """scheme://authority/path splits into all three."""
        url = parse_url("trax://app/Frame/Body")
        assert (url.scheme, url.authority) == ("trax", "app")
        assert [segment.tag for segment in url.segments] == ["Frame", "Body"]

    def test_slashes_before_authority_are_optional(self):
        """A known non-default scheme without // still takes an authority."""
        url = parse_url("trax:app/Frame")
        assert url.authority == "app"
        assert url.segments == (PathSegment("Frame"),)

    def test_attribute_filter(self):
        """Tag?key="value" becomes a filter segment."""
        url = parse_url('Frame/Todo?title="milk"')
        assert url.segments[-1] == PathSegment("Todo", filter_key="title", filter_value="milk")

    def test_single_quoted_filter(self):
        """Filter values may be single-quoted."""
        url = parse_url("Frame/Todo?title='milk'")
        assert url.segments[-1].filter_value == "milk"

    def test_trailing_query_and_fragment(self):
        """A final query and a fragment are kept apart from the path."""
        url = parse_url("trax://app/Frame?mode=edit#top")
        assert url.query == "mode=edit"
        assert url.query_params == {"mode": "edit"}
        assert url.fragment == "top"
        assert url.segments == (PathSegment("Frame"),)

    def test_numeric_hash_is_an_index(self):
        """A trailing #n is an occurrence index, not a fragment."""
        url = parse_url("Frame/Todo#0")
        assert url.fragment is None
        assert url.segments[-1].index == 0

    def test_document_only(self):
        """A locator without path addresses the document root."""
        url = parse_url("trax://app")
        assert url.is_document_root
        assert url.document_key == ("trax", "app")

    def test_default_scheme_from_settings(self):
        """The default scheme comes from the settings."""
        url = parse_url("Frame", TraxSettings(default_scheme="trax"))
        assert url.scheme == "trax"


class TestInvalidUrls:
    """Tests for malformed locators."""

    @pytest.mark.parametrize(
        "text",
        [
            "Frame /Body",
            "Frame//Body",
            "Frame/Body?x=/y",
            "Frame?mode=a/Body",
            "Frame/1Body",
            'Frame/Todo?title="a/b"',
        ],
    )
    def test_rejected(self, text):
        """Whitespace, empty segments, slashes in queries and bad tags are rejected."""
        with pytest.raises(UrlSyntaxError):
            parse_url(text)
        assert not is_valid_url(text)


class TestTraxUrl:
    """Tests for locator helpers."""

    def test_round_trip_string(self):
        """str() writes the locator back."""
        text = 'trax://app/Frame/Todo?title="milk"'
        assert str(parse_url(text)) == text

    def test_child(self):
        """child() appends a segment and drops query and fragment."""
        url = parse_url("Frame?x=1").child(PathSegment("Body"))
        assert str(url) == "Frame/Body"

    def test_locality(self):
        """Locators without authority are local to any document."""
        document = TraxURL(scheme="trax", authority="app")
        assert parse_url("Frame").is_local_to(document)
        assert parse_url("trax://app/Frame").is_local_to(document)
        assert not parse_url("trax://other/Frame").is_local_to(document)
