"""
Character classes for TRAX names.

Names follow the XML NameStartChar / NameChar productions
(http://www.w3.org/TR/REC-xml/#NT-NameStartChar). The patterns below are
meant to be placed inside `[...]` in a regex. Colon is allowed in names and
separates an optional prefix from the local part (`let:title`).
"""

import re

XML_START_CHAR = (
    r":_A-Za-z\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u02FF\u0370-\u037D\u037F-\u1FFF"
    r"\u200C-\u200D\u2070-\u218F\u2C00-\u2FEF\u3001-\uD7FF\uF900-\uFDCF"
    r"\uFDF0-\uFFFD\U00010000-\U000EFFFF"
)

# human-readable:  XML_START_CHAR | [0-9.\u00B7-] | [\u0300-\u036F] | [\u203F-\u2040]
XML_CHAR = XML_START_CHAR + r"0-9\.\-" + r"\u00B7\u0300-\u036F\u203F-\u2040"

NAME_PATTERN = f"[{XML_START_CHAR}][{XML_CHAR}]*"
NAME_RE = re.compile(f"^{NAME_PATTERN}$")

# XML Char production without `<`, which TRAX reserves in character data
TEXT_CHAR = r"\t\n\r\x20-\x3B\x3D-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF"


def is_valid_name(name: str) -> bool:
    """Check whether `name` is a well-formed TRAX name."""
    return bool(NAME_RE.match(name))


def split_name(name: str) -> tuple[str, str]:
    """
    Split a qualified name into prefix and local part.

    Params:
        name: Qualified name such as `class:Todo` or `Body`

    Returns:
        (prefix, local) where prefix is "" for unprefixed names
    """
    prefix, sep, local = name.partition(":")
    if not sep:
        return "", name
    return prefix, local
