"""
PEG grammar of TRAX markup.

TRAX is XML without processing instructions, CDATA, DOCTYPE or entities,
with C-style `/* ... */` comments and with modifiers (valueless, optionally
evaluation-prefixed properties) as a first-class production. The same grammar
parses whole documents and standalone message fragments; the parser decides
how many top-level elements are acceptable.
"""

from parsimonious.grammar import Grammar

from trax.core.xmlchar import TEXT_CHAR, XML_CHAR, XML_START_CHAR

GRAMMAR_SPEC = r"""
nodes       =  item*

item        =  element / comment / chardata

element     =  empty_elem / full_elem
empty_elem  =  "<" name properties _ "/>"
full_elem   =  start_tag content end_tag
content     =  item*
start_tag   =  "<" name properties _ ">"
end_tag     =  "</" name _ ">"

properties  =  (__ property)*
property    =  attribute / modifier
attribute   =  name _ assign _ quoted
modifier    =  name !(_ assign)
assign      =  "?=" / "="
quoted      =  ~r'"[^"<]*"' / ~r"'[^'<]*'"

name        =  ~r"[%(start)s][%(char)s]*"

comment     =  ~r"/\*.*?\*/"s
chardata    =  ~r"(?:(?!/\*)[%(text)s])+"

_           =  ~r"\s*"
__          =  ~r"\s+"
"""

# `content` stops at the first close tag, which belongs to the innermost open
# element; chardata never consumes `<` or `/*`.

trax_grammar = Grammar(
    GRAMMAR_SPEC % {"start": XML_START_CHAR, "char": XML_CHAR, "text": TEXT_CHAR}
)
