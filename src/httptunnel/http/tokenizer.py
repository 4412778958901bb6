"""
=============================================================================
HEADER TOKENIZER
=============================================================================

Splits one (possibly folded) header line into a field name and tokens,
following the RFC 2616 token grammar:

    token      = 1*<any CHAR except CTLs or separators>
    separators = "(" | ")" | "<" | ">" | "@"
               | "," | ";" | ":" | "\\" | <">
               | "/" | "[" | "]" | "?" | "="
               | "{" | "}" | SP | HT

Example:

    b"Proxy-Authenticate:  Basic realm=\\"squid\\""
      ─────────┬──────── ┬  ──┬── ──┬── ┬
               │         │    │     │   └── separator '='
             token      ':'  token token
                              "Basic" "realm"

We only ever need the FIRST token after the colon, which keeps this far
simpler than a full header-value parser. Anything we cannot make sense of is
skipped, never fatal: proxies send all sorts of odd headers.

=============================================================================
"""

from enum import Enum
from typing import Dict, Optional


# Folded lines still contain their CR LF, so both count as whitespace here.
WHITESPACE = frozenset(b" \t\r\n")
SEPARATORS = frozenset(b'()<>@,;:\\"/[]?={}')


class HeaderKind(Enum):
    """The response headers the negotiator acts on."""
    CONNECTION = "Connection"
    CONTENT_LENGTH = "Content-Length"
    PROXY_AUTHENTICATE = "Proxy-Authenticate"
    UNKNOWN = "unknown"


# Lowercased field name → kind. Built once at import time.
HEADER_KINDS: Dict[bytes, HeaderKind] = {
    kind.value.lower().encode("ascii"): kind
    for kind in HeaderKind
    if kind is not HeaderKind.UNKNOWN
}


def lookup_header_kind(name: bytes) -> HeaderKind:
    """Case-insensitive field name lookup; unknown names map to UNKNOWN."""
    return HEADER_KINDS.get(name.lower(), HeaderKind.UNKNOWN)


class HeaderTokenizer:
    """
    Cursor over one raw header line.

    Each successful get_token()/get_separator() moves the cursor forward;
    a failed call leaves it where it was.
    """

    def __init__(self, line: bytes):
        self.line = line
        self.pos = 0

    def _skip_whitespace(self) -> int:
        pos = self.pos
        while pos < len(self.line) and self.line[pos] in WHITESPACE:
            pos += 1
        return pos

    def get_token(self) -> Optional[bytes]:
        """
        Return the next token, or None at end of line or if the next
        non-whitespace byte is a separator.
        """
        pos = self._skip_whitespace()
        if pos == len(self.line) or self.line[pos] in SEPARATORS:
            return None

        start = pos
        while (pos < len(self.line)
               and self.line[pos] not in WHITESPACE
               and self.line[pos] not in SEPARATORS):
            pos += 1

        self.pos = pos
        return self.line[start:pos]

    def get_separator(self, sep: str) -> bool:
        """Consume separator `sep` if it is the next non-whitespace byte."""
        pos = self._skip_whitespace()
        if pos == len(self.line) or self.line[pos] != ord(sep):
            return False

        self.pos = pos + 1
        return True

    def read_field_name(self) -> Optional[HeaderKind]:
        """
        Read `name ":"` from the start of the line.

        Returns:
            The header kind, or None when the line has no leading token or
            no colon after it (the caller skips such lines).
        """
        name = self.get_token()
        if name is None:
            return None

        kind = lookup_header_kind(name)
        if not self.get_separator(":"):
            return None
        return kind


def parse_content_length(token: bytes) -> int:
    """
    Parse a Content-Length token as an unsigned decimal number.

    Reads the leading run of digits; a token with no
    leading digits is treated as 0 rather than rejected.
    """
    end = 0
    while end < len(token) and 0x30 <= token[end] <= 0x39:
        end += 1
    return int(token[:end]) if end else 0
