"""
=============================================================================
HTTP PROTOCOL PIECES
=============================================================================

Just enough HTTP/1.x to speak CONNECT to a proxy and understand its answer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       write_connect_request()                            │
    │                  CONNECT host:port HTTP/1.1 + Host (+ auth) + CRLF  │
    ├─────────────────────────────────────────────────────────────────────┤
    │ line_reader.py   LineReader                                         │
    │                  bytes → lines, resumable, optional header folding  │
    ├─────────────────────────────────────────────────────────────────────┤
    │ status_line.py   parse_status_line() → ResponseLine                 │
    │                  "HTTP/1.1 407 Proxy Authentication Required"       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ tokenizer.py     HeaderTokenizer, HeaderKind                        │
    │                  "Proxy-Authenticate: Basic realm=x" → tokens       │
    └─────────────────────────────────────────────────────────────────────┘

Deliberately missing: chunked transfer-encoding, redirects, caching,
connection reuse. A CONNECT exchange needs none of them.

=============================================================================
"""

from .line_reader import LineReader
from .request import format_authority, write_connect_request
from .status_line import ResponseLine, parse_status_line
from .tokenizer import (
    HEADER_KINDS,
    HeaderKind,
    HeaderTokenizer,
    lookup_header_kind,
    parse_content_length,
)

__all__ = [
    # Line assembly
    "LineReader",

    # Request
    "format_authority",
    "write_connect_request",

    # Status line
    "ResponseLine",
    "parse_status_line",

    # Headers
    "HEADER_KINDS",
    "HeaderKind",
    "HeaderTokenizer",
    "lookup_header_kind",
    "parse_content_length",
]
