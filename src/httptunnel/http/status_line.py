"""
=============================================================================
STATUS LINE PARSER
=============================================================================

    HTTP/1.1 407 Proxy Authentication Required
    ───┬──── ─┬─ ────────────┬────────────────
       │      │              │
    Version  Status       Reason phrase
    (major.minor)         (free text, may be empty)

The proxy's status line is the first thing we read after sending CONNECT.
If it doesn't look like this, the peer is not an HTTP proxy (or it is
seriously broken) and negotiation cannot go on.

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import Optional


# Compiled once. The status code is exactly three digits, followed by the
# end of line or whitespace and a reason phrase.
STATUS_LINE_PATTERN = re.compile(
    rb"^HTTP/(\d+)\.(\d+)[ \t]+(\d{3})(?:[ \t]+(.*)|[ \t]*)$",
    re.DOTALL,
)


@dataclass(frozen=True)
class ResponseLine:
    """
    A successfully parsed status line.

    Attributes:
        major, minor:   Protocol version numbers.
        status_code:    Three-digit status.
        status_offset:  Where the status code starts in the raw line; the
                        text from here on ("407 Proxy ...") is what error
                        messages quote.
        raw:            The line as received, without its line ending.
    """

    major: int
    minor: int
    status_code: int
    status_offset: int
    raw: bytes

    @property
    def reason(self) -> str:
        """The reason phrase after the status code (may be empty)."""
        return self.raw[self.status_offset + 3:].strip().decode("latin-1")

    @property
    def status_text(self) -> str:
        """Status code and reason phrase, e.g. '403 Forbidden'."""
        return self.raw[self.status_offset:].strip().decode("latin-1")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def closes_by_default(self) -> bool:
        """
        Whether the connection closes after this response unless a
        Connection header says otherwise.

        Before HTTP/1.1, connections close by default.
        """
        return self.major < 1 or (self.major == 1 and self.minor < 1)


def parse_status_line(line: bytes) -> Optional[ResponseLine]:
    """
    Parse an HTTP status line.

    Returns:
        A ResponseLine, or None if the line does not match
        `HTTP/<major>.<minor> <3-digit-status> [reason]`.
    """
    match = STATUS_LINE_PATTERN.match(line)
    if not match:
        return None

    return ResponseLine(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        status_code=int(match.group(3)),
        status_offset=match.start(3),
        raw=line,
    )
