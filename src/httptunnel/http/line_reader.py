"""
=============================================================================
RESUMABLE LINE READER
=============================================================================

Reassembles a byte stream into logical lines, one byte at a time, without
ever needing the same byte twice.

=============================================================================
TWO MODES
=============================================================================

PLAIN (status line):

    Every byte is consumed as soon as it is seen. The line is done the moment
    a newline is appended.

        H T T P / 1 . 1   2 0 0   O K \r \n
                                          ▲
                                          └── complete here

HEADER FOLDING (header block):

    A newline does NOT finish a header on its own. An obsolete HTTP/1.x rule
    says a line starting with space or tab continues the previous header, so
    we have to look at the byte AFTER the newline first:

        X-Long: first part\r\n
        ····second part\r\n         ← starts with SP: same logical header
        Content-Length: 0\r\n       ← starts with 'C': previous one is done
        ▲
        └── peeked, NOT consumed; it belongs to the next line

    If there is no next byte yet, we simply report "need more input" and keep
    everything accumulated so far.

The terminating blank line is the one exception: nothing can fold onto it,
so it completes without peeking. Otherwise a proxy that answers
"HTTP/1.1 200 OK\\r\\n\\r\\n" and then waits for us to talk would stall us.

=============================================================================
"""

from typing import Optional

from ..core.buffers import ByteQueue


NEWLINE = 0x0A
CARRIAGE_RETURN = 0x0D
FOLD_BYTES = (0x20, 0x09)  # SP, HTAB


class LineReader:
    """
    Accumulates one logical line across any number of read_line() calls.

    Attributes:
        folding: True for header-folding mode, False for plain lines.
    """

    def __init__(self, folding: bool = False):
        self.folding = folding
        self._line = bytearray()

    @property
    def pending(self) -> bytes:
        """The partial line accumulated so far (for logging and tests)."""
        return bytes(self._line)

    def reset(self) -> None:
        self._line.clear()

    def read_line(self, queue: ByteQueue) -> Optional[bytes]:
        """
        Try to complete a line from the bytes currently in `queue`.

        Returns:
            The completed line with one trailing LF and then one trailing CR
            stripped, or None if more input is needed. Partial progress is
            kept inside the reader either way.
        """
        while True:
            if self.folding and self._ends_with_newline():
                if self._is_blank():
                    return self._finish()

                # Peek only: a non-fold byte stays for the next line
                nxt = queue.peek_byte()
                if nxt is None:
                    return None
                if nxt not in FOLD_BYTES:
                    return self._finish()

            byte = queue.get_byte()
            if byte is None:
                return None
            self._line.append(byte)

            if not self.folding and byte == NEWLINE:
                return self._finish()

    def _ends_with_newline(self) -> bool:
        return len(self._line) > 0 and self._line[-1] == NEWLINE

    def _is_blank(self) -> bool:
        return self._line in (b"\n", b"\r\n")

    def _finish(self) -> bytes:
        line = self._line
        if line and line[-1] == NEWLINE:
            del line[-1]
        if line and line[-1] == CARRIAGE_RETURN:
            del line[-1]

        result = bytes(line)
        self._line = bytearray()
        return result
