"""
=============================================================================
BYTE QUEUES
=============================================================================

The negotiator never touches a socket. Everything it reads comes out of an
input queue, and everything it writes goes into an output queue:

    ┌──────────┐  recv()   ┌─────────────┐  peek/get/consume  ┌────────────┐
    │  socket  │ ────────► │ input queue │ ─────────────────► │ negotiator │
    └──────────┘   feed()  └─────────────┘                    └─────┬──────┘
         ▲                                                          │
         │ sendall()       ┌──────────────┐        write()          │
         └──────────────── │ output queue │ ◄───────────────────────┘
               drain()     └──────────────┘

The input side only ever loses a PREFIX: once a byte has been consumed it is
gone, and nobody will ask for it again. That is what lets a parser stop in the
middle of a line and resume later without re-reading anything.

=============================================================================
"""

from typing import Optional


class ByteQueue:
    """
    Append-at-the-back, consume-from-the-front byte FIFO.

    Backed by a single bytearray plus a read offset, so consuming a few bytes
    at a time does not copy the whole remainder every call. The dead prefix
    is compacted away once it grows past half the buffer.
    """

    def __init__(self, data: bytes = b""):
        self._data = bytearray(data)
        self._pos = 0

    def __len__(self) -> int:
        return len(self._data) - self._pos

    def __repr__(self) -> str:
        return f"<ByteQueue {len(self)} bytes>"

    # =========================================================================
    # PRODUCER SIDE
    # =========================================================================

    def write(self, data: bytes) -> None:
        """Append bytes at the back of the queue."""
        self._data += data

    def drain(self) -> bytes:
        """Remove and return everything currently queued."""
        data = bytes(self._data[self._pos:])
        self.clear()
        return data

    def clear(self) -> None:
        # Zero before releasing: the output side may hold an auth header.
        self._data[:] = bytes(len(self._data))
        self._data.clear()
        self._pos = 0

    # =========================================================================
    # CONSUMER SIDE
    # =========================================================================

    def peek_byte(self) -> Optional[int]:
        """Return the next byte without consuming it, or None if empty."""
        if self._pos >= len(self._data):
            return None
        return self._data[self._pos]

    def get_byte(self) -> Optional[int]:
        """Consume and return the next byte, or None if empty."""
        byte = self.peek_byte()
        if byte is not None:
            self.consume(1)
        return byte

    def consume(self, count: int) -> int:
        """
        Discard up to `count` bytes from the front.

        Returns:
            How many bytes were actually discarded (less than `count` when
            the queue runs dry).
        """
        if count < 0:
            raise ValueError(f"Cannot consume a negative count: {count}")

        taken = min(count, len(self))
        self._pos += taken

        if self._pos == len(self._data):
            self.clear()
        elif self._pos > len(self._data) // 2:
            del self._data[:self._pos]
            self._pos = 0

        return taken
