"""
=============================================================================
SECRET BUFFERS
=============================================================================

Python strings and bytes are immutable: once a password lands in one, it
stays in memory until the garbage collector gets round to it, and even then
nothing overwrites the bytes. A bytearray CAN be overwritten in place, so all
credential material in this package lives in SecretBuffer objects that:

    1. zero their storage before taking a new value   (replace)
    2. zero their storage when explicitly wiped        (wipe)
    3. zero their storage when garbage collected       (__del__)
    4. refuse to be copied or pickled                  (TypeError)
    5. never print their contents                      (__repr__)

To read a secret, borrow a read-only view inside a `with` block:

    with password.view() as data:
        sock.sendall(data)

The view is released on exit, so the buffer can be wiped again afterwards.

=============================================================================
"""

from contextlib import contextmanager
from typing import Iterator, Union


BytesLike = Union[bytes, bytearray, memoryview]


class SecretBuffer:
    """A mutable byte buffer that is zeroed whenever its value goes away."""

    __slots__ = ("_data",)

    def __init__(self, value: BytesLike = b""):
        self._data = bytearray(value)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"<SecretBuffer {len(self._data)} bytes>"

    def __copy__(self):
        raise TypeError("SecretBuffer cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("SecretBuffer cannot be copied")

    def __reduce__(self):
        raise TypeError("SecretBuffer cannot be pickled")

    def __del__(self):
        self.wipe()

    def replace(self, value: BytesLike) -> None:
        """Zero the current contents, then store `value`."""
        self.wipe()
        self._data.extend(value)

    def wipe(self) -> None:
        """Overwrite every byte with zero and empty the buffer."""
        data = getattr(self, "_data", None)
        if data is None:
            return
        data[:] = bytes(len(data))
        data.clear()

    @contextmanager
    def view(self) -> Iterator[memoryview]:
        """Lend a read-only view of the contents for the duration of a block."""
        view = memoryview(self._data).toreadonly()
        try:
            yield view
        finally:
            view.release()

    def extend_into(self, target: bytearray) -> None:
        """Append the contents to `target` without an intermediate copy."""
        target.extend(self._data)


class Credentials:
    """
    Proxy username and password, both held as SecretBuffers.

    Created from configuration (either may be empty) and updated from
    interactive prompts. wipe() is called when negotiation ends, however it
    ends.
    """

    __slots__ = ("username", "password")

    def __init__(self, username: BytesLike = b"", password: BytesLike = b""):
        self.username = SecretBuffer(username)
        self.password = SecretBuffer(password)

    def __repr__(self) -> str:
        return f"<Credentials username={len(self.username)}B password={len(self.password)}B>"

    def __copy__(self):
        raise TypeError("Credentials cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("Credentials cannot be copied")

    def __reduce__(self):
        raise TypeError("Credentials cannot be pickled")

    @property
    def present(self) -> bool:
        """True if at least one of username/password is non-empty."""
        return len(self.username) > 0 or len(self.password) > 0

    def wipe(self) -> None:
        self.username.wipe()
        self.password.wipe()


def to_secret_bytes(value: Union[str, BytesLike, None]) -> bytes:
    """
    Normalise a configured credential to bytes.

    Strings are UTF-8 encoded, the same as what a terminal prompt returns.
    """
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)
