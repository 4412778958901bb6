"""
=============================================================================
HTTP BASIC AUTHENTICATION (RFC 7617)
=============================================================================

    Proxy-Authorization: Basic dXNlcjpwYXNz
                         ──┬── ─────┬──────
                           │        │
                         scheme   base64("user" ":" "pass")

=============================================================================
WHY NOT base64.b64encode()?
=============================================================================

b64encode() takes and returns immutable bytes. Both the "user:pass"
plaintext and the encoded header would then sit in memory until garbage
collection with no way to scrub them. Here the plaintext is assembled in a
bytearray, encoded three bytes at a time straight into the caller's output
buffer, and then zeroed together with the per-group scratch space.

    "user:pass"  →  [u s e] [r : p] [a s s]
                       │       │       │
                       ▼       ▼       ▼
                     dXNl    cjpw    YXNz      (4 chars per 3 bytes)

A final group of 1 or 2 bytes is padded with '=' to 4 characters:

    1 byte  → XX==
    2 bytes → XXX=

=============================================================================
"""

from .secret import SecretBuffer


ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
PAD = ord("=")


def encode_atom(group: bytearray, out: bytearray) -> None:
    """
    Encode one group of 1-3 bytes as 4 Base64 characters into `out`.

    `out` must have room for 4 bytes; it is overwritten, not appended to.
    """
    n = len(group)
    word = group[0] << 16
    if n > 1:
        word |= group[1] << 8
    if n > 2:
        word |= group[2]

    out[0] = ALPHABET[(word >> 18) & 0x3F]
    out[1] = ALPHABET[(word >> 12) & 0x3F]
    out[2] = ALPHABET[(word >> 6) & 0x3F] if n > 1 else PAD
    out[3] = ALPHABET[word & 0x3F] if n > 2 else PAD


def base64_encode_into(data: bytearray, out: bytearray) -> None:
    """Append the standard Base64 encoding of `data` to `out`."""
    group = bytearray(3)
    atom = bytearray(4)
    try:
        for i in range(0, len(data), 3):
            chunk = data[i:i + 3]
            group[:] = chunk
            chunk[:] = bytes(len(chunk))
            encode_atom(group, atom)
            out.extend(atom)
    finally:
        group[:] = bytes(len(group))
        atom[:] = bytes(len(atom))


def write_basic_credentials(
    username: SecretBuffer,
    password: SecretBuffer,
    out: bytearray,
) -> None:
    """
    Append base64(username ":" password) to `out`.

    The joined plaintext only ever exists in a scratch bytearray that is
    zeroed before returning.
    """
    plaintext = bytearray()
    try:
        username.extend_into(plaintext)
        plaintext.append(ord(":"))
        password.extend_into(plaintext)
        base64_encode_into(plaintext, out)
    finally:
        plaintext[:] = bytes(len(plaintext))


def basic_authorization_header(username: SecretBuffer, password: SecretBuffer) -> bytearray:
    """
    Build a complete `Proxy-Authorization: Basic ...\\r\\n` header line.

    Returned as a bytearray so the caller can zero it once it has been
    written out.
    """
    header = bytearray(b"Proxy-Authorization: Basic ")
    write_basic_credentials(username, password, header)
    header += b"\r\n"
    return header
