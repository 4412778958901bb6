"""
=============================================================================
CONNECT REQUEST COMPOSER
=============================================================================

    CONNECT example.com:443 HTTP/1.1\\r\\n        ← request line
    Host: example.com:443\\r\\n                   ← required by HTTP/1.1
    Proxy-Authorization: Basic dXNlcjpwYXNz\\r\\n ← only on retries
    \\r\\n                                        ← end of request

There is no body and no other header: a CONNECT request only has to tell
the proxy where to dial, and (maybe) who we are.

=============================================================================
"""

from typing import Optional

from ..auth.basic import basic_authorization_header
from ..auth.secret import Credentials
from ..core.buffers import ByteQueue


def format_authority(host: str, port: int) -> bytes:
    """
    Render `host:port` for the request line and Host header.

    IPv6 literals are bracketed ("[::1]:22"), as RFC 3986 requires;
    internationalised names are IDNA-encoded; everything else is used as
    given.
    """
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    encoded = host.encode("ascii") if host.isascii() else host.encode("idna")
    return encoded + b":" + str(port).encode("ascii")


def write_connect_request(
    out: ByteQueue,
    host: str,
    port: int,
    credentials: Optional[Credentials] = None,
) -> bool:
    """
    Append a complete CONNECT request to `out`.

    Args:
        out: Output queue the transport will flush.
        host: Destination host.
        port: Destination port.
        credentials: When given and non-empty, a Basic Proxy-Authorization
                     header is included.

    Returns:
        True if an authorization header was written.
    """
    authority = format_authority(host, port)

    out.write(b"CONNECT " + authority + b" HTTP/1.1\r\n")
    out.write(b"Host: " + authority + b"\r\n")

    authorized = False
    if credentials is not None and credentials.present:
        header = basic_authorization_header(credentials.username, credentials.password)
        try:
            out.write(header)
        finally:
            header[:] = bytes(len(header))
        authorized = True

    out.write(b"\r\n")
    return authorized
