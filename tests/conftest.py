"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httptunnel import ProxyNegotiator, TunnelConfig


TARGET_HOST = "example.com"
TARGET_PORT = 22


@pytest.fixture
def ok_response() -> bytes:
    """Bare 200 from a proxy, no headers."""
    return b"HTTP/1.1 200 Connection established\r\n\r\n"


@pytest.fixture
def auth_required_response() -> bytes:
    """407 asking for Basic auth on a keep-alive connection."""
    body = b"<html><body>Proxy authentication required</body></html>"
    return (
        b"HTTP/1.1 407 Proxy Authentication Required\r\n"
        b"Proxy-Authenticate: Basic realm=\"squid\"\r\n"
        b"Connection: keep-alive\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def negotiator() -> Generator[ProxyNegotiator, None, None]:
    """Negotiator for example.com:22 with no credentials and no prompts."""
    neg = ProxyNegotiator(TARGET_HOST, TARGET_PORT)
    yield neg
    neg.close()


def read_request(conn: socket.socket) -> bytes:
    """Read one CONNECT request (headers only, they have no body)."""
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = conn.recv(4096)
        if not chunk:
            return b""
        data += chunk
    return data


class FakeProxy:
    """
    Scripted HTTP proxy running in a background thread.

    For each entry in `responses` it reads one request and sends the entry
    back (or hangs up, if the entry is None). After the last response it
    sends `after` (tunnel data) and waits for the client to close.
    """

    def __init__(self, responses: List[Optional[bytes]], after: bytes = b"",
                 chunk_size: Optional[int] = None):
        self.responses = responses
        self.after = after
        self.chunk_size = chunk_size
        self.requests: List[bytes] = []

        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(1)
        self._sock.settimeout(5.0)
        self.port = self._sock.getsockname()[1]
        self._thread: threading.Thread = None

    def start(self) -> "FakeProxy":
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()
        return self

    def _send(self, conn: socket.socket, data: bytes) -> None:
        if not self.chunk_size:
            conn.sendall(data)
            return
        for i in range(0, len(data), self.chunk_size):
            conn.sendall(data[i:i + self.chunk_size])

    def _serve(self) -> None:
        try:
            conn, _ = self._sock.accept()
        except OSError:
            return

        with conn:
            conn.settimeout(5.0)
            try:
                for response in self.responses:
                    request = read_request(conn)
                    if not request:
                        return
                    self.requests.append(request)
                    if response is None:
                        return
                    self._send(conn, response)

                if self.after:
                    conn.sendall(self.after)

                while conn.recv(4096):
                    pass
            except OSError:
                pass

    def stop(self) -> None:
        self._sock.close()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def fake_proxy() -> Generator:
    """Factory fixture: fake_proxy([responses...]) starts a FakeProxy."""
    proxies: List[FakeProxy] = []

    def make(responses: List[Optional[bytes]], **kwargs) -> FakeProxy:
        proxy = FakeProxy(responses, **kwargs).start()
        proxies.append(proxy)
        return proxy

    yield make

    for proxy in proxies:
        proxy.stop()


@pytest.fixture
def tunnel_config() -> TunnelConfig:
    """Config pointing at a fake proxy; tests fill in proxy_port."""
    return TunnelConfig(
        proxy_host="127.0.0.1",
        proxy_port=1,
        target_host=TARGET_HOST,
        target_port=TARGET_PORT,
        timeout=5.0,
        interactive=False,
    )
