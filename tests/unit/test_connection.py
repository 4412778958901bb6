"""
Tests for the blocking socket driver against a scripted proxy.
"""

import os
import socket
import threading

import pytest

from httptunnel import (
    AuthRequiredButUnavailable,
    DeferredPromptBridge,
    MalformedResponse,
    NegotiationAborted,
    PermanentHttpFailure,
    ProxyConnectionClosed,
    ProxyNegotiator,
    open_tunnel,
)
from httptunnel.core.connection import ConnectionState, ProxyConnection
from httptunnel.core.relay import relay


def recv_exactly(sock: socket.socket, data: bytes, count: int) -> bytes:
    """Keep reading until `count` bytes have been collected."""
    while len(data) < count:
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


class TestOpenTunnel:
    """Tests for open_tunnel()."""

    def test_success(self, fake_proxy, tunnel_config, ok_response):
        """Test a tunnel that opens on the first try."""
        banner = b"SSH-2.0-OpenSSH_9.6\r\n"
        proxy = fake_proxy([ok_response], after=banner)
        tunnel_config.proxy_port = proxy.port

        sock, leftover = open_tunnel(tunnel_config)
        try:
            assert sock.gettimeout() is None
            assert recv_exactly(sock, leftover, len(banner)) == banner
        finally:
            sock.close()

        assert proxy.requests == [
            b"CONNECT example.com:22 HTTP/1.1\r\nHost: example.com:22\r\n\r\n"
        ]

    def test_early_data_in_same_packet(self, fake_proxy, tunnel_config, ok_response):
        """Test that tunnel bytes glued to the response are handed back."""
        proxy = fake_proxy([ok_response + b"hello"])
        tunnel_config.proxy_port = proxy.port

        sock, leftover = open_tunnel(tunnel_config)
        try:
            assert recv_exactly(sock, leftover, 5) == b"hello"
        finally:
            sock.close()

    def test_one_byte_chunks(self, fake_proxy, tunnel_config, auth_required_response, ok_response):
        """Test a proxy that dribbles its answer one byte at a time."""
        proxy = fake_proxy([auth_required_response, ok_response], chunk_size=1)
        tunnel_config.proxy_port = proxy.port
        tunnel_config.username = "user"
        tunnel_config.password = "pass"

        sock, _ = open_tunnel(tunnel_config)
        sock.close()

        assert len(proxy.requests) == 2
        assert b"Proxy-Authorization: Basic dXNlcjpwYXNz\r\n" in proxy.requests[1]

    def test_auth_retry(self, fake_proxy, tunnel_config, auth_required_response, ok_response):
        """Test 407 → retry with configured credentials → 200."""
        proxy = fake_proxy([auth_required_response, ok_response])
        tunnel_config.proxy_port = proxy.port
        tunnel_config.username = "user"
        tunnel_config.password = "pass"

        sock, _ = open_tunnel(tunnel_config)
        sock.close()

        assert b"Proxy-Authorization" not in proxy.requests[0]
        assert b"Proxy-Authorization: Basic dXNlcjpwYXNz\r\n" in proxy.requests[1]

    def test_auth_rejected(self, fake_proxy, tunnel_config, auth_required_response):
        """Test that a second 407 without a prompt is fatal."""
        proxy = fake_proxy([auth_required_response, auth_required_response])
        tunnel_config.proxy_port = proxy.port
        tunnel_config.username = "user"
        tunnel_config.password = "wrong"

        with pytest.raises(AuthRequiredButUnavailable):
            open_tunnel(tunnel_config)

    def test_forbidden(self, fake_proxy, tunnel_config):
        """Test that a 403 surfaces as PermanentHttpFailure."""
        proxy = fake_proxy([b"HTTP/1.1 403 Forbidden\r\nContent-Length: 0\r\n\r\n"])
        tunnel_config.proxy_port = proxy.port

        with pytest.raises(PermanentHttpFailure) as exc_info:
            open_tunnel(tunnel_config)

        assert str(exc_info.value) == "HTTP response 403 Forbidden"

    def test_proxy_hangs_up(self, fake_proxy, tunnel_config):
        """Test that EOF before a complete answer is an error."""
        proxy = fake_proxy([None])
        tunnel_config.proxy_port = proxy.port

        with pytest.raises(ProxyConnectionClosed):
            open_tunnel(tunnel_config)

    def test_interactive_prompt(self, fake_proxy, tunnel_config, auth_required_response, ok_response):
        """Test answering a prompt from another thread while negotiating."""
        proxy = fake_proxy([auth_required_response, ok_response])
        tunnel_config.proxy_port = proxy.port
        tunnel_config.interactive = True

        bridge = DeferredPromptBridge(
            on_request=lambda request: threading.Timer(
                0.05, bridge.answer, args=(["alice", "pw"],)
            ).start()
        )

        sock, _ = open_tunnel(tunnel_config, bridge)
        sock.close()

        assert bridge.requests_started == 1
        assert b"Proxy-Authorization: Basic YWxpY2U6cHc=\r\n" in proxy.requests[1]

    def test_interactive_prompt_declined(self, fake_proxy, tunnel_config, auth_required_response):
        """Test that declining the prompt raises NegotiationAborted."""
        proxy = fake_proxy([auth_required_response])
        tunnel_config.proxy_port = proxy.port
        tunnel_config.interactive = True

        bridge = DeferredPromptBridge()
        bridge.on_request = lambda request: bridge.decline()

        with pytest.raises(NegotiationAborted):
            open_tunnel(tunnel_config, bridge)

    def test_non_interactive_ignores_bridge(self, fake_proxy, tunnel_config, auth_required_response):
        """Test that interactive=False never asks."""
        proxy = fake_proxy([auth_required_response])
        tunnel_config.proxy_port = proxy.port
        bridge = DeferredPromptBridge()

        with pytest.raises(AuthRequiredButUnavailable):
            open_tunnel(tunnel_config, bridge)

        assert bridge.requests_started == 0


class TestProxyConnection:
    """Tests for ProxyConnection state and counters."""

    def test_states_and_counters(self, ok_response):
        client, server = socket.socketpair()
        try:
            server.sendall(ok_response)
            connection = ProxyConnection(socket=client, address=("127.0.0.1", 3128), timeout=5.0)
            negotiator = ProxyNegotiator("example.com", 22)

            assert connection.state is ConnectionState.NEW
            leftover = connection.negotiate(negotiator)

            assert leftover == b""
            assert connection.state is ConnectionState.ESTABLISHED
            assert connection.bytes_received == len(ok_response)
            assert connection.bytes_sent == len(server.recv(4096))

            connection.close()
            connection.close()
            assert connection.state is ConnectionState.CLOSED
        finally:
            server.close()

    def test_failure_closes_negotiator(self):
        """Test that a failed negotiation wipes the negotiator."""
        client, server = socket.socketpair()
        try:
            server.sendall(b"garbage\r\n")
            connection = ProxyConnection(socket=client, address=("127.0.0.1", 3128), timeout=5.0)
            negotiator = ProxyNegotiator("example.com", 22, username="u", password="p")

            with pytest.raises(MalformedResponse):
                connection.negotiate(negotiator)

            assert connection.state is ConnectionState.FAILED
            assert negotiator.closed
            assert not negotiator.credentials.present
        finally:
            client.close()
            server.close()

    def test_timeout(self):
        """Test that a silent proxy times out."""
        client, server = socket.socketpair()
        try:
            connection = ProxyConnection(socket=client, address=("127.0.0.1", 3128), timeout=0.1)

            with pytest.raises(TimeoutError):
                connection.negotiate(ProxyNegotiator("example.com", 22))
        finally:
            client.close()
            server.close()


class TestRelay:
    """Tests for the stdio relay."""

    def test_relay_both_ways(self):
        """Test copying stdin → socket and socket → stdout."""
        local, remote = socket.socketpair()
        stdin_r, stdin_w = os.pipe()
        stdout_r, stdout_w = os.pipe()
        received = []

        def far_end():
            data = b""
            while True:
                chunk = remote.recv(4096)
                if not chunk:
                    break
                data += chunk
            received.append(data)
            remote.sendall(b"world")
            remote.close()

        worker = threading.Thread(target=far_end, daemon=True)
        worker.start()

        os.write(stdin_w, b"hello")
        os.close(stdin_w)
        try:
            relay(local, leftover=b"early:", stdin_fd=stdin_r, stdout_fd=stdout_w)
            worker.join(timeout=5.0)
            os.close(stdout_w)

            output = b""
            while True:
                chunk = os.read(stdout_r, 4096)
                if not chunk:
                    break
                output += chunk
        finally:
            local.close()
            os.close(stdin_r)
            os.close(stdout_r)

        assert received == [b"hello"]
        assert output == b"early:world"
