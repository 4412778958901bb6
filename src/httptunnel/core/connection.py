"""
=============================================================================
PROXY CONNECTION (BLOCKING SOCKET DRIVER)
=============================================================================

The negotiator is sans-IO: it only consumes and produces bytes. This module
is the glue that moves those bytes over a real, blocking TCP socket.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

The proxy's answer may arrive in any chunking at all:

    recv() → "HTTP/1.1 407 Pro"
    recv() → "xy Authentication Required\\r\\nProxy-Authenticate: Ba"
    recv() → "sic realm=\\"squid\\"\\r\\nContent-Length: 0\\r\\n\\r\\n"

We never try to find message boundaries here. Each chunk is fed to the
negotiator as it comes; the negotiator knows how far it got.

=============================================================================
DRIVE LOOP
=============================================================================

    ┌──────────────────────────┐
    │ send pending output      │ ◄──────────────────────┐
    └────────────┬─────────────┘                        │
                 ▼                                      │
    ┌──────────────────────────┐                        │
    │ outcome = process()      │                        │
    │ send pending output      │                        │
    └────────────┬─────────────┘                        │
                 │                                      │
        terminal?├── yes ──► return / raise             │
                 │                                      │
   prompt pending├── yes ──► wait a moment ─────────────┤
                 │                                      │
                 ▼                                      │
    ┌──────────────────────────┐                        │
    │ recv() → feed()          │ ── EOF? raise ─────────┤
    └──────────────────────────┘                        │
                 └──────────────────────────────────────┘

=============================================================================
EARLY TUNNEL DATA
=============================================================================

A recv() may return the end of the proxy's response AND the first bytes
from the target (an SSH server speaks first, for instance). The negotiator
only consumes what belongs to the proxy; whatever is left in its input queue
afterwards is tunnel data, and negotiate() hands it back to the caller.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..config import TunnelConfig
from ..errors import NegotiationAborted, ProxyConnectionClosed
from ..negotiator import Outcome, ProxyNegotiator
from ..prompts.base import PromptBridge


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"                  # Connected to the proxy, nothing sent yet
    NEGOTIATING = "negotiating"  # CONNECT exchange in progress
    ESTABLISHED = "established"  # Tunnel open, raw bytes from here on
    FAILED = "failed"            # Negotiation failed or was aborted
    CLOSED = "closed"            # Socket released


@dataclass
class ProxyConnection:
    """
    A TCP connection to an HTTP proxy.

    Attributes:
        socket: Connected socket to the proxy.
        address: Proxy (host, port), for logging.
        id: Short identifier for log lines.
        state: Current connection state.
        buffer_size: Bytes per recv().
        timeout: Socket timeout in seconds (None = blocking).
        prompt_poll_interval: How long to wait between polls while a
                              credential prompt is outstanding.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0
    bytes_received: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    prompt_poll_interval: float = 0.05

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # NEGOTIATION
    # =========================================================================

    def negotiate(self, negotiator: ProxyNegotiator) -> bytes:
        """
        Run `negotiator` to completion over this connection.

        Returns:
            Bytes received after the proxy's final response (early tunnel
            data), possibly empty.

        Raises:
            ProxyNegotiationError: The proxy refused, or its answer made no
                                   sense, or it hung up (ProxyConnectionClosed).
            NegotiationAborted: The user cancelled a credential prompt.
            TimeoutError: The proxy went quiet for longer than `timeout`.
        """
        self.state = ConnectionState.NEGOTIATING
        logger.debug(f"[{self.id}] Negotiating with proxy {self.address[0]}:{self.address[1]}")

        try:
            while True:
                self._flush(negotiator)
                outcome = negotiator.process()
                self._flush(negotiator)

                if outcome is Outcome.SUCCESS:
                    self.state = ConnectionState.ESTABLISHED
                    return negotiator.input.drain()
                if outcome is Outcome.ERROR:
                    raise negotiator.error
                if outcome is Outcome.ABORTED:
                    raise NegotiationAborted()

                if negotiator.pending_prompt is not None:
                    time.sleep(self.prompt_poll_interval)
                    continue

                chunk = self._recv()
                if not chunk:
                    raise ProxyConnectionClosed()
                negotiator.feed(chunk)
        except BaseException:
            self.state = ConnectionState.FAILED
            negotiator.close()
            raise

    # =========================================================================
    # I/O
    # =========================================================================

    def _flush(self, negotiator: ProxyNegotiator) -> None:
        data = negotiator.drain()
        if not data:
            return
        try:
            self.socket.sendall(data)
        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            raise ProxyConnectionClosed() from e
        self.bytes_sent += len(data)

    def _recv(self) -> bytes:
        """
        Receive one chunk from the proxy.

        Returns:
            Received bytes, or empty bytes if the proxy closed the connection.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise TimeoutError("Timed out waiting for the proxy to respond")
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.bytes_received += len(data)
        return data

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self.state is ConnectionState.CLOSED:
            return
        try:
            self.socket.close()
        except OSError:
            pass
        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed (sent {self.bytes_sent}B, received {self.bytes_received}B)"
        )


def open_tunnel(
    config: TunnelConfig,
    prompt_bridge: Optional[PromptBridge] = None,
) -> Tuple[socket.socket, bytes]:
    """
    Connect to the configured proxy and negotiate a tunnel to the target.

    Args:
        config: Proxy, target, credentials and socket settings.
        prompt_bridge: Where to ask for credentials. Ignored when
                       config.interactive is False.

    Returns:
        (socket, leftover): the tunnelled socket, switched to blocking mode,
        and any tunnel bytes that arrived together with the proxy's answer.
        On failure the socket is closed and the exception propagates.
    """
    config.validate()

    address = (config.proxy_host, config.proxy_port)
    logger.info(
        f"Connecting to proxy {address[0]}:{address[1]} "
        f"for {config.target_host}:{config.target_port}"
    )
    sock = socket.create_connection(address, timeout=config.timeout)

    connection = ProxyConnection(
        socket=sock,
        address=address,
        buffer_size=config.buffer_size,
        timeout=config.timeout,
    )
    negotiator = ProxyNegotiator(
        config.target_host,
        config.target_port,
        username=config.username,
        password=config.password,
        prompt_bridge=prompt_bridge if config.interactive else None,
    )

    try:
        leftover = connection.negotiate(negotiator)
    except BaseException:
        connection.close()
        raise

    sock.settimeout(None)
    return sock, leftover
