"""
=============================================================================
HTTPTUNNEL - HTTP CONNECT Proxy Negotiation
=============================================================================

Opens raw TCP tunnels through HTTP forward proxies (squid, tinyproxy,
corporate gateways) with the CONNECT method, including proxy Basic
authentication and interactive credential prompts.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      HTTPTUNNEL ARCHITECTURE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. SANS-IO NEGOTIATOR                                             │
    │      - Explicit state machine, resumable at any byte boundary      │
    │      - Composes CONNECT requests, parses the proxy's answer        │
    │      - Retry/auth policy for 407 challenges                        │
    │                                                                      │
    │   2. HTTP PIECES                                                    │
    │      - Line reader with header-folding support                     │
    │      - RFC 2616 header tokenizer                                   │
    │      - Status line parser                                          │
    │                                                                      │
    │   3. CREDENTIALS                                                    │
    │      - Secret buffers, zeroed on replace and on destruction        │
    │      - Basic encoder that never leaves plaintext behind            │
    │                                                                      │
    │   4. PROMPT BRIDGE                                                  │
    │      - Abstract interface for asking a human                       │
    │      - Terminal and deferred (any-thread) implementations          │
    │                                                                      │
    │   5. DRIVERS                                                        │
    │      - Blocking socket driver with early-data handoff              │
    │      - stdin/stdout relay for SSH ProxyCommand use                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httptunnel/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m httptunnel)
    ├── negotiator.py        # ProxyNegotiator state machine
    ├── errors.py            # Negotiation exceptions
    ├── config.py            # TunnelConfig dataclass
    ├── log.py               # Logging setup (text / json)
    ├── core/
    │   ├── buffers.py       # ByteQueue
    │   ├── connection.py    # Blocking socket driver, open_tunnel()
    │   └── relay.py         # stdin/stdout relay
    ├── http/
    │   ├── request.py       # CONNECT request composer
    │   ├── line_reader.py   # Resumable line reader
    │   ├── status_line.py   # Status line parser
    │   └── tokenizer.py     # Header tokenizer
    ├── auth/
    │   ├── secret.py        # SecretBuffer, Credentials
    │   └── basic.py         # Basic scheme encoder
    └── prompts/
        ├── base.py          # PromptBridge ABC, request/response types
        ├── console.py       # Terminal prompts
        └── deferred.py      # Answers supplied later, from any thread

=============================================================================
QUICK START
=============================================================================

    from httptunnel import TunnelConfig, open_tunnel

    sock, early_data = open_tunnel(TunnelConfig(
        proxy_host="squid.internal", proxy_port=3128,
        target_host="example.com", target_port=22,
        username="alice", password="s3cret",
    ))

Or drive the negotiator yourself, from any event loop:

    from httptunnel import ProxyNegotiator, Outcome

    negotiator = ProxyNegotiator("example.com", 22)
    outcome = negotiator.process()
    transport.write(negotiator.drain())
    ...
    def data_received(data):
        negotiator.feed(data)
        outcome = negotiator.process()
        transport.write(negotiator.drain())

=============================================================================
"""

__version__ = "1.0.0"

from .config import TunnelConfig
from .errors import (
    AuthRequiredButUnavailable,
    MalformedResponse,
    NegotiationAborted,
    PermanentHttpFailure,
    ProxyConnectionClosed,
    ProxyNegotiationError,
    UnsupportedAuthScheme,
)
from .negotiator import NegotiatorState, Outcome, ProxyNegotiator
from .core.connection import ProxyConnection, open_tunnel
from .prompts import (
    ConsolePromptBridge,
    DeferredPromptBridge,
    PromptBridge,
    PromptField,
    PromptRequest,
    PromptResponse,
)

__all__ = [
    "__version__",
    "TunnelConfig",
    "ProxyNegotiator",
    "NegotiatorState",
    "Outcome",
    "ProxyConnection",
    "open_tunnel",
    "PromptBridge",
    "PromptField",
    "PromptRequest",
    "PromptResponse",
    "ConsolePromptBridge",
    "DeferredPromptBridge",
    "ProxyNegotiationError",
    "MalformedResponse",
    "UnsupportedAuthScheme",
    "AuthRequiredButUnavailable",
    "PermanentHttpFailure",
    "ProxyConnectionClosed",
    "NegotiationAborted",
]
