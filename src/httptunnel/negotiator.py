"""
=============================================================================
HTTP CONNECT NEGOTIATOR
=============================================================================

Talks a forward proxy into opening a raw TCP tunnel:

    CLIENT                                   PROXY                 TARGET
       │                                       │                      │
       │  CONNECT example.com:22 HTTP/1.1      │                      │
       │ ────────────────────────────────────► │                      │
       │  HTTP/1.1 407 Proxy Auth Required     │                      │
       │ ◄──────────────────────────────────── │                      │
       │  CONNECT ... + Proxy-Authorization    │                      │
       │ ────────────────────────────────────► │ ──── TCP connect ──► │
       │  HTTP/1.1 200 Connection established  │                      │
       │ ◄──────────────────────────────────── │                      │
       │                                       │                      │
       │ ◄══════════════ raw bytes both ways ═════════════════════► │

=============================================================================
SANS-IO STATE MACHINE
=============================================================================

The negotiator never reads or writes a socket. The caller feeds it whatever
bytes have arrived, calls process(), and sends whatever it produced:

    while True:
        sock.sendall(negotiator.drain())
        outcome = negotiator.process()
        sock.sendall(negotiator.drain())
        if outcome is not Outcome.SUSPENDED:
            break
        negotiator.feed(sock.recv(8192))

process() runs until it either reaches a terminal outcome or can't go on
without more input (or without an answer from the prompt bridge), in which
case it returns Outcome.SUSPENDED. Every bit of partial progress (half a
status line, a header waiting to see if the next line folds onto it, body
bytes still to skip) lives in instance fields, so it survives suspension
unchanged and no byte is ever consumed twice.

    INIT
     │
     ▼
    SEND_REQUEST ◄──────────────────────────────┬──────────────────┐
     │                                           │                  │
     ▼                                           │                  │
    AWAIT_STATUS_LINE ──(not HTTP)──► ERROR      │                  │
     │                                           │                  │
     ▼                                           │                  │
    AWAIT_HEADERS ⟲ ──(auth not Basic)──► ERROR  │                  │
     │                                           │                  │
     ▼                                           │                  │
    AWAIT_BODY ⟲                                 │                  │
     │                                           │                  │
     ▼                                           │                  │
    DECIDE ─── 2xx ──► SUCCESS                   │                  │
     │ │                                         │                  │
     │ └─ 407, config creds untried ─────────────┘                  │
     │                                                              │
     ├─ 407, prompt available ──► AWAIT_USER_CREDENTIALS ───────────┘
     │                                  │
     │                                  └── cancelled ──► ABORTED
     │
     └─ anything else ──► ERROR

=============================================================================
AUTHENTICATION POLICY
=============================================================================

1. The first CONNECT never carries credentials, even if we have some.
   If the proxy doesn't need them, it never sees them.
2. On 407, configured credentials get exactly one automatic try.
3. After that, only fresh credentials from the prompt bridge are sent,
   as many times as the user is willing to type them.
4. A 407 on a connection the proxy is about to close is final: a retry
   would go nowhere.

=============================================================================
"""

import logging
import uuid
from enum import Enum
from typing import Callable, Dict, Optional, Union

from .auth.secret import BytesLike, Credentials, to_secret_bytes
from .core.buffers import ByteQueue
from .errors import (
    AuthRequiredButUnavailable,
    MalformedResponse,
    PermanentHttpFailure,
    ProxyNegotiationError,
    UnsupportedAuthScheme,
)
from .http.line_reader import LineReader
from .http.request import write_connect_request
from .http.status_line import ResponseLine, parse_status_line
from .http.tokenizer import HeaderKind, HeaderTokenizer, parse_content_length
from .prompts.base import PromptBridge, PromptRequest


logger = logging.getLogger(__name__)


class NegotiatorState(Enum):
    """Negotiation lifecycle states."""
    INIT = "init"
    SEND_REQUEST = "send_request"
    AWAIT_STATUS_LINE = "await_status_line"
    AWAIT_HEADERS = "await_headers"
    AWAIT_BODY = "await_body"
    DECIDE = "decide"
    AWAIT_USER_CREDENTIALS = "await_user_credentials"
    SUCCESS = "success"              # Tunnel is open
    ABORTED = "aborted"              # User cancelled a prompt
    ERROR = "error"                  # See negotiator.error


class Outcome(Enum):
    """What process() reports back to the caller."""
    SUSPENDED = "suspended"          # Call again when there is more input
    SUCCESS = "success"
    ABORTED = "aborted"
    ERROR = "error"


TERMINAL_OUTCOMES: Dict[NegotiatorState, Outcome] = {
    NegotiatorState.SUCCESS: Outcome.SUCCESS,
    NegotiatorState.ABORTED: Outcome.ABORTED,
    NegotiatorState.ERROR: Outcome.ERROR,
}

PROMPT_TITLE = "HTTP proxy authentication"
USERNAME_LABEL = "Proxy username: "
PASSWORD_LABEL = "Proxy password: "


class ProxyNegotiator:
    """
    One CONNECT negotiation with one proxy.

    Attributes:
        host, port:         Where the tunnel should lead.
        input:              Queue of unconsumed proxy bytes (feed()).
        output:             Queue of bytes to send to the proxy (drain()).
        credentials:        Current username/password, as SecretBuffers.
        prompt_bridge:      How to ask a human for credentials, or None if
                            nobody can be asked.
        id:                 Short identifier used in log lines.
        response:           The last parsed status line.
        content_length:     Declared body length of the current response.
        connection_close:   Whether the proxy will close after this response.
        attempts:           CONNECT requests sent so far.
        error:              The failure, once the outcome is ERROR.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: Union[str, BytesLike, None] = b"",
        password: Union[str, BytesLike, None] = b"",
        prompt_bridge: Optional[PromptBridge] = None,
        input: Optional[ByteQueue] = None,
        output: Optional[ByteQueue] = None,
    ):
        self.host = host
        self.port = port
        self.input = input if input is not None else ByteQueue()
        self.output = output if output is not None else ByteQueue()
        self.credentials = Credentials(to_secret_bytes(username), to_secret_bytes(password))
        self.prompt_bridge = prompt_bridge
        self.id = str(uuid.uuid4())[:8]

        # Per round trip
        self.response: Optional[ResponseLine] = None
        self.content_length = 0
        self.connection_close = False
        self._body_remaining = 0
        self._status_reader = LineReader(folding=False)
        self._header_reader = LineReader(folding=True)

        # Per negotiation
        self.tried_no_auth = False
        self.try_auth_from_config = False
        self.attempts = 0
        self.error: Optional[ProxyNegotiationError] = None

        # Prompt state, only while AWAIT_USER_CREDENTIALS
        self._prompt: Optional[PromptRequest] = None
        self._username_index: Optional[int] = None
        self._password_index: Optional[int] = None

        self._state = NegotiatorState.INIT
        self._running = False
        self._closed = False

        self._handlers: Dict[NegotiatorState, Callable[[], bool]] = {
            NegotiatorState.INIT: self._init,
            NegotiatorState.SEND_REQUEST: self._send_request,
            NegotiatorState.AWAIT_STATUS_LINE: self._await_status_line,
            NegotiatorState.AWAIT_HEADERS: self._await_headers,
            NegotiatorState.AWAIT_BODY: self._await_body,
            NegotiatorState.DECIDE: self._decide,
            NegotiatorState.AWAIT_USER_CREDENTIALS: self._await_user_credentials,
        }

    def __repr__(self) -> str:
        return f"<ProxyNegotiator [{self.id}] {self.host}:{self.port} {self._state.value}>"

    def __enter__(self) -> "ProxyNegotiator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> NegotiatorState:
        return self._state

    @property
    def outcome(self) -> Outcome:
        return TERMINAL_OUTCOMES.get(self._state, Outcome.SUSPENDED)

    @property
    def finished(self) -> bool:
        return self._state in TERMINAL_OUTCOMES

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_prompt(self) -> Optional[PromptRequest]:
        """The prompt we are waiting on, if any."""
        return self._prompt

    # =========================================================================
    # CALLER API
    # =========================================================================

    def feed(self, data: bytes) -> None:
        """Queue bytes received from the proxy."""
        self.input.write(data)

    def drain(self) -> bytes:
        """Take everything waiting to be sent to the proxy."""
        return self.output.drain()

    def process(self) -> Outcome:
        """
        Advance the negotiation as far as current input allows.

        Returns:
            Outcome.SUSPENDED if more input (or a prompt answer) is needed,
            otherwise the terminal outcome. Reaching a terminal outcome
            closes the negotiator, wiping its credentials.

        Raises:
            RuntimeError: If called re-entrantly, or after close() while
                          still unfinished.
        """
        if self._running:
            raise RuntimeError("ProxyNegotiator.process() is not reentrant")
        if self.finished:
            return self.outcome
        if self._closed:
            raise RuntimeError("ProxyNegotiator has been closed")

        self._running = True
        try:
            while not self.finished:
                if not self._handlers[self._state]():
                    return Outcome.SUSPENDED
        except ProxyNegotiationError as e:
            self.error = e
            self._set_state(NegotiatorState.ERROR)
            logger.warning(f"[{self.id}] Negotiation failed: {e}")
        finally:
            self._running = False

        if self._state is NegotiatorState.SUCCESS:
            logger.info(f"[{self.id}] Tunnel to {self.host}:{self.port} established")
        elif self._state is NegotiatorState.ABORTED:
            logger.info(f"[{self.id}] Negotiation aborted by user")

        self.close()
        return self.outcome

    def close(self) -> None:
        """
        Destroy the negotiator: withdraw any outstanding prompt and wipe all
        credential material. Safe to call more than once, and at any point.
        """
        if self._closed:
            return
        self._closed = True

        if self._prompt is not None:
            if self.prompt_bridge is not None:
                self.prompt_bridge.cancel(self._prompt)
            self._discard_prompt()

        self.credentials.wipe()

        if not self.finished:
            # Cancelled mid-negotiation: nothing queued may go out any more
            self.output.clear()
            logger.debug(f"[{self.id}] Closed while in state {self._state.value}")

    # =========================================================================
    # STATE HANDLERS
    # =========================================================================
    # Each returns True to keep going, False to suspend for more input.
    # =========================================================================

    def _init(self) -> bool:
        self.try_auth_from_config = self.credentials.present
        if self.try_auth_from_config:
            logger.debug(f"[{self.id}] Configured credentials available")
        self._set_state(NegotiatorState.SEND_REQUEST)
        return True

    def _send_request(self) -> bool:
        with_auth = self.tried_no_auth and self.credentials.present
        write_connect_request(
            self.output,
            self.host,
            self.port,
            self.credentials if with_auth else None,
        )
        self.tried_no_auth = True
        self.attempts += 1

        logger.info(
            f"[{self.id}] CONNECT {self.host}:{self.port} "
            f"(attempt {self.attempts}, {'with' if with_auth else 'without'} credentials)"
        )

        self.response = None
        self.content_length = 0
        self._set_state(NegotiatorState.AWAIT_STATUS_LINE)
        return True

    def _await_status_line(self) -> bool:
        line = self._status_reader.read_line(self.input)
        if line is None:
            return False

        response = parse_status_line(line)
        if response is None:
            logger.debug(f"[{self.id}] Bad status line: {line[:80]!r}")
            raise MalformedResponse()

        self.response = response
        self.connection_close = response.closes_by_default
        logger.debug(
            f"[{self.id}] HTTP/{response.major}.{response.minor} "
            f"{response.status_text}"
        )
        self._set_state(NegotiatorState.AWAIT_HEADERS)
        return True

    def _await_headers(self) -> bool:
        while True:
            line = self._header_reader.read_line(self.input)
            if line is None:
                return False
            if not line:
                break
            self._process_header(line)

        self._body_remaining = self.content_length
        self._set_state(NegotiatorState.AWAIT_BODY)
        return True

    def _process_header(self, line: bytes) -> None:
        tokens = HeaderTokenizer(line)
        kind = tokens.read_field_name()
        if kind is None:
            logger.debug(f"[{self.id}] Skipping unparsable header line")
            return
        if kind is HeaderKind.UNKNOWN:
            return

        value = tokens.get_token()
        if value is None:
            return

        if kind is HeaderKind.CONTENT_LENGTH:
            self.content_length = parse_content_length(value)
        elif kind is HeaderKind.CONNECTION:
            token = value.lower()
            if token == b"close":
                self.connection_close = True
            elif token == b"keep-alive":
                self.connection_close = False
        elif kind is HeaderKind.PROXY_AUTHENTICATE:
            if value.lower() != b"basic":
                raise UnsupportedAuthScheme(value.decode("latin-1"))

    def _await_body(self) -> bool:
        if self._body_remaining:
            self._body_remaining -= self.input.consume(self._body_remaining)
        if self._body_remaining:
            return False

        self._set_state(NegotiatorState.DECIDE)
        return True

    def _decide(self) -> bool:
        response = self.response
        if response.is_success:
            self._set_state(NegotiatorState.SUCCESS)
            return True

        if response.status_code != 407:
            raise PermanentHttpFailure(response.status_code, response.status_text)

        if self.connection_close:
            raise AuthRequiredButUnavailable(
                "HTTP proxy closed connection after asking for authentication"
            )

        if self.try_auth_from_config:
            self.try_auth_from_config = False
            self._set_state(NegotiatorState.SEND_REQUEST)
            return True

        if self.prompt_bridge is None:
            raise AuthRequiredButUnavailable(
                "HTTP proxy requested authentication which we do not have"
            )

        # The password was just rejected (or never sent), so always ask for
        # it; ask for the username only if we don't have one.
        prompt = PromptRequest(PROMPT_TITLE)
        self._username_index = None
        if not len(self.credentials.username):
            self._username_index = prompt.add(USERNAME_LABEL)
        self._password_index = prompt.add(PASSWORD_LABEL, masked=True)

        self._prompt = prompt
        logger.debug(f"[{self.id}] Asking {self.prompt_bridge.name} for credentials")
        self.prompt_bridge.start(prompt)
        self._set_state(NegotiatorState.AWAIT_USER_CREDENTIALS)
        return True

    def _await_user_credentials(self) -> bool:
        reply = self.prompt_bridge.poll(self._prompt)
        if reply is None:
            return False

        if not reply.cancelled and len(reply.values) != len(self._prompt):
            expected = len(self._prompt)
            reply.wipe()
            self.close()
            raise ValueError(
                f"Prompt bridge returned {len(reply.values)} values for {expected} fields"
            )

        try:
            if reply.cancelled:
                self._set_state(NegotiatorState.ABORTED)
                return True

            if self._username_index is not None:
                with reply.values[self._username_index].view() as value:
                    self.credentials.username.replace(value)
            with reply.values[self._password_index].view() as value:
                self.credentials.password.replace(value)
        finally:
            reply.wipe()
            self._discard_prompt()

        self._set_state(NegotiatorState.SEND_REQUEST)
        return True

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _discard_prompt(self) -> None:
        self._prompt = None
        self._username_index = None
        self._password_index = None

    def _set_state(self, state: NegotiatorState) -> None:
        logger.debug(f"[{self.id}] {self._state.value} → {state.value}")
        self._state = state
