"""
=============================================================================
NEGOTIATION ERRORS
=============================================================================

    ProxyNegotiationError                  (base: negotiation cannot succeed)
    ├── MalformedResponse                  status line isn't HTTP
    ├── UnsupportedAuthScheme              proxy wants something but Basic
    ├── AuthRequiredButUnavailable         407 and no way left to answer it
    └── PermanentHttpFailure               any status but 2xx / 407

    ProxyConnectionClosed                  proxy hung up mid-negotiation
    NegotiationAborted                     the user cancelled a prompt

Inside the negotiator these are raised by the step handlers and caught at
the process() boundary, which turns them into Outcome.ERROR. The socket
driver re-raises them so blocking callers get ordinary exceptions.

Recoverable problems (a header line we can't parse, a Content-Length that
isn't a number) never become exceptions at all; they are logged and skipped.

=============================================================================
"""

from typing import Optional


class ProxyNegotiationError(Exception):
    """
    Raised when CONNECT negotiation fails for good.

    The message is meant for humans: it is what the CLI prints and what
    callers should show to the user.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code  # Proxy status, when there was one


class MalformedResponse(ProxyNegotiationError):
    def __init__(self):
        super().__init__("HTTP response was absent or malformed")


class UnsupportedAuthScheme(ProxyNegotiationError):
    def __init__(self, scheme: str):
        super().__init__(
            f"HTTP proxy asked for unsupported authentication type '{scheme}'",
            status_code=407,
        )
        self.scheme = scheme


class AuthRequiredButUnavailable(ProxyNegotiationError):
    """
    407 with no retry path left: the proxy is closing the connection,
    or we have nothing more to offer and nobody to ask.
    """

    def __init__(self, message: str):
        super().__init__(message, status_code=407)


class PermanentHttpFailure(ProxyNegotiationError):
    def __init__(self, status_code: int, status_text: str):
        super().__init__(f"HTTP response {status_text}", status_code=status_code)


class ProxyConnectionClosed(ProxyNegotiationError):
    def __init__(self):
        super().__init__("HTTP proxy closed the connection during negotiation")


class NegotiationAborted(Exception):
    """The interactive party declined to supply credentials. Not an error."""
