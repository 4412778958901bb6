"""
=============================================================================
DEFERRED PROMPT BRIDGE
=============================================================================

A bridge whose answers arrive from somewhere else, later: a GUI thread, an
asyncio callback, a test. The negotiator keeps polling; whoever owns the
user interface calls answer() or decline() when the human is done.

    bridge = DeferredPromptBridge()
    negotiator = ProxyNegotiator("example.com", 22, prompt_bridge=bridge)
    ...
    negotiator.process()            # → Outcome.SUSPENDED, bridge.pending set
    show_dialog(bridge.pending, on_ok=bridge.answer, on_cancel=bridge.decline)
    ...
    negotiator.process()            # picks the answer up, resends CONNECT

A lock guards the shared slot, so answer() may be called from any thread.

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional, Sequence, Union

from ..auth.secret import BytesLike
from .base import PromptBridge, PromptRequest, PromptResponse


logger = logging.getLogger(__name__)


class DeferredPromptBridge(PromptBridge):
    """
    Holds at most one outstanding request and the answer to it.

    Attributes:
        on_request: Optional callback invoked from start() with the new
                    request, so a UI can be notified instead of polling.
    """

    def __init__(self, on_request: Optional[Callable[[PromptRequest], None]] = None):
        self.on_request = on_request
        self._lock = threading.Lock()
        self._pending: Optional[PromptRequest] = None
        self._response: Optional[PromptResponse] = None
        self.requests_started = 0

    @property
    def pending(self) -> Optional[PromptRequest]:
        """The request waiting for an answer, if any."""
        with self._lock:
            return self._pending

    def start(self, request: PromptRequest) -> None:
        with self._lock:
            if self._response is not None:
                self._response.wipe()
            self._pending = request
            self._response = None
            self.requests_started += 1

        logger.debug(f"Prompt started: {request.title} ({len(request)} fields)")
        if self.on_request is not None:
            self.on_request(request)

    def poll(self, request: PromptRequest) -> Optional[PromptResponse]:
        with self._lock:
            if request is not self._pending or self._response is None:
                return None
            response = self._response
            self._pending = None
            self._response = None
            return response

    def cancel(self, request: PromptRequest) -> None:
        with self._lock:
            if request is not self._pending:
                return
            if self._response is not None:
                self._response.wipe()
            self._pending = None
            self._response = None
        logger.debug(f"Prompt withdrawn: {request.title}")

    # =========================================================================
    # UI SIDE
    # =========================================================================

    def answer(self, values: Sequence[Union[str, BytesLike]]) -> None:
        """
        Supply one value per field of the pending request.

        Raises:
            RuntimeError: If no request is pending.
            ValueError: If the number of values doesn't match the fields.
        """
        with self._lock:
            if self._pending is None:
                raise RuntimeError("No prompt is pending")
            if len(values) != len(self._pending):
                raise ValueError(
                    f"Expected {len(self._pending)} values, got {len(values)}"
                )
            self._response = PromptResponse(values)

    def decline(self) -> None:
        """Cancel the pending request on behalf of the user."""
        with self._lock:
            if self._pending is None:
                raise RuntimeError("No prompt is pending")
            self._response = PromptResponse.cancel()
