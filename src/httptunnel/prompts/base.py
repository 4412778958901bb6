"""
=============================================================================
PROMPT BRIDGE
=============================================================================

When the proxy rejects what we have, the negotiator may need to ask a human
for a username and/or password. HOW that question gets asked (a terminal, a
GUI dialog, a web form, a test script) is none of its business. It only
speaks to this interface.

=============================================================================
THE CONTRACT
=============================================================================

    negotiator                       bridge                     human
        │                              │                          │
        │── start(request) ──────────► │ ── show prompt ────────► │
        │                              │                          │
        │── poll(request) ───────────► │                          │
        │◄──────────── None ───────────│   (still typing...)      │
        │    ...suspend, resume...     │                          │
        │── poll(request) ───────────► │ ◄──────── answers ───────│
        │◄──── PromptResponse ─────────│                          │

    start() is called exactly once per request. poll() may be called any
    number of times afterwards and must not re-ask. A response is either
    filled in (one value per field, same order) or a cancellation.

    If the negotiator is torn down while a prompt is still out, it calls
    cancel() so the bridge can take the dialog down again.

=============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from ..auth.secret import BytesLike, SecretBuffer


@dataclass(frozen=True)
class PromptField:
    """One question: its label and whether the answer should be hidden."""
    label: str
    masked: bool = False


@dataclass
class PromptRequest:
    """
    An ordered list of fields to fill in.

    Indices are stable: response.values[i] answers fields[i].
    """
    title: str
    fields: List[PromptField] = field(default_factory=list)

    def add(self, label: str, masked: bool = False) -> int:
        """Append a field and return its index."""
        self.fields.append(PromptField(label, masked))
        return len(self.fields) - 1

    def __len__(self) -> int:
        return len(self.fields)


class PromptResponse:
    """
    Answers to a PromptRequest, or a cancellation.

    Values are held in SecretBuffers and wiped by the consumer once it has
    copied them where they belong.
    """

    def __init__(self, values: Sequence[Union[str, BytesLike]] = (), cancelled: bool = False):
        self.cancelled = cancelled
        self.values: List[SecretBuffer] = [
            SecretBuffer(v.encode("utf-8") if isinstance(v, str) else v)
            for v in values
        ]

    @classmethod
    def cancel(cls) -> "PromptResponse":
        return cls(cancelled=True)

    def __repr__(self) -> str:
        if self.cancelled:
            return "<PromptResponse cancelled>"
        return f"<PromptResponse {len(self.values)} values>"

    def wipe(self) -> None:
        for value in self.values:
            value.wipe()


class PromptBridge(ABC):
    """
    Abstract interactive credential source.

    Subclasses implement start() and poll(); cancel() is optional.
    """

    @abstractmethod
    def start(self, request: PromptRequest) -> None:
        """Begin asking. Called once per request."""
        pass

    @abstractmethod
    def poll(self, request: PromptRequest) -> Optional[PromptResponse]:
        """
        Check on a request previously passed to start().

        Returns:
            None while the answer is pending, otherwise the response
            (possibly a cancellation).
        """
        pass

    def cancel(self, request: PromptRequest) -> None:
        """Withdraw an outstanding request. Default: nothing to undo."""
        pass

    @property
    def name(self) -> str:
        """Bridge name for logging."""
        return self.__class__.__name__
