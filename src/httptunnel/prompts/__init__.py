"""
Interactive credential prompts.

    PromptBridge          abstract interface the negotiator talks to
    DeferredPromptBridge  answers supplied later, from any thread
    ConsolePromptBridge   asks on the controlling terminal
"""

from .base import PromptBridge, PromptField, PromptRequest, PromptResponse
from .console import ConsolePromptBridge
from .deferred import DeferredPromptBridge

__all__ = [
    "PromptBridge",
    "PromptField",
    "PromptRequest",
    "PromptResponse",
    "ConsolePromptBridge",
    "DeferredPromptBridge",
]
