"""
Terminal prompt bridge.

Asks synchronously inside poll(): the first poll after start() blocks on the
terminal and returns the finished response. Prompts go to the controlling
terminal rather than stdout, because when we run as an SSH ProxyCommand
stdout and stdin carry the tunnel.
"""

import getpass
import logging
import sys
from typing import Callable, Optional

from .base import PromptBridge, PromptRequest, PromptResponse


logger = logging.getLogger(__name__)


def read_visible(label: str) -> str:
    """Read an unmasked answer from the controlling terminal."""
    try:
        with open("/dev/tty", "r+") as tty:
            tty.write(label)
            tty.flush()
            line = tty.readline()
    except OSError:
        sys.stderr.write(label)
        sys.stderr.flush()
        line = sys.stdin.readline()

    if not line:
        raise EOFError
    return line.rstrip("\r\n")


class ConsolePromptBridge(PromptBridge):
    """
    Prompt on the terminal: getpass for masked fields, a visible read for
    the rest. Ctrl-C or end-of-file counts as the user cancelling.
    """

    def __init__(
        self,
        read_visible: Callable[[str], str] = read_visible,
        read_masked: Callable[[str], str] = getpass.getpass,
    ):
        self._read_visible = read_visible
        self._read_masked = read_masked
        self._request: Optional[PromptRequest] = None

    def start(self, request: PromptRequest) -> None:
        self._request = request

    def poll(self, request: PromptRequest) -> Optional[PromptResponse]:
        if request is not self._request:
            return None
        self._request = None

        if request.title:
            sys.stderr.write(f"{request.title}\n")
            sys.stderr.flush()

        answers = []
        try:
            for prompt in request.fields:
                reader = self._read_masked if prompt.masked else self._read_visible
                answers.append(reader(prompt.label))
        except (EOFError, KeyboardInterrupt):
            logger.info("Credential prompt cancelled by user")
            return PromptResponse.cancel()

        return PromptResponse(answers)

    def cancel(self, request: PromptRequest) -> None:
        if request is self._request:
            self._request = None
