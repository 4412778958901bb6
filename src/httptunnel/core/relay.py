"""
Bidirectional byte relay between a tunnelled socket and a pair of file
descriptors (normally stdin/stdout), so the CLI can stand in as an SSH
ProxyCommand:

    ssh -o ProxyCommand='python -m httptunnel --proxy squid:3128 %h %p' host

Uses selectors so both directions make progress from a single thread.
"""

import logging
import os
import selectors
import socket


logger = logging.getLogger(__name__)


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def relay(
    sock: socket.socket,
    leftover: bytes = b"",
    stdin_fd: int = 0,
    stdout_fd: int = 1,
    buffer_size: int = 8192,
) -> None:
    """
    Copy bytes both ways until the far end closes.

    `leftover` (tunnel bytes that arrived with the proxy's answer) is written
    to stdout first. EOF on stdin half-closes the socket; EOF on the socket
    ends the relay.
    """
    if leftover:
        _write_all(stdout_fd, leftover)

    sock.setblocking(False)
    selector = selectors.DefaultSelector()
    selector.register(sock, selectors.EVENT_READ, "socket")
    selector.register(stdin_fd, selectors.EVENT_READ, "stdin")

    to_socket = 0
    to_stdout = len(leftover)
    try:
        while True:
            for key, _ in selector.select():
                if key.data == "socket":
                    try:
                        data = sock.recv(buffer_size)
                    except BlockingIOError:
                        continue
                    if not data:
                        logger.debug("Tunnel closed by remote end")
                        return
                    _write_all(stdout_fd, data)
                    to_stdout += len(data)
                else:
                    data = os.read(stdin_fd, buffer_size)
                    if not data:
                        logger.debug("Local input closed, half-closing tunnel")
                        selector.unregister(stdin_fd)
                        sock.shutdown(socket.SHUT_WR)
                        continue
                    sock.setblocking(True)
                    try:
                        sock.sendall(data)
                    finally:
                        sock.setblocking(False)
                    to_socket += len(data)
    finally:
        selector.close()
        logger.info(f"Relay finished: {to_socket}B sent, {to_stdout}B received")
