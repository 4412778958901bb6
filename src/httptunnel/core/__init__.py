"""
=============================================================================
CORE - Byte plumbing
=============================================================================

    buffers.py     ByteQueue, the input/output queues the negotiator works on
    connection.py  ProxyConnection, drives a negotiator over a blocking socket
    relay.py       relay(), shovels tunnel bytes between a socket and stdio

connection.py depends on the negotiator, which depends on buffers.py, so
only the byte queue is re-exported here; import the driver from
httptunnel.core.connection (or the package root).

=============================================================================
"""

from .buffers import ByteQueue

__all__ = ["ByteQueue"]
