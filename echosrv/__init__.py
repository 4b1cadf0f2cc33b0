"""Asyncio building blocks for echo servers and clients.

Datagram echo over pluggable transports, HTTP POST body echo, socket
inheritance, resource limits and a buffer pool.
"""

__version__ = "0.3.0"