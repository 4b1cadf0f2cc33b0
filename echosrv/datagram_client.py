"""Generic echo client for any datagram transport."""

from __future__ import annotations

import asyncio
from typing import Any

from .datagram_config import DatagramConfig
from .datagram_protocol import DatagramProtocol
from .errors import EchoTimeoutError
from .traits import EchoClient

_RECV_SIZE = 1024
_RECV_TIMEOUT = 0.5


class DatagramEchoClient(EchoClient):
    """Sends datagrams to an echo server and waits for the reply."""

    def __init__(self, protocol: DatagramProtocol, sock: Any, server_addr: Any) -> None:
        self.protocol = protocol
        self.server_addr = server_addr
        self._sock = sock

    @classmethod
    async def connect(
        cls, protocol: DatagramProtocol, server_addr: Any
    ) -> "DatagramEchoClient":
        """Bind a local socket on any address and aim it at ``server_addr``."""
        config = DatagramConfig(
            bind_addr=("0.0.0.0", 0),
            buffer_size=_RECV_SIZE,
            read_timeout=30.0,
            write_timeout=30.0,
        )
        sock = await protocol.bind(config)
        return cls(protocol, sock, server_addr)

    async def echo(self, data: bytes) -> bytes:
        """Send ``data`` and return the reply, of at most 1024 bytes."""
        await self.protocol.send_to(self._sock, bytes(data), self.server_addr)
        try:
            response, _ = await asyncio.wait_for(
                self.protocol.recv_from(self._sock, _RECV_SIZE), _RECV_TIMEOUT
            )
        except asyncio.TimeoutError:
            raise EchoTimeoutError("Datagram receive timeout") from None
        return bytes(response[:_RECV_SIZE])

    def close(self) -> None:
        """Close the local socket."""
        close = getattr(self._sock, "close", None)
        if callable(close):
            close()

    async def __aenter__(self) -> "DatagramEchoClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()