"""Generic echo server for any datagram transport."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from .datagram_config import DatagramConfig
from .datagram_protocol import DatagramProtocol
from .errors import EchoError
from .traits import EchoServer

logger = logging.getLogger(__name__)


def _close_socket(sock: Any) -> None:
    close = getattr(sock, "close", None)
    if callable(close):
        close()


class DatagramEchoServer(EchoServer):
    """Sends every datagram it receives straight back to its sender."""

    def __init__(
        self, protocol: DatagramProtocol, config: Optional[DatagramConfig] = None
    ) -> None:
        self.protocol = protocol
        self.config = config if config is not None else DatagramConfig()
        self._shutdown = asyncio.Event()

    async def run(self) -> None:
        """Bind and echo datagrams until :meth:`shutdown` is called."""
        sock = await self.protocol.bind(self.config)
        logger.info("Datagram echo server listening on %s", self.config.bind_addr)

        stop = asyncio.ensure_future(self._shutdown.wait())
        recv: Optional[asyncio.Future] = None
        try:
            while True:
                recv = asyncio.ensure_future(
                    asyncio.wait_for(
                        self.protocol.recv_from(sock, self.config.buffer_size),
                        self.config.read_timeout,
                    )
                )
                await asyncio.wait({recv, stop}, return_when=asyncio.FIRST_COMPLETED)
                if stop.done():
                    recv.cancel()
                    await asyncio.gather(recv, return_exceptions=True)
                    logger.info("Received shutdown signal, stopping server")
                    break
                await self._handle(sock, recv)
        finally:
            if recv is not None and not recv.done():
                recv.cancel()
            if not stop.done():
                stop.cancel()
            self._shutdown.clear()
            _close_socket(sock)
        logger.info("Datagram echo server stopped")

    def shutdown(self) -> None:
        """Ask the running server to stop."""
        self._shutdown.set()

    async def _handle(self, sock: Any, recv: asyncio.Future) -> None:
        try:
            data, addr = recv.result()
        except asyncio.TimeoutError:
            logger.warning("Receive timeout")
            return
        except (EchoError, OSError) as exc:
            logger.error("Failed to receive datagram: %s", exc)
            return

        preview = bytes(data).decode("utf-8", errors="replace")
        logger.info("Received datagram from %s (size=%d): %s", addr, len(data), preview)
        try:
            await self.protocol.send_to(sock, data, addr)
        except (EchoError, OSError) as exc:
            logger.error("Failed to send echo response to %s: %s", addr, exc)
        else:
            logger.info("Echoed datagram to %s (size=%d)", addr, len(data))