"""Interface for datagram transports used by the generic datagram server."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from .datagram_config import DatagramConfig
from .fd_inheritance import FdInheritanceConfig

S = TypeVar("S")


class DatagramProtocol(ABC, Generic[S]):
    """A datagram transport such as UDP or Unix datagrams.

    Implementations raise :class:`~echosrv.errors.EchoError` subclasses
    when an operation fails.
    """

    @abstractmethod
    async def bind(self, config: DatagramConfig) -> S:
        """Create a socket bound as ``config`` describes."""

    async def bind_with_inheritance(
        self, config: DatagramConfig, fd_config: FdInheritanceConfig
    ) -> S:
        """Create a socket, honouring inherited descriptors where supported.

        The default ignores ``fd_config`` and binds normally; transports that
        can adopt inherited descriptors override this.
        """
        return await self.bind(config)

    @abstractmethod
    async def recv_from(self, sock: S, size: int) -> tuple[bytes, Any]:
        """Receive up to ``size`` bytes; return the data and the sender."""

    @abstractmethod
    async def send_to(self, sock: S, data: bytes, addr: Any) -> int:
        """Send ``data`` to ``addr``; return the number of bytes sent."""