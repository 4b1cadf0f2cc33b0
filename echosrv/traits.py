"""Abstract interfaces for echo servers and clients."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .errors import Utf8Error


class EchoServer(ABC):
    """Interface shared by every echo server."""

    @abstractmethod
    async def run(self) -> None:
        """Serve connections or datagrams until shut down."""

    @abstractmethod
    def shutdown(self) -> None:
        """Ask a running server to stop gracefully."""


class EchoClient(ABC):
    """Interface shared by every echo client."""

    @abstractmethod
    async def echo(self, data: bytes) -> bytes:
        """Send data to the server and return what it sends back."""

    async def echo_string(self, text: str) -> str:
        """Send text and return the echoed text, decoded as UTF-8."""
        response = await self.echo(text.encode("utf-8"))
        try:
            return bytes(response).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise Utf8Error(exc) from exc