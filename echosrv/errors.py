"""Exception hierarchy shared by every part of the package."""

from __future__ import annotations

from typing import Any


class EchoError(Exception):
    """Base class for all errors raised by echo servers and clients."""

    label = "Echo error"

    def __init__(self, detail: Any) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.label}: {self.detail}"


class TcpError(EchoError):
    """TCP failure: bind, connect, read or write."""

    label = "TCP error"


class UdpError(EchoError):
    """UDP failure: bind, send or receive."""

    label = "UDP error"


class UnixSocketError(EchoError):
    """Unix domain socket failure: bind, connect, read or write."""

    label = "Unix domain socket error"


class ConfigError(EchoError):
    """Invalid configuration or malformed input."""

    label = "Configuration error"


class FdInheritanceError(EchoError):
    """An inherited file descriptor could not be used."""

    label = "FD inheritance error"


class EchoTimeoutError(EchoError):
    """An operation did not complete in time."""

    label = "Timeout error"


class Utf8Error(EchoError):
    """Received bytes were not valid UTF-8."""

    label = "UTF-8 error"


class UnsupportedError(EchoError):
    """The requested operation is not supported."""

    label = "Unsupported operation"