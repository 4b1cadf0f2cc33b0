"""Unified address for network and Unix domain sockets."""

from __future__ import annotations

import ipaddress
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import ConfigError

UNIX_PREFIX = "unix:"
_SYNTAX_ERROR = "invalid socket address syntax"
_PORT_RE = re.compile(r"[0-9]+")


def _check_port(port: int) -> int:
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 0xFFFF:
        raise ConfigError(f"Invalid socket address: invalid port {port!r}")
    return port


def parse_socket_addr(text: str) -> tuple[str, int]:
    """Parse ``ip:port`` or ``[ipv6]:port`` into a normalised (host, port) pair."""
    try:
        if text.startswith("["):
            host_part, sep, port_part = text[1:].partition("]:")
            if not sep:
                raise ValueError(_SYNTAX_ERROR)
            ip: ipaddress._BaseAddress = ipaddress.IPv6Address(host_part)
        else:
            host_part, sep, port_part = text.rpartition(":")
            if not sep:
                raise ValueError(_SYNTAX_ERROR)
            ip = ipaddress.IPv4Address(host_part)
    except ValueError:
        raise ConfigError(f"Invalid socket address: {_SYNTAX_ERROR}") from None
    if not _PORT_RE.fullmatch(port_part) or int(port_part) > 0xFFFF:
        raise ConfigError(f"Invalid socket address: {_SYNTAX_ERROR}")
    return str(ip), int(port_part)


@dataclass(frozen=True)
class Address:
    """Either a network (host, port) pair or a Unix socket path."""

    network_addr: Union[tuple[str, int], None] = None
    unix_path: Union[Path, None] = None

    def __post_init__(self) -> None:
        if (self.network_addr is None) == (self.unix_path is None):
            raise ValueError("an Address is either a network address or a Unix path")

    @classmethod
    def parse(cls, text: str) -> "Address":
        """Parse ``unix:/path`` or a socket address such as ``127.0.0.1:8080``."""
        if text.startswith(UNIX_PREFIX):
            return cls(unix_path=Path(text[len(UNIX_PREFIX):]))
        return cls(network_addr=parse_socket_addr(text))

    @classmethod
    def network(cls, host: str, port: int) -> "Address":
        """Build a network address from an IP literal and a port."""
        try:
            ip = ipaddress.ip_address(host)
        except ValueError as exc:
            raise ConfigError(f"Invalid socket address: {exc}") from None
        return cls(network_addr=(str(ip), _check_port(port)))

    @classmethod
    def unix(cls, path: Union[str, os.PathLike]) -> "Address":
        """Build a Unix domain socket address."""
        return cls(unix_path=Path(path))

    def is_network(self) -> bool:
        return self.network_addr is not None

    def is_unix(self) -> bool:
        return self.unix_path is not None

    def as_network(self) -> Union[tuple[str, int], None]:
        return self.network_addr

    def as_unix(self) -> Union[Path, None]:
        return self.unix_path

    def __str__(self) -> str:
        if self.network_addr is not None:
            host, port = self.network_addr
            if ":" in host:
                return f"[{host}]:{port}"
            return f"{host}:{port}"
        return f"{UNIX_PREFIX}{self.unix_path}"