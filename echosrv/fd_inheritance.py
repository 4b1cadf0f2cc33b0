"""Inheriting listening sockets from a parent process (systemd style)."""

from __future__ import annotations

import os
import re
import socket
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping, Optional, Union

from .address import Address
from .errors import FdInheritanceError

SD_LISTEN_FDS_START = 3

_U32_RE = re.compile(r"\+?[0-9]+")

_SOCKET_TYPE_NAMES = {
    socket.SOCK_STREAM: "SOCK_STREAM (TCP/Unix stream)",
    socket.SOCK_DGRAM: "SOCK_DGRAM (UDP/Unix datagram)",
}

_FAMILY_NAMES = {
    socket.AF_INET: "AF_INET (IPv4)",
    socket.AF_INET6: "AF_INET6 (IPv6)",
}
if hasattr(socket, "AF_UNIX"):
    _FAMILY_NAMES[socket.AF_UNIX] = "AF_UNIX (Unix domain)"


@dataclass(frozen=True)
class BindTarget:
    """A network (host, port) pair or a Unix socket path to bind to."""

    address: Optional[tuple[str, int]] = None
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        if (self.address is None) == (self.path is None):
            raise ValueError("a BindTarget is either a network address or a Unix path")

    @classmethod
    def network(cls, host: str, port: int) -> "BindTarget":
        return cls(address=Address.network(host, port).as_network())

    @classmethod
    def unix(cls, path: Union[str, os.PathLike]) -> "BindTarget":
        return cls(path=Path(path))


@dataclass(frozen=True)
class Bind:
    """Always bind a new socket to the target."""

    target: BindTarget


@dataclass(frozen=True)
class Inherit:
    """Always use the given inherited file descriptor."""

    fd: int


@dataclass(frozen=True)
class InheritOrBind:
    """Inherit a descriptor if one is available, otherwise bind the fallback."""

    fallback_target: BindTarget
    fd: Optional[int] = None


BindStrategy = Union[Bind, Inherit, InheritOrBind]


def _parse_u32(text: Optional[str]) -> Optional[int]:
    if text is None or not _U32_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= 0xFFFFFFFF else None


@dataclass
class FdInheritanceConfig:
    """Inherited descriptors keyed by service name."""

    inherited_fds: dict[str, int] = field(default_factory=dict)
    enable_inheritance: bool = False

    @classmethod
    def from_systemd_env(
        cls, environ: Optional[Mapping[str, str]] = None, pid: Optional[int] = None
    ) -> "FdInheritanceConfig":
        """Read LISTEN_FDS, LISTEN_PID and LISTEN_FDNAMES as systemd sets them."""
        env = os.environ if environ is None else environ
        current_pid = os.getpid() if pid is None else pid
        config = cls()

        listen_fds = _parse_u32(env.get("LISTEN_FDS")) or 0
        if listen_fds == 0:
            return config

        expected_pid = _parse_u32(env.get("LISTEN_PID"))
        if expected_pid is not None and expected_pid != current_pid:
            return config

        config.enable_inheritance = True
        names = env.get("LISTEN_FDNAMES", "").split(":")
        for i in range(listen_fds):
            name = names[i] if i < len(names) else f"fd_{i}"
            config.inherited_fds[name] = SD_LISTEN_FDS_START + i
        return config

    def get_fd(self, service_name: str) -> Optional[int]:
        return self.inherited_fds.get(service_name)

    def has_inherited_fds(self) -> bool:
        return self.enable_inheritance and bool(self.inherited_fds)

    def inherited_service_names(self) -> list[str]:
        return list(self.inherited_fds)


@contextmanager
def _borrowed_socket(fd: int) -> Iterator[socket.socket]:
    """Wrap a duplicate of ``fd`` so the original descriptor stays open."""
    dup = os.dup(fd)
    try:
        sock = socket.socket(fileno=dup)
    except OSError:
        os.close(dup)
        raise
    with sock:
        yield sock


def validate_socket_type(fd: int, expected_type: int) -> None:
    """Raise FdInheritanceError unless ``fd`` is a socket of ``expected_type``."""
    try:
        with _borrowed_socket(fd) as sock:
            socket_type = sock.getsockopt(socket.SOL_SOCKET, socket.SO_TYPE)
    except OSError as exc:
        raise FdInheritanceError(f"Failed to get socket type for fd {fd}: {exc}") from exc

    if socket_type != expected_type:
        expected_name = _SOCKET_TYPE_NAMES.get(expected_type, "unknown socket type")
        raise FdInheritanceError(
            f"Inherited FD {fd} is not a {expected_name} socket (got type {socket_type})"
        )


def validate_socket_family(fd: int, expected_family: int) -> None:
    """Raise FdInheritanceError unless ``fd`` belongs to ``expected_family``."""
    try:
        with _borrowed_socket(fd) as sock:
            family = int(sock.family)
    except OSError as exc:
        raise FdInheritanceError(
            f"Failed to get socket address for fd {fd}: {exc}"
        ) from exc

    if family != expected_family:
        expected_name = _FAMILY_NAMES.get(expected_family, "unknown address family")
        actual_name = _FAMILY_NAMES.get(family, "unknown address family")
        raise FdInheritanceError(
            f"Inherited FD {fd} is {actual_name} family, expected {expected_name}"
        )