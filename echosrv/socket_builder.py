"""Creating sockets either from inherited descriptors or by binding afresh."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Generic, Optional, TypeVar, Union

from .errors import FdInheritanceError
from .fd_inheritance import (
    Bind,
    BindStrategy,
    BindTarget,
    FdInheritanceConfig,
    Inherit,
    InheritOrBind,
    validate_socket_family,
    validate_socket_type,
)

T = TypeVar("T")


@dataclass(frozen=True)
class BindSource:
    """Create the socket by binding to ``target``."""

    target: BindTarget


@dataclass(frozen=True)
class InheritSource:
    """Create the socket from the inherited descriptor ``fd``."""

    fd: int


SocketSource = Union[BindSource, InheritSource]


def resolve_fd(
    strategy: BindStrategy, service_name: str, fd_config: FdInheritanceConfig
) -> SocketSource:
    """Turn a binding strategy into a concrete socket source.

    For ``InheritOrBind`` an explicit descriptor wins, then a descriptor
    inherited under ``service_name``, and otherwise the fallback target.
    """
    match strategy:
        case Bind(target=target):
            return BindSource(target)
        case Inherit(fd=fd):
            return InheritSource(fd)
        case InheritOrBind(fd=fd, fallback_target=fallback):
            if fd is not None:
                return InheritSource(fd)
            inherited = fd_config.get_fd(service_name)
            if inherited is not None:
                return InheritSource(inherited)
            return BindSource(fallback)
    raise TypeError(f"unknown bind strategy: {strategy!r}")


class SocketBuilder(ABC, Generic[T]):
    """Protocol-specific socket creation sharing the inheritance logic.

    Subclasses declare the socket type they expect and the address families
    they accept, and know how to wrap a descriptor or bind a new socket.
    """

    SOCKET_TYPE: ClassVar[int]
    VALID_FAMILIES: ClassVar[tuple[int, ...]] = ()

    @abstractmethod
    def from_fd(self, fd: int) -> T:
        """Wrap an already validated inherited descriptor."""

    @abstractmethod
    def bind_to(self, target: BindTarget) -> T:
        """Create a fresh socket bound to ``target``."""

    def build(
        self,
        strategy: BindStrategy,
        service_name: str,
        fd_config: FdInheritanceConfig,
    ) -> T:
        """Create a socket following ``strategy``."""
        source = resolve_fd(strategy, service_name, fd_config)
        if isinstance(source, InheritSource):
            self.validate_inherited_fd(source.fd)
            return self.from_fd(source.fd)
        return self.bind_to(source.target)

    def validate_inherited_fd(self, fd: int) -> None:
        """Check the descriptor's socket type and that its family is accepted."""
        validate_socket_type(fd, self.SOCKET_TYPE)
        last_error: Optional[FdInheritanceError] = None
        for family in self.VALID_FAMILIES:
            try:
                validate_socket_family(fd, family)
            except FdInheritanceError as exc:
                last_error = exc
            else:
                return
        if last_error is not None:
            raise last_error
        raise FdInheritanceError("No valid socket families configured for this protocol")