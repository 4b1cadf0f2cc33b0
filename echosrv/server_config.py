"""Universal server configuration with immutable builder-style setters."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from .address import Address


def _default_bind_addr() -> Address:
    return Address.parse("127.0.0.1:0")


@dataclass(frozen=True)
class Config:
    """Base configuration for echo servers. Timeouts are in seconds."""

    bind_addr: Any = field(default_factory=_default_bind_addr)
    buffer_size: int = 1024
    read_timeout: float = 30.0
    write_timeout: float = 30.0

    def with_buffer_size(self, buffer_size: int) -> "Config":
        return replace(self, buffer_size=buffer_size)

    def with_read_timeout(self, timeout: float) -> "Config":
        return replace(self, read_timeout=timeout)

    def with_write_timeout(self, timeout: float) -> "Config":
        return replace(self, write_timeout=timeout)


@dataclass(frozen=True)
class StreamConfig:
    """Configuration for stream protocols, adding a connection limit."""

    base: Config = field(default_factory=Config)
    max_connections: int = 100

    def with_max_connections(self, max_connections: int) -> "StreamConfig":
        return replace(self, max_connections=max_connections)

    def with_buffer_size(self, buffer_size: int) -> "StreamConfig":
        return replace(self, base=self.base.with_buffer_size(buffer_size))

    def with_read_timeout(self, timeout: float) -> "StreamConfig":
        return replace(self, base=self.base.with_read_timeout(timeout))

    def with_write_timeout(self, timeout: float) -> "StreamConfig":
        return replace(self, base=self.base.with_write_timeout(timeout))