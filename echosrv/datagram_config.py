"""Configuration for datagram echo servers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DatagramConfig:
    """Settings for datagram servers. Timeouts are in seconds."""

    bind_addr: Any = ("127.0.0.1", 0)
    buffer_size: int = 1024
    read_timeout: float = 30.0
    write_timeout: float = 30.0