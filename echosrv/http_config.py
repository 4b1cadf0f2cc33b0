"""Configuration for the HTTP echo server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class HttpConfig:
    """Settings for the HTTP echo server. Timeouts are in seconds.

    ``bind_addr`` is a ``(host, port)`` pair, an ``ip:port`` string or a
    network :class:`~echosrv.address.Address`.
    """

    bind_addr: Any = ("127.0.0.1", 8080)
    max_connections: int = 100
    buffer_size: int = 8192
    read_timeout: float = 30.0
    write_timeout: float = 30.0
    server_name: Optional[str] = "EchoServer/1.0"
    echo_headers: bool = True
    default_content_type: Optional[str] = "text/plain"