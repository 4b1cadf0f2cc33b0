"""HTTP transport for the echo server: accepts POST and echoes the body."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from .address import Address, parse_socket_addr
from .errors import ConfigError, EchoError, TcpError

MAX_HEADERS = 32
_READ_CHUNK = 1024

_TCHARS = frozenset(
    b"!#$%&'*+-.^_`|~0123456789"
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
)
_VERSIONS = (b"HTTP/1.0", b"HTTP/1.1")


class HttpProtocolError(Exception):
    """Failure while reading or writing HTTP."""


class HttpIoError(HttpProtocolError):
    """The underlying connection failed."""

    def __init__(self, error: OSError) -> None:
        super().__init__(f"IO error: {error}")
        self.error = error


class HttpParseError(HttpProtocolError):
    """The request head could not be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"HTTP parsing error: {message}")
        self.message = message


class InvalidRequestError(HttpProtocolError):
    """The request was well formed but is not accepted."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid request: {message}")
        self.message = message


class IncompleteRequestError(HttpProtocolError):
    """More data is needed, or the peer closed before sending it."""

    def __init__(self) -> None:
        super().__init__("Incomplete request")


def to_echo_error(err: HttpProtocolError) -> EchoError:
    """Map an HTTP protocol error onto the package's general error types."""
    if isinstance(err, HttpIoError):
        return TcpError(err.error)
    if isinstance(err, (HttpParseError, InvalidRequestError)):
        return ConfigError(err.message)
    if isinstance(err, IncompleteRequestError):
        return ConfigError("Incomplete HTTP request")
    raise TypeError(f"not an HTTP protocol error: {err!r}")


def _is_token(data: bytes) -> bool:
    return bool(data) and all(c in _TCHARS for c in data)


def _is_uri(data: bytes) -> bool:
    return bool(data) and all(0x21 <= c <= 0x7E or c >= 0x80 for c in data)


def _is_header_value(data: bytes) -> bool:
    return all(c == 0x09 or 0x20 <= c <= 0x7E or c >= 0x80 for c in data)


def _parse_error(reason: str) -> HttpParseError:
    return HttpParseError(f"Failed to parse headers: {reason}")


def _line(data: bytes, start: int, end: int) -> bytes:
    line = data[start:end]
    return line[:-1] if line.endswith(b"\r") else line


def parse_request_head(buffer: bytes) -> Optional[tuple[str, int]]:
    """Parse an HTTP/1.x request head.

    Returns ``(method, head_length)`` once the head is complete, where
    ``head_length`` is where the body starts, or ``None`` if more data is
    needed. Raises HttpParseError on a malformed head or more than 32 headers.
    """
    data = bytes(buffer)
    pos = 0
    while True:
        if data.startswith(b"\r\n", pos):
            pos += 2
        elif data.startswith(b"\n", pos):
            pos += 1
        else:
            break

    end = data.find(b"\n", pos)
    if end == -1:
        method = data[pos:].partition(b" ")[0].rstrip(b"\r")
        if any(c not in _TCHARS for c in method):
            raise _parse_error("invalid token")
        return None

    method, sep, rest = _line(data, pos, end).partition(b" ")
    if not sep or not _is_token(method):
        raise _parse_error("invalid token")
    target, sep, version = rest.partition(b" ")
    if not sep or not _is_uri(target):
        raise _parse_error("invalid token")
    if version not in _VERSIONS:
        raise _parse_error("invalid HTTP version")

    pos = end + 1
    count = 0
    while True:
        end = data.find(b"\n", pos)
        if end == -1:
            return None
        line = _line(data, pos, end)
        pos = end + 1
        if not line:
            return method.decode("ascii"), pos
        name, sep, value = line.partition(b":")
        if not sep or not _is_token(name):
            raise _parse_error("invalid header name")
        if not _is_header_value(value):
            raise _parse_error("invalid header value")
        count += 1
        if count > MAX_HEADERS:
            raise _parse_error("too many headers")


def _host_port(addr: Any) -> tuple[str, int]:
    if isinstance(addr, Address):
        network = addr.as_network()
        if network is None:
            raise ConfigError("HTTP needs a network address, not a Unix path")
        return network
    if isinstance(addr, str):
        return parse_socket_addr(addr)
    host, port = addr[0], addr[1]
    return host, port


class HttpStream:
    """An accepted or connected TCP stream with HTTP request framing state."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer
        self.request_buffer = bytearray()
        self.body_start: Optional[int] = None
        self.method: Optional[str] = None
        self.request_complete = False

    @property
    def peer(self) -> Any:
        """The remote address of the stream."""
        return self.writer.get_extra_info("peername")

    def close(self) -> None:
        """Close the connection."""
        self.writer.close()


class HttpListener:
    """A listening TCP socket that hands out accepted connections."""

    def __init__(self) -> None:
        self._server: Optional[asyncio.AbstractServer] = None
        self._pending: asyncio.Queue[tuple[HttpStream, Any]] = asyncio.Queue()

    async def _start(self, host: str, port: int) -> None:
        self._server = await asyncio.start_server(self._on_connect, host, port)

    def _on_connect(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        stream = HttpStream(reader, writer)
        self._pending.put_nowait((stream, stream.peer))

    @property
    def address(self) -> tuple[str, int]:
        """The local (host, port) the listener is bound to."""
        if self._server is None or not self._server.sockets:
            raise ValueError("listener is closed")
        name = self._server.sockets[0].getsockname()
        return name[0], name[1]

    async def accept(self) -> tuple[HttpStream, Any]:
        """Wait for the next connection; return the stream and peer address."""
        return await self._pending.get()

    def close(self) -> None:
        """Stop listening and drop connections that were never accepted."""
        if self._server is not None:
            self._server.close()
        while not self._pending.empty():
            stream, _ = self._pending.get_nowait()
            stream.close()


class HttpProtocol:
    """Stream protocol that echoes the body of POST requests.

    Any other method gets a 405 response and the read fails with
    InvalidRequestError. Responses carry only the body, no HTTP headers.
    """

    async def bind(self, config: Any) -> HttpListener:
        """Listen on ``config.bind_addr``."""
        host, port = _host_port(config.bind_addr)
        listener = HttpListener()
        try:
            await listener._start(host, port)
        except OSError as exc:
            raise HttpIoError(exc) from exc
        return listener

    async def accept(self, listener: HttpListener) -> tuple[HttpStream, Any]:
        """Accept the next connection on ``listener``."""
        return await listener.accept()

    async def connect(self, host: str, port: int) -> HttpStream:
        """Open a connection to an HTTP server."""
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as exc:
            raise HttpIoError(exc) from exc
        return HttpStream(reader, writer)

    async def read(self, stream: HttpStream, size: int) -> bytes:
        """Return up to ``size`` bytes of the request body.

        Returns ``b""`` once the request has been read in full. Raises
        IncompleteRequestError while the head is still incomplete or when the
        peer closes early.
        """
        if stream.request_complete:
            return b""

        try:
            chunk = await stream.reader.read(_READ_CHUNK)
        except OSError as exc:
            raise HttpIoError(exc) from exc
        if not chunk:
            raise IncompleteRequestError()
        stream.request_buffer.extend(chunk)

        if stream.body_start is None:
            head = parse_request_head(stream.request_buffer)
            if head is None:
                raise IncompleteRequestError()
            method, stream.body_start = head
            stream.method = method
            if method != "POST":
                await self._reject_method(stream, method)

        body_start = stream.body_start
        available = len(stream.request_buffer) - body_start
        if available <= 0:
            stream.request_complete = True
            return b""

        copy_len = min(available, size)
        data = bytes(stream.request_buffer[body_start : body_start + copy_len])
        del stream.request_buffer[: body_start + copy_len]
        stream.body_start = max(0, body_start - copy_len)
        if copy_len == available:
            stream.request_complete = True
        return data

    async def _reject_method(self, stream: HttpStream, method: str) -> None:
        body = f"Method {method} not allowed. Only POST requests are accepted."
        response = (
            "HTTP/1.1 405 Method Not Allowed\r\n"
            f"Content-Length: {len(body)}\r\n"
            "Allow: POST\r\n\r\n"
            f"{body}"
        )
        try:
            stream.writer.write(response.encode("utf-8"))
            await stream.writer.drain()
        except OSError as exc:
            raise HttpIoError(exc) from exc
        stream.request_complete = True
        raise InvalidRequestError(f"Method {method} not allowed")

    async def write(self, stream: HttpStream, data: bytes) -> None:
        """Send ``data`` as is, without any HTTP framing."""
        try:
            stream.writer.write(bytes(data))
            await stream.writer.drain()
        except OSError as exc:
            raise HttpIoError(exc) from exc

    async def flush(self, stream: HttpStream) -> None:
        """Wait until buffered output has been handed to the socket."""
        try:
            await stream.writer.drain()
        except OSError as exc:
            raise HttpIoError(exc) from exc