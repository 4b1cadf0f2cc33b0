# echosrv

Building blocks, on top of `asyncio`, for echo servers and clients used to
exercise network code in tests and during development: a generic datagram
echo server and client, an HTTP transport that echoes the body of `POST`
requests, systemd-style socket inheritance, resource limits and a buffer
pool. The package has no dependencies outside the standard library.

## Modules

| Module | Contents |
| --- | --- |
| `echosrv.errors` | `EchoError` and its subclasses `TcpError`, `UdpError`, `UnixSocketError`, `ConfigError`, `FdInheritanceError`, `EchoTimeoutError`, `Utf8Error`, `UnsupportedError` |
| `echosrv.traits` | abstract `EchoServer` (`run`, `shutdown`) and `EchoClient` (`echo`, `echo_string`) |
| `echosrv.address` | `Address` and `parse_socket_addr` |
| `echosrv.server_config` | `Config` and `StreamConfig` |
| `echosrv.datagram_config` | `DatagramConfig` |
| `echosrv.datagram_protocol` | abstract `DatagramProtocol` |
| `echosrv.datagram_server` | `DatagramEchoServer` |
| `echosrv.datagram_client` | `DatagramEchoClient` |
| `echosrv.http_config` | `HttpConfig` |
| `echosrv.http_protocol` | `HttpProtocol`, `HttpListener`, `HttpStream`, `parse_request_head`, `to_echo_error` and the `HttpProtocolError` family |
| `echosrv.fd_inheritance` | `FdInheritanceConfig`, `BindTarget`, the strategies `Bind`, `Inherit`, `InheritOrBind`, and `validate_socket_type` / `validate_socket_family` |
| `echosrv.socket_builder` | `resolve_fd`, `BindSource`, `InheritSource` and the abstract `SocketBuilder` |
| `echosrv.limits` | `ResourceLimits`, `RateLimiter`, `ConnectionTracker`, `ConnectionGuard`, `ConnectionMetrics`, `SizeValidator` and their errors |
| `echosrv.buffer_pool` | `BufferPool`, `PooledBuffer`, `PoolStats`, `global_pool`, `init_global_pool` |

All timeouts and durations are in seconds.

## Addresses

```python
from echosrv.address import Address

net = Address.parse("127.0.0.1:8080")
sock = Address.parse("unix:/tmp/test.sock")

assert net.is_network() and not net.is_unix()
assert net.as_network() == ("127.0.0.1", 8080)
assert sock.is_unix()
assert str(net) == "127.0.0.1:8080"
assert str(sock) == "unix:/tmp/test.sock"
```

`Address.parse` accepts `unix:<path>`, `ipv4:port` or `[ipv6]:port`; any
other string raises `echosrv.errors.ConfigError`. `Address.network(host,
port)` and `Address.unix(path)` build addresses directly.

## Configuration

`Config` holds `bind_addr`, `buffer_size` (default 1024) and
`read_timeout` / `write_timeout` (default 30). `StreamConfig` wraps a
`Config` as `base` and adds `max_connections` (default 100). Both are
frozen; each `with_*` method returns a changed copy.

```python
from echosrv.address import Address
from echosrv.server_config import Config, StreamConfig

config = (
    StreamConfig(Config(Address.parse("127.0.0.1:8080")))
    .with_max_connections(200)
    .with_buffer_size(4096)
)
assert config.max_connections == 200
assert config.base.buffer_size == 4096
```

`DatagramConfig` defaults to binding `("127.0.0.1", 0)` with a 1024-byte
buffer. `HttpConfig` defaults to `("127.0.0.1", 8080)`, 100 connections, an
8192-byte buffer, `server_name="EchoServer/1.0"`, `echo_headers=True` and
`default_content_type="text/plain"`.

## Datagram echo

`DatagramEchoServer` and `DatagramEchoClient` work over any transport that
implements `DatagramProtocol`:

- `await bind(config)` returns a socket object,
- `await recv_from(sock, size)` returns `(data, sender)`,
- `await send_to(sock, data, addr)` returns the number of bytes sent,
- `bind_with_inheritance(config, fd_config)` falls back to `bind` unless
  overridden.

`DatagramEchoServer(protocol, config)` binds, then sends every datagram
back to its sender until `shutdown()` is called; receive timeouts and
send/receive failures are logged and the loop carries on. On exit the
socket's `close()` is called if it has one.

`await DatagramEchoClient.connect(protocol, server_addr)` binds a local
socket on `("0.0.0.0", 0)`. `echo(data)` sends the data and waits up to
0.5 seconds for a reply of at most 1024 bytes, raising `EchoTimeoutError`
if none arrives; `echo_string(text)` does the same with UTF-8 text and
raises `Utf8Error` if the reply does not decode. The client is an async
context manager and closes its socket on exit.

## HTTP echo

`HttpProtocol` accepts `POST` requests and hands back only the request
body. Any other method is answered with `405 Method Not Allowed`, an
`Allow: POST` header and the body `Method <METHOD> not allowed. Only POST
requests are accepted.`, and the read raises `InvalidRequestError`.

```python
import asyncio

from echosrv.http_config import HttpConfig
from echosrv.http_protocol import HttpProtocol, HttpProtocolError


async def serve_one() -> None:
    protocol = HttpProtocol()
    listener = await protocol.bind(HttpConfig(bind_addr=("127.0.0.1", 0)))
    print("listening on", listener.address)
    stream, peer = await protocol.accept(listener)
    try:
        body = await protocol.read(stream, 8192)
        await protocol.write(stream, body)
    except HttpProtocolError as exc:
        print("request from", peer, "failed:", exc)
    finally:
        stream.close()
        listener.close()


asyncio.run(serve_one())
```

Each `read` call takes one chunk of up to 1024 bytes from the connection.
While the request head is incomplete, or when the peer closes early, it
raises `IncompleteRequestError`; a malformed head or more than 32 headers
raises `HttpParseError`. Once the body bytes that have arrived have been
handed out, the request counts as complete and further reads return `b""`.
`write` sends data as is, with no HTTP framing. `to_echo_error` maps these
errors onto `TcpError` or `ConfigError`, and `parse_request_head(buffer)`
exposes the head parser, returning `(method, body_offset)` or `None` when
more data is needed.

## Socket inheritance

`FdInheritanceConfig.from_systemd_env(environ=None, pid=None)` reads
`LISTEN_FDS`, `LISTEN_PID` and `LISTEN_FDNAMES` (from `os.environ` and the
current process id by default). Descriptors start at 3 and are named after
`LISTEN_FDNAMES`, or `fd_0`, `fd_1`, … where no name is given; if
`LISTEN_PID` names another process nothing is inherited.

```python
from echosrv.fd_inheritance import FdInheritanceConfig

cfg = FdInheritanceConfig.from_systemd_env(
    {"LISTEN_FDS": "2", "LISTEN_FDNAMES": "tcp-echo:udp-echo"}, pid=1234
)
assert cfg.get_fd("tcp-echo") == 3
assert cfg.get_fd("udp-echo") == 4
assert cfg.has_inherited_fds()
```

`resolve_fd(strategy, service_name, fd_config)` turns `Bind(target)`,
`Inherit(fd)` or `InheritOrBind(fallback_target, fd=None)` into a
`BindSource` or `InheritSource`; for `InheritOrBind` an explicit
descriptor wins, then one inherited under the service name, then the
fallback. Subclass `SocketBuilder`, set `SOCKET_TYPE` and
`VALID_FAMILIES`, and implement `from_fd` and `bind_to`; `build` then
validates inherited descriptors with `validate_socket_type` and
`validate_socket_family` (raising `FdInheritanceError`) before wrapping
them.

## Limits

```python
from echosrv.limits import RequestTooLargeError, SizeValidator

validator = SizeValidator(100)
validator.validate_size(100)        # fine
try:
    validator.validate_size(101)
except RequestTooLargeError as exc:
    print(exc)  # Request too large: 101 bytes, maximum allowed: 100 bytes
```

`ConnectionTracker(ResourceLimits(...))` caps open connections at
`max_concurrent_connections`. `await acquire_connection()` waits up to one
second for a free slot and raises `ConnectionSlotTimeout` if none frees
up; the returned `ConnectionGuard` gives the slot back on `release()` or
at the end of `async with`. `metrics()` reports active and total
connections and free slots.

`RateLimiter(requests_per_second)`: `await acquire()` waits up to 100 ms
for a permit, raising `RateLimitExceeded` if none is free, and hands the
permit back straight away.

## Buffer pool

```python
from echosrv.buffer_pool import BufferPool

pool = BufferPool(1024, 5)
with pool.get() as buffer:
    buffer.extend(b"hello")
    assert len(buffer) == 5

assert pool.stats().available_buffers == 1
```

Released buffers are cleared; those beyond the pool's maximum size are
discarded rather than kept. `freeze()` takes the contents as `bytes`, and
that buffer does not return to the pool. `global_pool()` returns a shared
pool of 8192-byte buffers keeping up to 100; `init_global_pool()` creates
it with other sizes and raises `RuntimeError` if it already exists.

## What the package does not do

- There is no command-line program; nothing is installed to run.
- There are no ready-made TCP, UDP or Unix-socket echo servers or clients.
  `DatagramEchoServer` and `DatagramEchoClient` need a `DatagramProtocol`
  implementation supplied by the caller.
- There is no server loop that accepts connections and drives
  `HttpProtocol`; the HTTP transport is used directly, as in the example
  above.

## Running the tests

Install the `test` extra; the suite uses `pytest` and `pytest-asyncio`.