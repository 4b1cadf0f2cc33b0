import asyncio
import logging

import pytest

from echosrv.datagram_client import DatagramEchoClient
from echosrv.datagram_config import DatagramConfig
from echosrv.datagram_protocol import DatagramProtocol
from echosrv.datagram_server import DatagramEchoServer
from echosrv.errors import UdpError

PEER = ("127.0.0.1", 40000)


class _FakeSock:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class _QueueProtocol(DatagramProtocol):
    def __init__(self, send_failures=0, bind_error=None):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.sock = None
        self.send_failures = send_failures
        self.bind_error = bind_error

    async def bind(self, config):
        if self.bind_error is not None:
            raise self.bind_error
        self.sock = _FakeSock()
        return self.sock

    async def recv_from(self, sock, size):
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        data, addr = item
        return data[:size], addr

    async def send_to(self, sock, data, addr):
        if self.send_failures:
            self.send_failures -= 1
            raise UdpError("send failed")
        self.sent.append((data, addr))
        return len(data)


class _Endpoint(asyncio.DatagramProtocol):
    def __init__(self):
        self.queue = asyncio.Queue()

    def datagram_received(self, data, addr):
        self.queue.put_nowait((data, addr))


class _UdpSock:
    def __init__(self, transport, endpoint):
        self.transport = transport
        self.endpoint = endpoint

    def close(self):
        self.transport.close()


class _UdpProtocol(DatagramProtocol):
    def __init__(self):
        self.sock = None

    async def bind(self, config):
        loop = asyncio.get_running_loop()
        transport, endpoint = await loop.create_datagram_endpoint(
            _Endpoint, local_addr=config.bind_addr
        )
        self.sock = _UdpSock(transport, endpoint)
        return self.sock

    async def recv_from(self, sock, size):
        data, addr = await sock.endpoint.queue.get()
        return data[:size], addr

    async def send_to(self, sock, data, addr):
        sock.transport.sendto(data, addr)
        return len(data)


async def _wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


async def _stop(server, task):
    server.shutdown()
    await asyncio.wait_for(task, 2.0)


@pytest.mark.asyncio
async def test_echoes_datagram_to_sender():
    protocol = _QueueProtocol()
    server = DatagramEchoServer(protocol, DatagramConfig())
    task = asyncio.create_task(server.run())
    await _wait_until(lambda: protocol.sock is not None)

    protocol.incoming.put_nowait((b"hello", PEER))
    await _wait_until(lambda: protocol.sent)
    assert protocol.sent == [(b"hello", PEER)]

    await _stop(server, task)
    assert protocol.sock.closed


@pytest.mark.asyncio
async def test_reads_at_most_buffer_size():
    protocol = _QueueProtocol()
    server = DatagramEchoServer(protocol, DatagramConfig(buffer_size=4))
    task = asyncio.create_task(server.run())
    await _wait_until(lambda: protocol.sock is not None)

    protocol.incoming.put_nowait((b"abcdef", PEER))
    await _wait_until(lambda: protocol.sent)
    assert protocol.sent[0][0] == b"abcdef"[:4]

    await _stop(server, task)


@pytest.mark.asyncio
async def test_receive_error_does_not_stop_server():
    protocol = _QueueProtocol()
    server = DatagramEchoServer(protocol)
    task = asyncio.create_task(server.run())
    await _wait_until(lambda: protocol.sock is not None)

    protocol.incoming.put_nowait(UdpError("broken"))
    protocol.incoming.put_nowait((b"after error", PEER))
    await _wait_until(lambda: protocol.sent)
    assert protocol.sent == [(b"after error", PEER)]
    assert not task.done()

    await _stop(server, task)


@pytest.mark.asyncio
async def test_send_error_does_not_stop_server():
    protocol = _QueueProtocol(send_failures=1)
    server = DatagramEchoServer(protocol)
    task = asyncio.create_task(server.run())
    await _wait_until(lambda: protocol.sock is not None)

    protocol.incoming.put_nowait((b"first", PEER))
    protocol.incoming.put_nowait((b"second", PEER))
    await _wait_until(lambda: protocol.sent)
    assert protocol.sent == [(b"second", PEER)]

    await _stop(server, task)


@pytest.mark.asyncio
async def test_read_timeout_logs_warning_and_continues(caplog):
    caplog.set_level(logging.WARNING, logger="echosrv.datagram_server")
    protocol = _QueueProtocol()
    server = DatagramEchoServer(protocol, DatagramConfig(read_timeout=0.01))
    task = asyncio.create_task(server.run())
    await _wait_until(lambda: protocol.sock is not None)
    await _wait_until(lambda: "Receive timeout" in caplog.text)

    protocol.incoming.put_nowait((b"still alive", PEER))
    await _wait_until(lambda: protocol.sent)
    assert protocol.sent == [(b"still alive", PEER)]

    await _stop(server, task)


@pytest.mark.asyncio
async def test_shutdown_ends_run():
    protocol = _QueueProtocol()
    server = DatagramEchoServer(protocol)
    task = asyncio.create_task(server.run())
    await _wait_until(lambda: protocol.sock is not None)

    server.shutdown()
    result = await asyncio.wait_for(task, 2.0)
    assert result is None
    assert protocol.sock.closed


@pytest.mark.asyncio
async def test_bind_error_propagates():
    protocol = _QueueProtocol(bind_error=UdpError("address in use"))
    server = DatagramEchoServer(protocol)
    with pytest.raises(UdpError):
        await server.run()


@pytest.mark.asyncio
async def test_udp_round_trip_with_client():
    server_protocol = _UdpProtocol()
    server = DatagramEchoServer(
        server_protocol, DatagramConfig(bind_addr=("127.0.0.1", 0))
    )
    task = asyncio.create_task(server.run())
    await _wait_until(lambda: server_protocol.sock is not None)
    addr = server_protocol.sock.transport.get_extra_info("sockname")[:2]

    client = await DatagramEchoClient.connect(_UdpProtocol(), addr)
    try:
        assert await client.echo_string("test") == "test"
        payload = bytes([0, 1, 2, 0, 255, 128, 0, 3])
        assert await client.echo(payload) == payload
    finally:
        client.close()
        await _stop(server, task)