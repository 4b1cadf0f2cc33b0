import asyncio

import pytest

from echosrv.datagram_config import DatagramConfig
from echosrv.datagram_protocol import DatagramProtocol
from echosrv.errors import UdpError
from echosrv.fd_inheritance import FdInheritanceConfig


class _MemorySocket:
    def __init__(self, addr):
        self.addr = addr
        self.inbox = asyncio.Queue()


class _MemoryProtocol(DatagramProtocol):
    def __init__(self):
        self.sockets = {}
        self.bind_calls = []

    async def bind(self, config):
        self.bind_calls.append(config)
        sock = _MemorySocket(config.bind_addr)
        self.sockets[config.bind_addr] = sock
        return sock

    async def recv_from(self, sock, size):
        data, sender = await sock.inbox.get()
        return data[:size], sender

    async def send_to(self, sock, data, addr):
        target = self.sockets.get(addr)
        if target is None:
            raise UdpError(f"no socket at {addr}")
        await target.inbox.put((bytes(data), sock.addr))
        return len(data)


class _InheritingProtocol(_MemoryProtocol):
    async def bind_with_inheritance(self, config, fd_config):
        sock = await self.bind(config)
        sock.inherited = fd_config.get_fd("udp-echo")
        return sock


class _Incomplete(DatagramProtocol):
    async def bind(self, config):
        return config


def test_abstract_protocol_cannot_be_instantiated():
    with pytest.raises(TypeError):
        DatagramProtocol()


@pytest.mark.asyncio
async def test_partial_implementation_cannot_be_instantiated():
    with pytest.raises(TypeError, match="recv_from"):
        _Incomplete()

    class _Completed(_Incomplete):
        async def recv_from(self, sock, size):
            return b"", None

        async def send_to(self, sock, data, addr):
            return len(data)

    protocol = _Completed()
    config = DatagramConfig(bind_addr=("127.0.0.1", 9002))
    fd_config = FdInheritanceConfig(inherited_fds={}, enable_inheritance=False)
    sock = await protocol.bind_with_inheritance(config, fd_config)
    assert sock is config


@pytest.mark.asyncio
async def test_bind_with_inheritance_defaults_to_bind():
    protocol = _MemoryProtocol()
    config = DatagramConfig(bind_addr=("127.0.0.1", 9000))
    fd_config = FdInheritanceConfig(inherited_fds={"udp-echo": 3}, enable_inheritance=True)
    sock = await protocol.bind_with_inheritance(config, fd_config)
    assert protocol.bind_calls == [config]
    assert sock.addr == ("127.0.0.1", 9000)


@pytest.mark.asyncio
async def test_bind_with_inheritance_can_be_overridden():
    protocol = _InheritingProtocol()
    config = DatagramConfig(bind_addr=("127.0.0.1", 9000))
    fd_config = FdInheritanceConfig(inherited_fds={"udp-echo": 3}, enable_inheritance=True)
    sock = await protocol.bind_with_inheritance(config, fd_config)
    assert sock.inherited == 3


@pytest.mark.asyncio
async def test_send_and_receive_through_interface():
    protocol = _MemoryProtocol()
    server = await protocol.bind(DatagramConfig(bind_addr=("127.0.0.1", 9000)))
    client = await protocol.bind(DatagramConfig(bind_addr=("127.0.0.1", 9001)))

    sent = await protocol.send_to(client, b"hello", server.addr)
    data, sender = await protocol.recv_from(server, 1024)
    assert sent == len(b"hello")
    assert data == b"hello"
    assert sender == client.addr

    await protocol.send_to(server, data, sender)
    echoed, _ = await protocol.recv_from(client, 1024)
    assert echoed == b"hello"