import pytest

from echosrv.errors import (
    ConfigError,
    EchoError,
    EchoTimeoutError,
    FdInheritanceError,
    TcpError,
    UdpError,
    UnixSocketError,
    UnsupportedError,
    Utf8Error,
)


@pytest.mark.parametrize(
    ("cls", "prefix"),
    [
        (TcpError, "TCP error"),
        (UdpError, "UDP error"),
        (UnixSocketError, "Unix domain socket error"),
        (ConfigError, "Configuration error"),
        (FdInheritanceError, "FD inheritance error"),
        (EchoTimeoutError, "Timeout error"),
        (Utf8Error, "UTF-8 error"),
        (UnsupportedError, "Unsupported operation"),
    ],
)
def test_message_format(cls, prefix):
    err = cls("something broke")
    assert str(err) == f"{prefix}: something broke"
    assert isinstance(err, EchoError)


def test_detail_is_kept():
    cause = OSError("connection refused")
    err = TcpError(cause)
    assert err.detail is cause
    assert "connection refused" in str(err)


def test_catch_by_base_class():
    err = ConfigError("bad address")
    with pytest.raises(EchoError) as info:
        raise err
    assert info.value is err
    assert info.value.detail == "bad address"
    assert str(info.value) == "Configuration error: bad address"


def test_subclasses_are_distinct():
    err = UdpError("recv failed")
    assert isinstance(err, EchoError)
    assert not isinstance(err, TcpError)
    assert not issubclass(TcpError, UdpError)
    assert str(err) == "UDP error: recv failed"