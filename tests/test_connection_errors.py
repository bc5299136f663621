import socket
import ssl

import pytest
import trio

import asyncaws
from asyncaws._backends import get_backend, wrap_exceptions
from asyncaws._backends.trio import TrioBackend


@pytest.mark.trio
async def test_name_resolution_error():
    client = asyncaws.S3Client(
        endpoint="https://this.name.doesnt.exist", trust_env=False
    )
    with pytest.raises(asyncaws.NameResolutionError) as e:
        await client.put_object(Bucket="b", Key="k", Body=b"data")
    assert e.value.request.url.host == "this.name.doesnt.exist"


@pytest.mark.parametrize(
    "error, is_connect, expected",
    [
        (socket.gaierror(-2, "unknown host"), True, asyncaws.NameResolutionError),
        (socket.timeout(), True, asyncaws.ConnectTimeout),
        (socket.timeout(), False, asyncaws.ReadTimeout),
        (trio.TooSlowError(), False, asyncaws.ReadTimeout),
        (ssl.SSLError("handshake failure"), True, asyncaws.TLSError),
        (ConnectionRefusedError(), True, asyncaws.ConnectionError),
        (trio.ClosedResourceError(), False, asyncaws.ConnectionError),
    ],
)
def test_wrap_exceptions(error, is_connect, expected):
    with pytest.raises(expected) as e:
        with wrap_exceptions(is_connect=is_connect):
            raise error
    assert e.value.__cause__ is not None


def test_wrap_exceptions_unwraps_broken_resource():
    try:
        raise trio.BrokenResourceError() from ConnectionResetError()
    except trio.BrokenResourceError as broken:
        error = broken

    with pytest.raises(asyncaws.ConnectionError) as e:
        with wrap_exceptions(is_connect=False):
            raise error
    assert isinstance(e.value.error, ConnectionResetError)


def test_wrap_exceptions_leaves_other_errors():
    with pytest.raises(KeyError):
        with wrap_exceptions(is_connect=False):
            raise KeyError("not a network error")


@pytest.mark.trio
async def test_trio_backend_is_detected():
    assert isinstance(get_backend(), TrioBackend)


def test_backend_needs_event_loop():
    with pytest.raises(RuntimeError):
        get_backend()
