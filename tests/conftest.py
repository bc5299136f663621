import io
import typing

import h11
import pytest
import trio
import trio.testing

from asyncaws import Response, Transport
from asyncaws._backends import AsyncBackend, AsyncSocket
from asyncaws._backends.trio import TrioSocket


class SentRequest(typing.NamedTuple):
    request: typing.Any
    content_length: typing.Optional[int]
    data: bytes


class RecordingTransport(Transport):
    """Drains each body the way a real transport would and answers
    with the next canned response (or raises it if it's an exception).
    """

    def __init__(self, *responses: typing.Any, chunk_size: int = 7):
        self.responses = list(responses)
        self.sent: typing.List[SentRequest] = []
        self.chunk_size = chunk_size
        self.closed = False

    async def send(self, request, body):
        chunks = []
        data = await body.next(self.chunk_size)
        while data:
            chunks.append(data)
            data = await body.next(self.chunk_size)
        self.sent.append(SentRequest(request, body.content_length, b"".join(chunks)))

        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        response.request = request
        return response

    async def aclose(self):
        self.closed = True


def make_response(status_code=200, headers=(), data=b""):
    return Response(status_code, "HTTP/1.1", headers, data=data)


class CountingFile(io.BytesIO):
    """Binary file that records every read made against it"""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.reads: typing.List[int] = []
        self.bytes_returned = 0

    def read(self, size=-1):
        data = super().read(size)
        self.reads.append(size)
        self.bytes_returned += len(data)
        return data


class Pipe:
    """Sequential, non-seekable byte stream like a pipe or socket"""

    def __init__(self, data: bytes):
        self._fp = io.BytesIO(data)
        self.closed = False

    def read(self, size=-1):
        return self._fp.read(size)

    def seekable(self):
        return False

    def close(self):
        self.closed = True


async def serve_h11(stream, status_code=200, headers=(), data=b"", conn=None):
    """Reads one request off 'stream' with an h11 server and answers it.
    Returns the 'h11.Request' event and the request body.
    """
    if conn is None:
        conn = h11.Connection(h11.SERVER)
    request = None
    body = bytearray()
    while True:
        event = conn.next_event()
        if event is h11.NEED_DATA:
            conn.receive_data(await stream.receive_some(65536))
        elif isinstance(event, h11.Request):
            request = event
        elif isinstance(event, h11.Data):
            body += event.data
        elif isinstance(event, h11.EndOfMessage):
            break

    response_headers = [("content-length", str(len(data)))] + list(headers)
    await stream.send_all(
        conn.send(h11.Response(status_code=status_code, headers=response_headers))
    )
    if data:
        await stream.send_all(conn.send(h11.Data(data=data)))
    await stream.send_all(conn.send(h11.EndOfMessage()))
    return request, bytes(body)


class MemoryBackend(AsyncBackend):
    """Hands out connections to in-process servers instead of the network.

    Each item of 'servers' is used for one 'connect()': an exception is
    raised, an 'AsyncSocket' is returned as-is and anything else is an
    async callable that gets started with the server end of a memory
    stream pair.
    """

    def __init__(self, nursery, *servers):
        self.nursery = nursery
        self.servers = list(servers)
        self.connects = []

    async def connect(
        self, host, port, *, connect_timeout, ssl_context=None, server_hostname=None
    ):
        self.connects.append((host, port, ssl_context))
        server = self.servers.pop(0)
        if isinstance(server, BaseException):
            raise server
        if isinstance(server, AsyncSocket):
            return server
        client_stream, server_stream = trio.testing.memory_stream_pair()
        self.nursery.start_soon(server, server_stream)
        return TrioSocket(client_stream)


def h11_server(results, **kwargs):
    """Server for 'MemoryBackend' answering a single request"""

    async def server(stream):
        results.append(await serve_h11(stream, **kwargs))

    return server


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("AWS_REGION", "AWS_DEFAULT_REGION", "AWS_ENDPOINT_URL"):
        monkeypatch.delenv(name, raising=False)
