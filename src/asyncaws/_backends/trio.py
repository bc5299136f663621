import socket
import ssl
import typing

import trio

from .base import AsyncBackend, AsyncSocket, is_readable, wrap_exceptions
from asyncaws import utils


class TrioBackend(AsyncBackend):
    async def connect(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float,
        ssl_context: typing.Optional[ssl.SSLContext] = None,
        server_hostname: typing.Optional[str] = None,
    ) -> "TrioSocket":
        with wrap_exceptions(is_connect=True):
            with trio.fail_after(connect_timeout):
                stream: trio.abc.Stream = await trio.open_tcp_stream(host, port)
                if ssl_context is not None:
                    stream = trio.SSLStream(
                        stream,
                        ssl_context,
                        server_hostname=server_hostname or host,
                        https_compatible=True,
                    )
                    await stream.do_handshake()
        return TrioSocket(stream)


class TrioSocket(AsyncSocket):
    def __init__(self, stream: trio.abc.Stream):
        self._stream = stream

    async def send_all(self, data: bytes) -> None:
        with wrap_exceptions(is_connect=False):
            await self._stream.send_all(data)

    async def receive_some(self, read_timeout: float) -> bytes:
        with wrap_exceptions(is_connect=False):
            with trio.fail_after(read_timeout):
                return await self._stream.receive_some(utils.CHUNK_SIZE)

    async def aclose(self) -> None:
        await trio.aclose_forcefully(self._stream)

    def is_connected(self) -> bool:
        sock = self._socket()
        if sock is None:
            return True
        return not is_readable(sock)

    # Pull out the underlying socket, because it turns out HTTP is not so
    # great at respecting abstraction boundaries.
    def _socket(self) -> typing.Optional[socket.socket]:
        stream = self._stream
        # Strip off any layers of SSLStream
        while hasattr(stream, "transport_stream"):
            stream = stream.transport_stream
        sock = getattr(stream, "socket", None)
        return sock if hasattr(sock, "fileno") else None
