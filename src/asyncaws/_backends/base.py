import contextlib
import select
import socket
import ssl
import typing

import trio

from asyncaws.exceptions import (
    CertificateError,
    ConnectionError,
    ConnectTimeout,
    NameResolutionError,
    ReadTimeout,
    TLSError,
)


def is_readable(sock: socket.socket) -> bool:
    """An idle keep-alive connection only becomes readable when
    the peer has closed it (or sent something unexpected).
    """
    try:
        readable, _, _ = select.select([sock], [], [], 0)
    except (OSError, ValueError):
        return True
    return bool(readable)


@contextlib.contextmanager
def wrap_exceptions(is_connect: bool) -> typing.Iterator[None]:
    """Wraps socket and TLS exceptions into asyncaws errors."""

    def rewrite_exception(err: Exception) -> None:
        # Extract the inner exception from a trio.BrokenResourceError.
        if isinstance(err, trio.TooSlowError):
            err = socket.timeout()
        elif isinstance(err, trio.BrokenResourceError) and err.__cause__:
            err = err.__cause__
        elif isinstance(err, (trio.BrokenResourceError, trio.ClosedResourceError)):
            raise ConnectionError("connection was closed", error=err) from err

        if isinstance(err, socket.gaierror):
            raise NameResolutionError("dns error", error=err) from err
        elif isinstance(err, socket.timeout):
            if is_connect:
                raise ConnectTimeout("connect timeout", error=err) from err
            else:
                raise ReadTimeout("read timeout", error=err) from err
        elif isinstance(err, ssl.SSLCertVerificationError):
            raise CertificateError(
                f"certificate verification failed: {err.verify_message}", error=err
            ) from err
        elif isinstance(err, ssl.SSLError):
            raise TLSError("tls error", error=err) from err
        elif isinstance(err, OSError):
            raise ConnectionError(f"connection error: {err}", error=err) from err

    try:
        yield
    except Exception as err:
        rewrite_exception(err)
        # This ensures that if the exception wasn't rewritten
        # that we don't swallow the exception.
        raise


class AsyncBackend:
    async def connect(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float,
        ssl_context: typing.Optional[ssl.SSLContext] = None,
        server_hostname: typing.Optional[str] = None,
    ) -> "AsyncSocket":
        raise NotImplementedError()


class AsyncSocket:
    async def send_all(self, data: bytes) -> None:
        raise NotImplementedError()

    async def receive_some(self, read_timeout: float) -> bytes:
        raise NotImplementedError()

    async def aclose(self) -> None:
        raise NotImplementedError()

    def is_connected(self) -> bool:
        raise NotImplementedError()
