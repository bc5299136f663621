import logging
import typing

import certifi

from ._backends import AsyncBackend
from .body import RequestBody
from .exceptions import ConnectionError, ConnectTimeout
from .manager import ConnectionConfig, ConnectionManager
from .models import CACertsType, Request, Response, TLSVersion

logger = logging.getLogger(__name__)


class Transport:
    """Performs the network call for a prepared request. Given the
    request (method, URL and headers) and a 'RequestBody' it returns
    the 'Response'. Implementations decide how the body is framed
    from 'RequestBody.content_length'.
    """

    async def send(self, request: Request, body: RequestBody) -> Response:
        raise NotImplementedError()

    async def aclose(self) -> None:
        pass


class HTTPTransport(Transport):
    """HTTP/1.1 transport with keep-alive connection pooling.

    When 'retries' is set, requests that fail to connect are sent again
    after rewinding the body. Bodies that were partially sent and can't be
    rewound raise 'UnrewindableBodyError' instead of being retried.
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        retries: int = 0,
        ca_certs: typing.Optional[CACertsType] = certifi.where(),
        tls_min_version: TLSVersion = TLSVersion.TLSv1_2,
        tls_max_version: TLSVersion = TLSVersion.MAXIMUM_SUPPORTED,
        backend: typing.Optional[AsyncBackend] = None,
    ):
        if retries < 0:
            raise ValueError("retries must be zero or more")

        self.timeout = timeout
        self.retries = retries
        self.ca_certs = ca_certs
        self.tls_min_version = tls_min_version
        self.tls_max_version = tls_max_version

        self.manager = ConnectionManager(backend)

    async def send(self, request: Request, body: RequestBody) -> Response:
        conn_config = ConnectionConfig(
            origin=request.url.origin,
            ca_certs=self.ca_certs,
            tls_min_version=self.tls_min_version,
            tls_max_version=self.tls_max_version,
        )

        attempt = 0
        while True:
            try:
                return await self.manager.send(
                    conn_config, request, body, self.timeout
                )
            except (ConnectionError, ConnectTimeout) as e:
                if e.request is None:
                    e.request = request
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.debug(
                    "retrying %r to %s after %r (%d of %d)",
                    request,
                    request.url.origin,
                    e,
                    attempt,
                    self.retries,
                )
                await body.rewind()

    async def aclose(self) -> None:
        await self.manager.aclose()
